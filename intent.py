"""
Intent routing for chat utterances.

An utterance either logs a new expense or asks about existing ones. The
decision is an ordered table of (predicate, intent) rules evaluated
first-match-wins; anything no rule claims is a query.
"""

import re
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from extractors import (
    classify_category,
    detect_language,
    find_amount,
    match_category,
    resolve_date,
)
from models import Intent, ParsedUtterance

EXPENSE_VERBS = re.compile(r"spend|spent|paid|bought|purchase|₹", re.IGNORECASE)

Rule = Tuple[Callable[[str], bool], Intent]


def has_amount_token(text: str) -> bool:
    return find_amount(text) is not None


def has_expense_verb(text: str) -> bool:
    return EXPENSE_VERBS.search(text or "") is not None


# An amount outranks question phrasing: "paid 200 for lunch?" still logs.
DEFAULT_RULES: List[Rule] = [
    (has_amount_token, Intent.LOG_EXPENSE),
]

# Also routes digit-free "I spent on groceries" style messages to logging,
# which then fails extraction. Kept for parity with the old web client.
VERB_RULES: List[Rule] = DEFAULT_RULES + [
    (has_expense_verb, Intent.LOG_EXPENSE),
]


def classify(text: str, verb_routing: bool = False) -> Intent:
    rules = VERB_RULES if verb_routing else DEFAULT_RULES
    for predicate, intent in rules:
        if predicate(text or ""):
            return intent
    return Intent.QUERY


def parse_utterance(text: str, now: Optional[datetime] = None, verb_routing: bool = False) -> ParsedUtterance:
    """Run the router and every slot extractor over one utterance."""
    found = find_amount(text)
    matched_category = match_category(text)

    confidence = 0.5
    if matched_category:
        confidence += 0.3
    if found and found.has_currency:
        confidence += 0.2

    return ParsedUtterance(
        raw_text=text,
        intent=classify(text, verb_routing=verb_routing),
        amount=found.amount if found else None,
        category=classify_category(text),
        occurred_at=resolve_date(text, now),
        confidence=round(min(confidence, 1.0), 2),
        language=detect_language(text),
    )
