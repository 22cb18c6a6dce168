"""
Slot extraction for chat utterances.

Pulls the amount, the category and the date out of free text, and labels the
script the text is written in. Everything here is rule based and
deterministic: the same text (and the same clock) always gives the same
slots.
"""

import re
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import NamedTuple, Optional

from models import ENGLISH, LanguageHint

DEFAULT_CATEGORY = "Other"

# Ordered: the first category with a keyword in the text wins. Keywords match
# whole words, optionally pluralised, so "rent" does not fire on "parents".
CATEGORY_KEYWORDS = [
    ("Food", (
        "food", "meal", "restaurant", "grocery", "groceries", "breakfast", "lunch",
        "dinner", "snack", "coffee", "pizza", "burger", "biryani", "swiggy", "zomato",
        "cafe", "vegetable", "fruit", "milk", "bakery",
    )),
    ("Transport", (
        "transport", "taxi", "uber", "rapido", "metro", "railway", "train", "bus fare", "bus ticket",
        "rickshaw", "petrol", "diesel", "fuel", "parking", "toll", "flight", "cab ride",
    )),
    ("Shopping", (
        "shopping", "clothes", "shirt", "shoes", "dress", "amazon", "flipkart", "myntra",
        "mall", "gift", "electronics", "gadget",
    )),
    ("Bills", (
        "bill", "electricity", "water", "rent", "internet", "wifi", "broadband",
        "recharge", "mobile plan", "cylinder", "emi", "insurance", "subscription",
    )),
    ("Entertainment", (
        "entertainment", "movie", "cinema", "netflix", "spotify", "concert", "party",
        "outing", "game", "theatre",
    )),
    ("Health", (
        "health", "doctor", "medicine", "medical", "hospital", "pharmacy", "clinic",
        "dentist", "gym", "checkup",
    )),
    ("Education", (
        "education", "school", "college", "tuition", "course", "book", "exam",
        "stationery", "class", "fees",
    )),
]

TAXONOMY = tuple(name for name, _ in CATEGORY_KEYWORDS)

CATEGORY_PATTERNS = [
    (category, re.compile(r"\b(?:" + "|".join(map(re.escape, keywords)) + r")(?:s|es)?\b", re.IGNORECASE))
    for category, keywords in CATEGORY_KEYWORDS
]

_CURRENCY_WORD = r"(?:rs\.?|inr|rupees?)"
_NUMBER = r"(?P<number>\d+(?:,\d+)*(?:\.\d+)?)"
_SCALE = r"(?:\s*(?P<scale>k|lakhs?|lacs?|crores?|cr)(?![a-z]))?"

CURRENCY_PREFIXED = re.compile(r"(?:₹|(?<![a-z])" + _CURRENCY_WORD + r")\s*" + _NUMBER + _SCALE, re.IGNORECASE)
CURRENCY_SUFFIXED = re.compile(r"(?<![\w.])" + _NUMBER + _SCALE + r"\s*(?:₹|" + _CURRENCY_WORD + r"(?![a-z]))", re.IGNORECASE)
BARE_NUMBER = re.compile(r"(?<![\w.])" + _NUMBER + _SCALE, re.IGNORECASE)

SCALES = {
    "k": 1_000,
    "lakh": 100_000,
    "lac": 100_000,
    "crore": 10_000_000,
    "cr": 10_000_000,
}

# Longest phrase first so "day before yesterday" is not read as "yesterday".
RELATIVE_DAYS = [
    ("day before yesterday", 2),
    ("yesterday", 1),
    ("today", 0),
]

SCRIPT_LANGUAGES = [
    ((0x0900, 0x097F), LanguageHint("Hindi", "hi")),
    ((0x0D00, 0x0D7F), LanguageHint("Malayalam", "ml")),
    ((0x0B80, 0x0BFF), LanguageHint("Tamil", "ta")),
    ((0x0C00, 0x0C7F), LanguageHint("Telugu", "te")),
    ((0x0C80, 0x0CFF), LanguageHint("Kannada", "kn")),
]


class AmountMatch(NamedTuple):
    amount: Decimal
    start: int
    end: int
    has_currency: bool


def _to_amount(match: re.Match) -> Optional[Decimal]:
    try:
        value = Decimal(match.group("number").replace(",", ""))
    except InvalidOperation:
        return None
    scale = (match.group("scale") or "").lower().rstrip("s")
    if scale:
        value *= SCALES[scale]
    return abs(value)


def find_amount(text: str) -> Optional[AmountMatch]:
    """
    Locate the first monetary-looking number in ``text``.

    A number written next to a currency marker (``₹500``, ``Rs. 500``,
    ``500 rupees``) is preferred over a bare number; otherwise the first digit
    sequence is used.
    """
    if not text:
        return None

    marked = [m for m in (CURRENCY_PREFIXED.search(text), CURRENCY_SUFFIXED.search(text)) if m]
    if marked:
        match = min(marked, key=lambda m: m.start())
        has_currency = True
    else:
        match = BARE_NUMBER.search(text)
        has_currency = False
        if match is None:
            return None

    amount = _to_amount(match)
    if amount is None:
        return None
    return AmountMatch(amount, match.start(), match.end(), has_currency)


def extract_amount(text: str) -> Optional[Decimal]:
    found = find_amount(text)
    return found.amount if found else None


def match_category(text: str) -> Optional[str]:
    """Return the first taxonomy category with a keyword in ``text``, if any."""
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(text or ""):
            return category
    return None


def classify_category(text: str) -> str:
    return match_category(text) or DEFAULT_CATEGORY


def normalize_category(name: Optional[str]) -> Optional[str]:
    """Map a user supplied category name onto the taxonomy, or None if unknown."""
    if not name or not name.strip():
        return None
    cleaned = name.strip().lower()
    if cleaned in ("other", "others"):
        return DEFAULT_CATEGORY
    for category in TAXONOMY:
        if category.lower() == cleaned:
            return category
    return None


def resolve_date(text: str, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now()
    lowered = (text or "").lower()
    for marker, days_back in RELATIVE_DAYS:
        if marker in lowered:
            return now - timedelta(days=days_back)
    return now


def detect_language(text: str) -> LanguageHint:
    """Label the script of ``text``. The keyword tables themselves are English only."""
    for char in text or "":
        point = ord(char)
        for (low, high), language in SCRIPT_LANGUAGES:
            if low <= point <= high:
                return language
    return ENGLISH


def clean_description(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()
