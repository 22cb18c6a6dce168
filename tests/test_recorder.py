from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

import analytics
from database import Expense
from errors import ExtractionError
from expense_store import MAX_AMOUNT_MINOR, SqlExpenseStore
from models import ExpenseDraft
from recorder import ExpenseRecorder


@pytest.fixture
def store(db):
    return SqlExpenseStore(db)


@pytest.fixture
def recorder(store, now):
    return ExpenseRecorder(store, clock=lambda: now)


def test_record_food_expense(recorder, family_users, now):
    result = recorder.record("500 rupees for food", family_users["asha"], family_users["family"])

    assert result.message == "Logged ₹500 under Food"
    assert result.expense.amount_minor == 50000
    assert result.expense.category == "Food"
    assert result.expense.occurred_at == now
    assert result.expense.family_id == family_users["family"]
    assert result.parsed.confidence == 1.0


def test_record_yesterday(recorder, family_users, now):
    result = recorder.record("taxi 300 yesterday", family_users["asha"])
    assert result.expense.occurred_at == now - timedelta(days=1)
    assert result.expense.category == "Transport"


def test_record_unknown_category_falls_back(recorder, family_users):
    assert recorder.record("250 misc", family_users["asha"]).expense.category == "Other"


def test_missing_amount_writes_nothing(recorder, family_users, db):
    with pytest.raises(ExtractionError):
        recorder.record("lunch with the team", family_users["asha"])
    assert db.query(Expense).count() == 0


def test_recorded_expense_shows_up_in_today(recorder, store, family_users, now):
    recorder.record("₹120 coffee", family_users["asha"])
    ctx = analytics.answer("today", store.list_expenses(family_users["asha"]), now=now)
    assert ctx.summary_text == "Today you've spent ₹120 across 1 expenses."


def test_store_rejects_negative_amount(store, family_users, now):
    draft = ExpenseDraft(family_users["asha"], -100, "Food", "bad", now)
    with pytest.raises(ValueError):
        store.add_expense(draft)


def test_store_lists_newest_first(store, family_users, now):
    owner = family_users["asha"]
    for days_back, amount in [(2, 100), (0, 300), (1, 200)]:
        store.add_expense(ExpenseDraft(owner, amount * 100, "Food", f"{amount}", now - timedelta(days=days_back)))

    listed = store.list_expenses(owner)
    assert [e.amount_minor for e in listed] == [30000, 20000, 10000]


def test_same_date_orders_by_insertion(store, family_users, now):
    owner = family_users["asha"]
    first = store.add_expense(ExpenseDraft(owner, 100, "Food", "first", now))
    second = store.add_expense(ExpenseDraft(owner, 200, "Food", "second", now))
    assert [e.id for e in store.list_expenses(owner)] == [second.id, first.id]


def test_family_listing(recorder, store, family_users):
    family = family_users["family"]
    recorder.record("500 for food", family_users["asha"], family)
    recorder.record("200 for fuel", family_users["ravi"], family)
    recorder.record("90 for milk", family_users["solo"])

    shared = store.list_family_expenses(family_users["asha"])
    assert {e.owner_user_id for e in shared} == {family_users["asha"], family_users["ravi"]}

    solo = store.list_family_expenses(family_users["solo"])
    assert [e.amount_minor for e in solo] == [9000]
    assert store.family_of(family_users["solo"]) is None


def test_oversized_amount_is_rejected_before_storing(recorder, family_users, db):
    with pytest.raises(ExtractionError, match="too large"):
        recorder.record("₹" + "9" * 25 + " for food", family_users["asha"])
    assert db.query(Expense).count() == 0
    assert recorder.record("500 for food", family_users["asha"]).expense.amount_minor == 50000


def test_store_rejects_amount_beyond_column_range(store, family_users, now):
    draft = ExpenseDraft(family_users["asha"], MAX_AMOUNT_MINOR + 1, "Food", "huge", now)
    with pytest.raises(ValueError):
        store.add_expense(draft)


def test_failed_write_rolls_back_session(store, family_users, db, now, monkeypatch):
    def failing_commit():
        raise OperationalError("INSERT INTO expenses", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(OperationalError):
        store.add_expense(ExpenseDraft(family_users["asha"], 100, "Food", "lost", now))
    monkeypatch.undo()

    kept = store.add_expense(ExpenseDraft(family_users["asha"], 200, "Food", "kept", now))
    assert [e.id for e in store.list_expenses(family_users["asha"])] == [kept.id]
