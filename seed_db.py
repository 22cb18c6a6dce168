import secrets
from datetime import datetime, timedelta

from database import init_db, SessionLocal, Family, User
from expense_store import SqlExpenseStore
from recorder import ExpenseRecorder

SAMPLE_MESSAGES = [
    "500 rupees for food",
    "₹120 auto rickshaw to the station",
    "paid 1,450 electricity bill",
    "Rs. 350 medicine from the pharmacy",
    "799 netflix subscription",
]

def seed_family():
    init_db()
    db = SessionLocal()

    # Check if users exist
    if db.query(User).first():
        print("Users already exist. Skipping seed.")
        db.close()
        return

    family = Family(name="Demo Family", invite_code=secrets.token_hex(4).upper())
    db.add(family)
    db.flush()

    # Tokens stand in for what the auth service would issue
    parent = User(name="Asha", email="asha@example.com", api_token=secrets.token_urlsafe(24), family_id=family.id)
    child = User(name="Ravi", email="ravi@example.com", api_token=secrets.token_urlsafe(24), family_id=family.id)
    db.add_all([parent, child])
    db.commit()

    # Spread the sample chat messages over the last few days
    store = SqlExpenseStore(db)
    for offset, text in enumerate(SAMPLE_MESSAGES):
        when = datetime.now() - timedelta(days=offset)
        owner = parent if offset % 2 == 0 else child
        ExpenseRecorder(store, clock=lambda when=when: when).record(text, owner.id, family.id)

    print("Database initialized with a demo family.")
    for user in (parent, child):
        print(f"  {user.name}: API_TOKEN={user.api_token}")
    db.close()

if __name__ == "__main__":
    seed_family()
