from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, Family, User
from models import ExpenseRecord

NOW = datetime(2026, 10, 17, 15, 30)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def family_users(db):
    """Two users sharing a family plus one user without a family."""
    family = Family(name="Test Family", invite_code="ABCD1234")
    db.add(family)
    db.flush()

    asha = User(name="Asha", email="asha@example.com", api_token="token-asha", family_id=family.id)
    ravi = User(name="Ravi", email="ravi@example.com", api_token="token-ravi", family_id=family.id)
    solo = User(name="Solo", email="solo@example.com", api_token="token-solo")
    db.add_all([asha, ravi, solo])
    db.commit()

    return {"family": family.id, "asha": asha.id, "ravi": ravi.id, "solo": solo.id}


@pytest.fixture
def make_expense():
    counter = {"id": 0}

    def _make(amount, category="Food", occurred_at=NOW, description="", owner=1, family=None):
        counter["id"] += 1
        return ExpenseRecord(
            id=counter["id"],
            owner_user_id=owner,
            family_id=family,
            amount_minor=int(amount * 100),
            category=category,
            description=description or f"{amount} for {category.lower()}",
            occurred_at=occurred_at,
            created_at=occurred_at,
        )

    return _make
