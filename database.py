from datetime import datetime
from sqlalchemy import create_engine, CheckConstraint, Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import sessionmaker, declarative_base, relationship

from config import DATABASE_URL

# Database Setup
# Default to local SQLite, but allow override for a hosted Postgres
engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# --- Models ---

class Family(Base):
    __tablename__ = "families"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    invite_code = Column(String, unique=True, nullable=True) # managed by the family service

    members = relationship("User", back_populates="family")

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    email = Column(String, unique=True, index=True)
    api_token = Column(String, unique=True, index=True) # issued by the auth service

    # Sharing scope
    family_id = Column(Integer, ForeignKey("families.id"), nullable=True)
    family = relationship("Family", back_populates="members")

class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (CheckConstraint("amount_minor >= 0", name="ck_expenses_amount_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    family_id = Column(Integer, ForeignKey("families.id"), nullable=True, index=True)

    amount_minor = Column(Integer) # paise
    category = Column(String, default="Other")
    description = Column(String, default="")

    # occurred_at may be backdated (or future dated); created_at is insert time
    occurred_at = Column(DateTime, default=datetime.now, index=True)
    created_at = Column(DateTime, default=datetime.now)

# --- Init DB ---
def init_db(bind=engine):
    Base.metadata.create_all(bind=bind)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
