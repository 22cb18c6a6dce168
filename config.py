import os
import logging

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Storage: local SQLite by default, any SQLAlchemy URL (e.g. Postgres) otherwise
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///family_expenses.db")

# REST backend used by the default chat backend
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000/api")
API_TOKEN = os.getenv("API_TOKEN")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

# 'remote' talks to the REST backend, 'local' parses and stores in-process
CHAT_BACKEND = os.getenv("CHAT_BACKEND", "remote")
LOCAL_USER_ID = int(os.getenv("LOCAL_USER_ID", "1"))

# Presentation
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")
NUMBER_GROUPING = os.getenv("NUMBER_GROUPING", "western")  # 'western' or 'indian'

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL):
    """Set up root logging once for an entry point (API server, chat page)."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
