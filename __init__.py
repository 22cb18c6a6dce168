"""Family Expense Chat package.

This package contains the conversational expense-logging engine, its
FastAPI backend and a Streamlit chat page.  See ``api_server.py`` and
``app.py`` for entry points.
"""
