import asyncio

import pandas as pd
import plotly.express as px
import streamlit as st

from api_client import ExpenseApiClient
from chat_backend import LocalChatBackend, RemoteChatBackend
from chat_session import QUICK_ACTIONS, ChatSession
from config import CHAT_BACKEND, LOCAL_USER_ID, configure_logging
from database import SessionLocal, init_db
from expense_store import SqlExpenseStore
from formatting import format_currency
from models import QueryKind, Role

# --- Configuration ---
st.set_page_config(page_title="Family Expense Chat", layout="wide", page_icon="💬")

if "logging_configured" not in st.session_state:
    configure_logging()
    st.session_state.logging_configured = True


def _flag_auth_expired():
    st.session_state["auth_expired"] = True


def build_session() -> ChatSession:
    """Pick the chat backend from CHAT_BACKEND and open a session on it."""
    if CHAT_BACKEND == "local":
        init_db()
        if "db" not in st.session_state:
            st.session_state.db = SessionLocal()
        store = SqlExpenseStore(st.session_state.db)
        backend = LocalChatBackend(store, LOCAL_USER_ID, store.family_of(LOCAL_USER_ID))
    else:
        backend = RemoteChatBackend(ExpenseApiClient())
    return ChatSession(backend, on_auth_expired=_flag_auth_expired)


def run(coro):
    # Streamlit reruns the script synchronously; each turn gets its own loop
    return asyncio.run(coro)


if "chat" not in st.session_state:
    st.session_state.chat = build_session()
    try:
        run(st.session_state.chat.refresh_stats())
    except Exception as exc:
        st.warning(f"Couldn't load expenses yet: {exc}")

chat: ChatSession = st.session_state.chat

if st.session_state.get("auth_expired"):
    st.error("Your session has expired. Please log in again.")
    st.stop()

# --- Header & stats ---
st.title("💬 AI Expense Chat")
st.caption(f"Language: {chat.language.name}")

col1, col2, col3 = st.columns(3)
col1.metric("💰 Total Spent", format_currency(chat.stats.running_total_minor), help="Family expenses")
col2.metric("📅 Today", format_currency(chat.stats.today_total_minor), help="Daily spending")
col3.metric("🧾 Expenses", chat.stats.entry_count, help="Total entries")

with st.sidebar:
    st.markdown("### ⚡ Quick Actions")
    quick_text = None
    for label, text in QUICK_ACTIONS:
        if st.button(label, use_container_width=True):
            quick_text = text
    st.divider()
    if st.button("🧹 Clear chat", use_container_width=True):
        chat.reset()
        st.rerun()


def render_message(msg):
    with st.chat_message("user" if msg.role is Role.USER else "assistant"):
        if msg.role is Role.ERROR:
            st.error(msg.text)
        else:
            st.markdown(msg.text.replace("\n", "  \n"))

        if msg.expense:
            st.caption(f"Amount: {format_currency(msg.expense.amount_minor)} · Category: {msg.expense.category}")
        if msg.parsed and msg.parsed.get("confidence"):
            st.caption(f"Confidence: {round(msg.parsed['confidence'] * 100)}% · {msg.parsed.get('parser', '').upper()}")

        ctx = msg.context
        if ctx is None:
            return
        if ctx.supporting_expenses:
            st.table(
                pd.DataFrame(
                    [
                        {"Description": e.description, "Amount": format_currency(e.amount_minor)}
                        for e in ctx.supporting_expenses
                    ]
                )
            )
        if ctx.kind is QueryKind.CATEGORY_BREAKDOWN and ctx.totals:
            by_cat = pd.DataFrame({"Category": list(ctx.totals), "Amount": [v / 100 for v in ctx.totals.values()]})
            fig = px.pie(by_cat, values="Amount", names="Category", hole=0.4, title="Spending by Category")
            fig.update_traces(textposition="inside", textinfo="percent+label")
            st.plotly_chart(fig, use_container_width=True)


for msg in chat.transcript:
    render_message(msg)

prompt = st.chat_input("Type in any language: '500 for food' or 'खाने के लिए 500'", disabled=chat.busy)
text = prompt or quick_text
if text:
    with st.spinner("Processing your message..."):
        run(chat.submit(text))
    st.rerun()
