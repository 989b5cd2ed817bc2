import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dataclasses import replace
from datetime import date

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from finpal.config import configure_logging, load_config
from finpal.domain import (
    EXPENSE,
    EXPENSE_CATEGORIES,
    INCOME,
    INCOME_CATEGORIES,
    Budget,
    Monthly,
    NotificationSettings,
    SavingsGoal,
    StudentLoan,
    Transaction,
    Weekly,
)
from finpal.events import NOTIFICATION, STORAGE_FAILED, EventBus
from finpal.reports import budget_progress, monthly_trend, statement, summary, transactions_frame
from finpal.services import FinanceSession
from finpal.storage import BUDGETS_KEY, GOALS_KEY, LOANS_KEY, SETTINGS_KEY, TEMPLATES_KEY, TRANSACTIONS_KEY, JsonFileStore, StorageError
from finpal.transforms import (
    add_funds,
    add_goal,
    add_loan,
    add_transaction,
    create_template,
    expenses_by_category,
    log_loan_payment,
    new_transaction_id,
    remove_budget,
    remove_template,
    remove_transaction,
    set_budget,
)

st.set_page_config(page_title="FinPal", layout="wide")

config = load_config()
configure_logging(config)
CUR = config.currency
ALL_CATEGORIES = list(dict.fromkeys(EXPENSE_CATEGORIES + INCOME_CATEGORIES))
WEEKDAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def toast_handler(event, payload: dict) -> dict:
    st.toast(f"**{payload['title']}**: {payload['body']}")
    return {"delivered": payload["id"]}


def storage_error_handler(event, payload: dict) -> dict:
    st.error(f"Could not save your data: {payload['error']}")
    return {}


# one session per browser session, so notifications are only shown once per visit
if "finpal" not in st.session_state:
    bus = EventBus()
    bus.subscribe(NOTIFICATION, toast_handler)
    bus.subscribe(STORAGE_FAILED, storage_error_handler)
    try:
        session = FinanceSession(JsonFileStore(config.data_file), bus, config)
        session.load()
    except StorageError as e:
        st.error(f"Could not load your data from {config.data_file}: {e}")
        st.stop()
    st.session_state.finpal = session

session: FinanceSession = st.session_state.finpal
today = date.today()
session.run_cycle(today)
snap = session.snapshot


def save(mutator, *keys):
    try:
        error = session.apply(mutator, keys=keys or None)
    except ValueError as e:
        st.warning(str(e))
        return
    if error is None:
        st.rerun()


menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "🧾 Transactions", "💰 Budgets", "🔁 Recurring", "🎯 Savings", "🎓 Loans", "📑 Statement", "⚙️ Settings"],
)

if menu == "🏠 Dashboard":
    totals = summary(snap.transactions)
    k1, k2, k3 = st.columns(3)
    k1.metric("Income", f"{totals['income']:,.2f} {CUR}")
    k2.metric("Expenses", f"{totals['expenses']:,.2f} {CUR}")
    k3.metric("Net", f"{totals['net']:,.2f} {CUR}")

    trend = monthly_trend(snap.transactions)
    if not trend.empty:
        fig = go.Figure()
        fig.add_trace(go.Bar(x=trend.index, y=trend[INCOME], name="Income"))
        fig.add_trace(go.Bar(x=trend.index, y=trend[EXPENSE], name="Expense"))
        fig.update_layout(barmode="group", margin=dict(t=30, b=10, l=10, r=10))
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("No transactions yet.")

    by_category = expenses_by_category(snap.transactions)
    if by_category:
        pie = go.Figure(go.Pie(labels=list(by_category), values=list(by_category.values()), hole=0.4))
        pie.update_layout(title="Expenses by category", margin=dict(t=40, b=10, l=10, r=10))
        st.plotly_chart(pie, use_container_width=True)

elif menu == "🧾 Transactions":
    st.title("🧾 Transactions")
    with st.form("tx_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            kind = st.radio("Type", [EXPENSE, INCOME], horizontal=True)
            amount = st.number_input(f"Amount ({CUR})", min_value=0.0, step=100.0, format="%.2f")
        with col2:
            category = st.selectbox("Category", ALL_CATEGORIES)
            tx_date = st.date_input("Date", value=today)
        description = st.text_input("Description (optional)")
        if st.form_submit_button("Add Transaction"):
            tx = Transaction(new_transaction_id(), kind, amount, category, tx_date, description)
            save(lambda s: replace(s, transactions=add_transaction(s.transactions, tx)), TRANSACTIONS_KEY)

    df = transactions_frame(snap.transactions)
    st.dataframe(df.drop(columns=["id"]), use_container_width=True)
    to_delete = st.selectbox("Delete transaction", [""] + [t.id for t in snap.transactions])
    if to_delete and st.button("Delete"):
        save(lambda s: replace(s, transactions=remove_transaction(s.transactions, to_delete)), TRANSACTIONS_KEY)

elif menu == "💰 Budgets":
    st.title("💰 Budgets")
    progress = budget_progress(snap.transactions, snap.budgets, config.budget_since(today))
    for _, row in progress.iterrows():
        st.metric(row["category"], f"{row['spent']:,.2f} / {row['limit']:,.2f} {CUR}")
        st.progress(min(100.0, row["percent"]) / 100)
        if st.button(f"Remove {row['category']}", key=f"rm_budget_{row['category']}"):
            save(lambda s, c=row["category"]: replace(s, budgets=remove_budget(s.budgets, c)), BUDGETS_KEY)
    with st.form("budget_form", clear_on_submit=True):
        category = st.selectbox("Category", EXPENSE_CATEGORIES)
        limit = st.number_input(f"Monthly limit ({CUR})", min_value=0.0, step=500.0)
        if st.form_submit_button("Set Budget"):
            save(lambda s: replace(s, budgets=set_budget(s.budgets, Budget(category, limit))), BUDGETS_KEY)

elif menu == "🔁 Recurring":
    st.title("🔁 Recurring")
    for rt in snap.templates:
        st.write(f"**{rt.description or rt.category}** · {rt.amount:,.2f} {CUR} · {rt.frequency or 'invalid'} · next {rt.next_due_date}")
        if st.button("Remove", key=f"rm_rt_{rt.id}"):
            save(lambda s, i=rt.id: replace(s, templates=remove_template(s.templates, i)), TEMPLATES_KEY)
    with st.form("rt_form", clear_on_submit=True):
        kind = st.radio("Type", [EXPENSE, INCOME], horizontal=True)
        amount = st.number_input(f"Amount ({CUR})", min_value=0.0, step=100.0)
        category = st.selectbox("Category", ALL_CATEGORIES)
        description = st.text_input("Description")
        frequency = st.selectbox("Frequency", ["monthly", "weekly"])
        day_of_week = st.selectbox("Day of week (weekly)", range(7), index=today.isoweekday() % 7, format_func=lambda d: WEEKDAYS[d])
        day_of_month = st.number_input("Day of month (monthly)", min_value=1, max_value=31, value=today.day)
        start = st.date_input("Start date", value=today)
        if st.form_submit_button("Add Recurring"):
            schedule = Weekly(day_of_week) if frequency == "weekly" else Monthly(int(day_of_month))
            save(
                lambda s: replace(s, templates=create_template(
                    s.templates, type=kind, amount=amount, category=category,
                    schedule=schedule, start_date=start, description=description,
                )),
                TEMPLATES_KEY,
            )

elif menu == "🎯 Savings":
    st.title("🎯 Savings Goals")
    for g in snap.goals:
        st.metric(g.name, f"{g.current_amount:,.2f} / {g.target_amount:,.2f} {CUR}", f"due {g.deadline}")
        st.progress(min(1.0, g.current_amount / g.target_amount) if g.target_amount > 0 else 0.0)
        amount = st.number_input("Add funds", min_value=0.0, step=100.0, key=f"fund_{g.id}")
        if st.button("Add", key=f"add_{g.id}"):
            save(lambda s, i=g.id, a=amount: replace(s, goals=add_funds(s.goals, i, a)), GOALS_KEY)
    with st.form("goal_form", clear_on_submit=True):
        name = st.text_input("Goal name")
        target = st.number_input(f"Target ({CUR})", min_value=0.0, step=1000.0)
        deadline = st.date_input("Deadline", value=today)
        if st.form_submit_button("Add Goal"):
            goal = SavingsGoal(new_transaction_id(), name, target, 0.0, deadline)
            save(lambda s: replace(s, goals=add_goal(s.goals, goal)), GOALS_KEY)

elif menu == "🎓 Loans":
    st.title("🎓 Student Loans")
    for loan in snap.loans:
        st.metric(loan.lender, f"{loan.current_balance:,.2f} {CUR}", f"due day {loan.payment_due_day}")
        amount = st.number_input("Payment", min_value=0.0, step=500.0, key=f"pay_{loan.id}")
        if st.button("Log a Payment", key=f"log_{loan.id}"):
            def pay(s, i=loan.id, a=amount):
                loans, payment = log_loan_payment(s.loans, i, a, today)
                return replace(s, loans=loans, transactions=add_transaction(s.transactions, payment))
            save(pay, LOANS_KEY, TRANSACTIONS_KEY)
    with st.form("loan_form", clear_on_submit=True):
        lender = st.text_input("Lender")
        initial = st.number_input(f"Initial amount ({CUR})", min_value=0.0, step=1000.0)
        rate = st.number_input("Interest rate (%)", min_value=0.0, step=0.1)
        due_day = st.number_input("Payment due day", min_value=1, max_value=31, value=5)
        if st.form_submit_button("Save Loan"):
            loan = StudentLoan(new_transaction_id(), lender, initial, initial, rate, int(due_day))
            save(lambda s: replace(s, loans=add_loan(s.loans, loan)), LOANS_KEY)

elif menu == "📑 Statement":
    st.title("📑 Statement")
    start = st.date_input("Start date", value=(pd.Timestamp(today) - pd.DateOffset(months=1)).date())
    end = st.date_input("End date", value=today)
    if start <= end:
        result = statement(snap.transactions, start, end)
        st.json(result["summary"])
        st.dataframe(result["transactions"].drop(columns=["id"]), use_container_width=True)
        st.download_button("⬇ Download CSV", result["transactions"].to_csv(index=False), file_name="statement.csv")
    else:
        st.warning("Please select a valid date range.")

elif menu == "⚙️ Settings":
    st.title("⚙️ Notifications")
    current = snap.settings
    with st.form("settings_form"):
        updated = NotificationSettings(
            budget_alerts=st.checkbox("Budget alerts", value=current.budget_alerts),
            bill_reminders=st.checkbox("Bill reminders", value=current.bill_reminders),
            savings_reminders=st.checkbox("Savings reminders", value=current.savings_reminders),
            loan_reminders=st.checkbox("Loan reminders", value=current.loan_reminders),
        )
        if st.form_submit_button("Save"):
            save(lambda s: replace(s, settings=updated), SETTINGS_KEY)
