"""Streamlit frontend: auth form and the forum / exploration dashboard.

Run with ``streamlit run spaceforum/frontend.py``. Set LOCAL_STORAGE_PATH to
keep the token across restarts; otherwise it lives in the Streamlit session.
"""
import os

import streamlit as st

from spaceforum.client import API_BASE_URL, AUTH_PAGE, DASHBOARD_PAGE, FileStorage, SessionClient
from spaceforum.dashboard import EXPLORATION_SECTIONS, FORUM, DashboardState


def _client() -> SessionClient:
    if "client" not in st.session_state:
        path = os.getenv("LOCAL_STORAGE_PATH")
        storage = FileStorage(path) if path else {}
        st.session_state.client = SessionClient(API_BASE_URL, storage=storage)
    return st.session_state.client


def _navigate(page: str) -> None:
    st.session_state.page = page
    st.session_state.pop("dashboard", None)
    st.rerun()


def auth_form(client: SessionClient) -> None:
    if "is_login" not in st.session_state:
        st.session_state.is_login = True
    is_login = st.session_state.is_login

    st.title("Welcome Back" if is_login else "Create Account")
    if client.message and client.message_type == "success":
        st.success(client.message)

    with st.form("auth"):
        username = st.text_input("Username")
        if client.field_errors["username"]:
            st.caption(f":red[{client.field_errors['username'].upper()}]")
        email = "" if is_login else st.text_input("Email Address")
        password = st.text_input("Password", type="password")
        if client.field_errors["password"]:
            st.caption(f":red[{client.field_errors['password'].upper()}]")
        submitted = st.form_submit_button(
            "Sign In" if is_login else "Register Now", disabled=client.is_submitting
        )

    if submitted:
        if is_login:
            outcome = client.login(username, password)
        else:
            outcome = client.register(username, email, password)
        if outcome.redirect:
            _navigate(outcome.redirect)
        if outcome.ok and not is_login:
            st.session_state.is_login = True
            st.rerun()

    if client.message and client.message_type == "danger":
        st.error(client.message)

    toggle = "Don't have an account? Register" if is_login else "Already have an account? Login"
    if st.button(toggle):
        st.session_state.is_login = not is_login
        client.clear_feedback()
        client.field_errors = {"username": "", "password": ""}
        st.rerun()


def _forum_view(client: SessionClient, view: DashboardState) -> None:
    st.subheader("Select sector")
    categories = view.forum["categories"]
    columns = st.columns(max(len(categories), 1))
    for column, category in zip(columns, categories):
        with column:
            active = view.selected_category == category["id"]
            label = f"{'> ' if active else ''}{category['name'].upper()}"
            if st.button(label, key=f"cat-{category['id']}", help=category.get("description")):
                view.select_category(None if active else category["id"])
                st.rerun()

    view.set_search(st.text_input("Search transmissions...", value=view.search_term))

    title = "Filtered transmissions" if view.selected_category is not None else "All sector questions"
    st.markdown(f"### {title.upper()}")
    questions = view.visible_questions
    if questions:
        st.dataframe(
            [
                {
                    "Subject": q["title"],
                    "Content": q["content"],
                    "Sector": q.get("category_name", ""),
                    "Author": q.get("author", ""),
                    "Timestamp": q["created_at"],
                }
                for q in questions
            ],
            use_container_width=True,
        )
    else:
        st.info(view.empty_questions_message)

    with st.expander("Open a new transmission"):
        with st.form("question", clear_on_submit=True):
            q_title = st.text_input("Title")
            content = st.text_area("Content")
            category = st.selectbox(
                "Category", categories, format_func=lambda c: c["name"]
            )
            posted = st.form_submit_button("Transmit", disabled=client.is_submitting)
        if posted:
            outcome = client.post_question(
                q_title, content, category["id"] if category else None
            )
            if outcome.ok:
                st.success(outcome.data.get("message", "Question posted!"))
                view.load(client)
                st.rerun()
            else:
                st.error(outcome.error)


def _exploration_view(view: DashboardState) -> None:
    view.set_search(st.text_input("Search the catalogue...", value=view.search_term))
    for section in EXPLORATION_SECTIONS:
        st.markdown(f"### {section.upper()}")
        rows = view.visible_rows(section)
        if rows:
            st.dataframe(rows, use_container_width=True)
        else:
            st.caption("No matching records")


def dashboard(client: SessionClient) -> None:
    if "dashboard" not in st.session_state:
        st.session_state.dashboard = DashboardState()
        outcome = st.session_state.dashboard.load(client)
        if outcome.redirect:
            _navigate(outcome.redirect)
    view = st.session_state.dashboard

    user = client.user
    with st.sidebar:
        st.markdown(f"**{(user.get('username') or 'commander').upper()}**")
        other = "Exploration data" if view.mode == FORUM else "Forum"
        if st.button(f"Switch to {other}"):
            view.toggle_mode()
            outcome = view.load(client)
            if outcome.redirect:
                _navigate(outcome.redirect)
            st.rerun()
        if st.button("Abort session"):
            _navigate(client.logout().redirect)

    st.title("SPACE_OS FORUM" if view.mode == FORUM else "EXPLORATION DATA")
    if view.error:
        st.error(view.error)

    if view.mode == FORUM:
        _forum_view(client, view)
    else:
        _exploration_view(view)


def main() -> None:
    client = _client()
    if "page" not in st.session_state:
        st.session_state.page = DASHBOARD_PAGE if client.token else AUTH_PAGE

    if st.session_state.page == DASHBOARD_PAGE:
        dashboard(client)
    else:
        auth_form(client)


if __name__ == "__main__":
    main()
