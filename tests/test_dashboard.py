from unittest.mock import MagicMock

import pytest

from spaceforum.client import AUTH_PAGE, Outcome
from spaceforum.dashboard import (
    EXPLORATION,
    FORUM,
    DashboardState,
    filter_questions,
    filter_rows,
)

QUESTIONS = [
    {"id": 3, "title": "Dark matter halos", "category_id": 1},
    {"id": 2, "title": "Falcon landing legs", "category_id": 2},
    {"id": 1, "title": "Matter vs antimatter", "category_id": 1},
]


def test_filter_questions_by_category():
    assert [q["id"] for q in filter_questions(QUESTIONS, category_id=1)] == [3, 1]


def test_filter_questions_uses_strict_category_equality():
    assert filter_questions(QUESTIONS, category_id="1") == []


def test_filter_questions_search_is_case_insensitive_on_title():
    assert [q["id"] for q in filter_questions(QUESTIONS, "MATTER")] == [3, 1]


def test_filter_questions_combines_search_and_category():
    assert [q["id"] for q in filter_questions(QUESTIONS, "falcon", 1)] == []
    assert [q["id"] for q in filter_questions(QUESTIONS, "falcon", 2)] == [2]


def test_filter_questions_does_not_mutate_input():
    questions = list(QUESTIONS)
    filter_questions(questions, "dark", 1)
    assert questions == QUESTIONS


def test_filter_rows_searches_listed_fields():
    rows = [
        {"id": 1, "name": "Sirius", "constellation": "Canis Major"},
        {"id": 2, "name": "Vega", "constellation": "Lyra"},
    ]
    assert filter_rows(rows, "lyra", ("name", "constellation")) == [rows[1]]
    assert filter_rows(rows, "lyra") == []
    assert filter_rows(rows, "  ") == rows


def test_visible_questions_rederive_on_every_change():
    view = DashboardState(forum={"categories": [], "questions": list(QUESTIONS)})
    assert len(view.visible_questions) == 3

    view.set_search("matter")
    assert [q["id"] for q in view.visible_questions] == [3, 1]

    view.select_category(1)
    view.set_search("anti")
    assert [q["id"] for q in view.visible_questions] == [1]

    view.forum = {"categories": [], "questions": QUESTIONS[:1]}
    assert view.visible_questions == []


def test_select_category_rejects_untyped_ids():
    view = DashboardState()
    with pytest.raises(TypeError):
        view.select_category("1")
    with pytest.raises(TypeError):
        view.select_category(True)
    view.select_category(None)
    assert view.selected_category is None


def test_selected_category_record():
    view = DashboardState(
        forum={"categories": [{"id": 2, "name": "Rocketry"}], "questions": []}
    )
    view.select_category(2)
    assert view.selected_category_record == {"id": 2, "name": "Rocketry"}


def test_switching_mode_clears_search_and_selection():
    view = DashboardState()
    view.set_search("mars")
    view.select_category(1)

    view.toggle_mode()

    assert view.mode == EXPLORATION
    assert view.search_term == ""
    assert view.selected_category is None


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        DashboardState().set_mode("settings")


def test_row_selection_in_exploration_view():
    view = DashboardState(mode=EXPLORATION)
    view.exploration["planets"] = [{"id": 4, "name": "Mars", "type": "terrestrial"}]

    view.select_row("planets", 4)

    assert view.selected_row_record["name"] == "Mars"
    with pytest.raises(ValueError):
        view.select_row("moons", 1)


def test_load_populates_current_mode_dataset():
    client = MagicMock()
    data = {"categories": [{"id": 1, "name": "A"}], "questions": []}
    client.fetch_forum.return_value = Outcome(ok=True, data=data)
    view = DashboardState()

    outcome = view.load(client)

    assert outcome.ok
    assert view.forum == data
    assert not view.is_loading
    assert view.error == ""
    client.fetch_exploration.assert_not_called()


def test_load_failure_sets_error_banner():
    client = MagicMock()
    client.fetch_exploration.return_value = Outcome(ok=False, error="Invalid or expired token")
    view = DashboardState(mode=EXPLORATION)

    view.load(client)

    assert view.error == "Invalid or expired token"
    assert not view.is_loading


def test_load_without_token_passes_redirect_through():
    client = MagicMock()
    client.fetch_forum.return_value = Outcome(ok=False, redirect=AUTH_PAGE)
    view = DashboardState(mode=FORUM)

    outcome = view.load(client)

    assert outcome.redirect == AUTH_PAGE
    assert view.error == ""


def test_empty_question_list_message_reflects_active_filter():
    view = DashboardState(forum={"categories": [], "questions": list(QUESTIONS)})
    assert not view.has_active_filter
    assert view.empty_questions_message == "Select a category to view its questions"

    view.set_search("quasar")
    assert view.visible_questions == []
    assert view.has_active_filter
    assert view.empty_questions_message == "No matching transmissions"

    view.set_search("   ")
    view.select_category(2)
    assert view.empty_questions_message == "No matching transmissions"
