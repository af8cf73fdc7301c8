from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .client import Outcome, SessionClient

FORUM = "forum"
EXPLORATION = "exploration"
MODES = (FORUM, EXPLORATION)

EXPLORATION_SECTIONS = ("planets", "stars", "galaxies")
ROW_SEARCH_FIELDS = {
    "planets": ("name", "type"),
    "stars": ("name", "spectral_type", "constellation"),
    "galaxies": ("name", "type"),
}


def filter_questions(
    questions: Iterable[dict], search_term: str = "", category_id: Optional[int] = None
) -> List[dict]:
    """Questions in ``category_id`` (if set) whose title contains ``search_term``.

    Category ids are compared as integers with ``==``; a selection of "3"
    never matches a question in category 3.
    """
    results = list(questions)
    if category_id is not None:
        results = [q for q in results if q.get("category_id") == category_id]
    term = search_term.strip().lower()
    if term:
        results = [q for q in results if term in (q.get("title") or "").lower()]
    return results


def filter_rows(
    rows: Iterable[dict], search_term: str = "", fields: Tuple[str, ...] = ("name",)
) -> List[dict]:
    term = search_term.strip().lower()
    if not term:
        return list(rows)
    return [
        row for row in rows
        if any(term in str(row.get(name) or "").lower() for name in fields)
    ]


def _empty_forum() -> Dict[str, list]:
    return {"categories": [], "questions": []}


def _empty_exploration() -> Dict[str, list]:
    return {name: [] for name in EXPLORATION_SECTIONS}


@dataclass
class DashboardState:
    """View-local state of the dashboard.

    The visible lists are recomputed from the fetched dataset on every
    access, so a change to the search term, the selection or the data is
    reflected without another request.
    """

    mode: str = FORUM
    search_term: str = ""
    selected_category: Optional[int] = None
    selected_row: Optional[Tuple[str, int]] = None
    forum: Dict[str, list] = field(default_factory=_empty_forum)
    exploration: Dict[str, list] = field(default_factory=_empty_exploration)
    is_loading: bool = True
    error: str = ""

    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown dashboard mode: {mode}")
        if mode != self.mode:
            self.mode = mode
            self.search_term = ""
            self.selected_category = None
            self.selected_row = None

    def toggle_mode(self) -> None:
        self.set_mode(EXPLORATION if self.mode == FORUM else FORUM)

    def set_search(self, term: str) -> None:
        self.search_term = term or ""

    def select_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and (
            isinstance(category_id, bool) or not isinstance(category_id, int)
        ):
            raise TypeError("category_id must be an int or None")
        self.selected_category = category_id

    def select_row(self, section: str, row_id: Optional[int]) -> None:
        if section not in EXPLORATION_SECTIONS:
            raise ValueError(f"Unknown exploration section: {section}")
        self.selected_row = None if row_id is None else (section, row_id)

    @property
    def has_active_filter(self) -> bool:
        return bool(self.search_term.strip()) or self.selected_category is not None

    @property
    def empty_questions_message(self) -> str:
        if self.has_active_filter:
            return "No matching transmissions"
        return "Select a category to view its questions"

    @property
    def visible_questions(self) -> List[dict]:
        return filter_questions(
            self.forum["questions"], self.search_term, self.selected_category
        )

    def visible_rows(self, section: str) -> List[dict]:
        return filter_rows(
            self.exploration.get(section, []),
            self.search_term,
            ROW_SEARCH_FIELDS.get(section, ("name",)),
        )

    @property
    def selected_category_record(self) -> Optional[dict]:
        for category in self.forum["categories"]:
            if category.get("id") == self.selected_category:
                return category
        return None

    @property
    def selected_row_record(self) -> Optional[dict]:
        if self.selected_row is None:
            return None
        section, row_id = self.selected_row
        for row in self.exploration.get(section, []):
            if row.get("id") == row_id:
                return row
        return None

    def load(self, client: SessionClient) -> Outcome:
        """Fetch the dataset for the current mode.

        An outcome carrying ``redirect`` means there is no token and nothing
        was requested; the caller should show the auth form.
        """
        self.is_loading = True
        self.error = ""
        try:
            if self.mode == FORUM:
                outcome = client.fetch_forum()
                if outcome.ok:
                    self.forum = outcome.data
            else:
                outcome = client.fetch_exploration()
                if outcome.ok:
                    self.exploration = outcome.data
        finally:
            self.is_loading = False

        if not outcome.ok and outcome.error:
            self.error = outcome.error
        return outcome
