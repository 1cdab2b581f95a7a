"""Analysis screen: run the duplicate analysis and act on the verdicts."""

import asyncio
from collections.abc import Iterable, Mapping
from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Input, Select, Static
from textual.worker import Worker

import structlog

from jellyfin_dedupe.models import DuplicateVerdict, MovieRecord
from jellyfin_dedupe.services.analysis import AnalysisResult, validate_item_id
from jellyfin_dedupe.services.duplicates import split_verdicts
from jellyfin_dedupe.services.errors import AppError

from .base import BaseScreen

log = structlog.stdlib.get_logger()

VIEW_DUPLICATES = "duplicates"
VIEW_MISMATCHES = "mismatches"
VIEW_ALL = "all"

VIEW_OPTIONS = [
    ("Potential duplicates", VIEW_DUPLICATES),
    ("Potential mismatches", VIEW_MISMATCHES),
    ("All pairs", VIEW_ALL),
]

__all__ = [
    "AnalysisScreen",
    "ConfirmDeleteScreen",
    "describe_verdict",
    "filter_verdicts",
    "row_key",
    "verdict_row",
]


def row_key(verdict: DuplicateVerdict) -> str:
    """Stable table key for a verdict's pair of movies."""
    return f"{verdict.movie_a.id}:{verdict.movie_b.id}"


def verdict_row(verdict: DuplicateVerdict) -> tuple[str, str, str, str, str]:
    """Table cells for one verdict: name, year, similarity, safe to delete, discrepancies."""
    year = verdict.movie_a.production_year
    return (
        verdict.movie_a.name,
        str(year) if year else "?",
        f"{verdict.similarity}%",
        "yes" if verdict.has_identical_play_status else "no",
        str(len(verdict.discrepancies)),
    )


def filter_verdicts(
    verdicts: Iterable[DuplicateVerdict],
    search_query: str = "",
    view: str = VIEW_DUPLICATES,
) -> list[DuplicateVerdict]:
    """Filter verdicts by view and a case-insensitive name or path search.

    Results are sorted by movie name then year for a stable display.
    """
    duplicates, mismatches = split_verdicts(verdicts)
    if view == VIEW_DUPLICATES:
        result = duplicates
    elif view == VIEW_MISMATCHES:
        result = mismatches
    else:
        result = duplicates + mismatches

    query = search_query.lower().strip()
    if query:
        result = [
            v for v in result
            if query in v.movie_a.name.lower()
            or query in v.movie_a.path.lower()
            or query in v.movie_b.path.lower()
        ]

    return sorted(result, key=lambda v: (v.movie_a.name.lower(), v.movie_a.production_year))


def _describe_movie(label: str, movie: MovieRecord, user_names: Mapping[str, str]) -> list[str]:
    lines = [
        f"{label}: {movie.name} ({movie.production_year or '?'})",
        f"  ID:   {movie.id}",
        f"  Path: {movie.path or '(none)'}",
    ]
    if movie.provider_ids:
        ids = ", ".join(f"{k}={v}" for k, v in sorted(movie.provider_ids.items()))
        lines.append(f"  Provider IDs: {ids}")

    for user_id, state in sorted(movie.play_states.items(), key=lambda item: user_names.get(item[0], item[0])):
        name = user_names.get(user_id, user_id)
        status = "played" if state.played else "not played"
        if state.play_count:
            status += f" ({state.play_count}x)"
        lines.append(f"    {name}: {status}")
    return lines


def describe_verdict(verdict: DuplicateVerdict, user_names: Mapping[str, str] | None = None) -> str:
    """Multi-line description of a verdict for the details panel."""
    user_names = user_names or {}
    lines = [
        f"Similarity: {verdict.similarity}%  "
        f"Duplicate: {'yes' if verdict.is_duplicate else 'no'}  "
        f"Identical play status: {'yes' if verdict.has_identical_play_status else 'no'}",
        "",
    ]
    lines.extend(_describe_movie("A", verdict.movie_a, user_names))
    lines.append("")
    lines.extend(_describe_movie("B", verdict.movie_b, user_names))

    if verdict.discrepancies:
        lines.append("")
        lines.append("Needs sync before deleting:")
        for d in verdict.discrepancies:
            lines.append(f"  {d.user_name} has not played {d.movie_name} ({d.movie_to_update})")

    return "\n".join(lines)


class ConfirmDeleteScreen(ModalScreen[bool]):
    """Ask the operator to confirm deleting one copy."""

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    CSS: ClassVar[str] = """
    ConfirmDeleteScreen {
        align: center middle;
    }

    #confirm-container {
        width: 70;
        height: auto;
        padding: 1 2;
        border: thick $error;
        background: $surface;
    }

    #confirm-buttons {
        height: auto;
        margin-top: 1;
        align: center middle;
    }

    #confirm-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, movie: MovieRecord) -> None:
        super().__init__()
        self.movie = movie

    @override
    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-container"):
            yield Static(f"Delete '{self.movie.name}' from the server?")
            yield Static(self.movie.path or self.movie.id)
            with Horizontal(id="confirm-buttons"):
                yield Button("Delete", id="btn-confirm", variant="error")
                yield Button("Cancel", id="btn-cancel", variant="default")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "btn-confirm")

    def action_cancel(self) -> None:
        self.dismiss(False)


class AnalysisScreen(BaseScreen):
    """Runs the analysis and lets the operator review and act on each pair.

    Deleting a copy is only offered when both copies have identical play
    status, so no user loses watch history. Pairs with discrepancies can be
    synchronized first.
    """

    SCREEN_TITLE: ClassVar[str] = "Duplicate Analysis"
    SCREEN_NAME: ClassVar[str] = "analysis"

    CSS: ClassVar[str] = """
    AnalysisScreen {
        align: center middle;
    }

    #analysis-container {
        width: 98%;
        height: 98%;
        padding: 0 1;
        border: solid $primary;
        background: $surface;
    }

    #filter-row {
        height: 3;
    }

    #search-input {
        width: 2fr;
    }

    #view-select {
        width: 1fr;
        margin-left: 1;
    }

    #status-line {
        color: $text-muted;
        height: 1;
    }

    #table-section {
        height: 1fr;
        border: solid $primary-darken-2;
    }

    #details-section {
        height: 1fr;
        border: solid $secondary;
        padding: 0 1;
    }

    #button-row {
        height: auto;
        align: center middle;
    }

    #button-row Button {
        margin: 0 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("r", "run_analysis", "Run", show=True),
        Binding("c", "enrich_counts", "Play counts", show=True),
        Binding("s", "sync_selected", "Sync", show=True),
        Binding("f", "focus_search", "Search", show=True),
    ]

    class AnalysisComplete(Message):
        """Posted by the worker when the analysis succeeds."""

        def __init__(self, result: AnalysisResult) -> None:
            super().__init__()
            self.result = result

    class ActionFailed(Message):
        """Posted by a worker when a remote operation fails."""

        def __init__(self, error: Exception, operation: str) -> None:
            super().__init__()
            self.error = error
            self.operation = operation

    _visible: list[DuplicateVerdict]
    _selected: DuplicateVerdict | None
    _worker: Worker[None] | None

    def __init__(self) -> None:
        super().__init__()
        self._visible = []
        self._selected = None
        self._worker = None

    @override
    def compose(self) -> ComposeResult:
        with Container(id="analysis-container"):
            yield self.create_title_widget()
            with Horizontal(id="filter-row"):
                yield Input(placeholder="Filter by name or path...", id="search-input")
                yield Select(VIEW_OPTIONS, value=VIEW_DUPLICATES, allow_blank=False, id="view-select")
            yield Static("Press r to run the analysis", id="status-line")
            with ScrollableContainer(id="table-section"):
                yield DataTable(id="verdict-table")
            with ScrollableContainer(id="details-section"):
                yield Static("Select a pair to see details", id="details")
            with Horizontal(id="button-row"):
                yield Button("Run Analysis", id="btn-run", variant="primary")
                yield Button("Play Counts", id="btn-counts", disabled=True)
                yield Button("Sync Play Status", id="btn-sync", disabled=True)
                yield Button("Delete A", id="btn-delete-a", variant="error", disabled=True)
                yield Button("Delete B", id="btn-delete-b", variant="error", disabled=True)

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        table = self.query_one("#verdict-table", DataTable)
        table.add_columns("Name", "Year", "Similarity", "Identical status", "Discrepancies")
        table.cursor_type = "row"

        if self.dedupe_app.app_state.result is None:
            self.action_run_analysis()
        else:
            self._refresh_table()

    # Analysis

    def action_run_analysis(self) -> None:
        """Start a full analysis in a worker."""
        service = self.dedupe_app.analysis_service
        if service is None:
            self.notify_error("No analysis service available")
            return
        if self.dedupe_app.app_state.analysis_active:
            self.notify_warning("Analysis already running")
            return

        self.dedupe_app.set_analysis_active(True)
        self._set_status("Fetching catalog and play history...")
        self._worker = self.run_worker(self._run_analysis(), name="analysis_worker", group="analysis", exclusive=True)

    async def _run_analysis(self) -> None:
        service = self.dedupe_app.analysis_service
        if service is None:
            return
        try:
            result = await service.run()
        except asyncio.CancelledError:
            log.info("Analysis worker cancelled")
            self.dedupe_app.set_analysis_active(False)
            raise
        except AppError as e:
            self.dedupe_app.set_analysis_active(False)
            self.post_message(self.ActionFailed(e, "analysis"))
            return
        self.post_message(self.AnalysisComplete(result))

    def on_analysis_screen_analysis_complete(self, event: AnalysisComplete) -> None:
        self.dedupe_app.set_analysis_result(event.result)
        self._selected = None
        self._refresh_table()
        self.notify_success(
            f"Found {len(event.result.potential_duplicates)} potential duplicates "
            f"and {len(event.result.potential_mismatches)} potential mismatches"
        )

    def on_analysis_screen_action_failed(self, event: ActionFailed) -> None:
        self._set_status(f"{event.operation} failed")
        self.handle_exception(event.error, event.operation)

    # Table and details

    def _set_status(self, text: str) -> None:
        self.query_one("#status-line", Static).update(text)

    def _refresh_table(self) -> None:
        result = self.dedupe_app.app_state.result
        if result is None:
            return

        query = self.query_one("#search-input", Input).value
        view = str(self.query_one("#view-select", Select).value)
        self._visible = filter_verdicts(result.verdicts, query, view)

        table = self.query_one("#verdict-table", DataTable)
        table.clear()
        for verdict in self._visible:
            table.add_row(*verdict_row(verdict), key=row_key(verdict))

        self._set_status(
            f"Movies: {len(result.movies)}  Users: {len(result.users)}  "
            f"Duplicates: {len(result.potential_duplicates)}  "
            f"Mismatches: {len(result.potential_mismatches)}  Showing: {len(self._visible)}"
        )

        if self._selected is not None:
            refreshed = next((v for v in result.verdicts if v.pair_ids == self._selected.pair_ids), None)
            self._show_details(refreshed)

    def _show_details(self, verdict: DuplicateVerdict | None) -> None:
        self._selected = verdict
        details = self.query_one("#details", Static)
        if verdict is None:
            details.update("Select a pair to see details")
        else:
            result = self.dedupe_app.app_state.result
            user_names = result.user_names if result else {}
            details.update(describe_verdict(verdict, user_names))

        can_delete = verdict is not None and verdict.has_identical_play_status
        self.query_one("#btn-counts", Button).disabled = verdict is None
        self.query_one("#btn-sync", Button).disabled = verdict is None or not verdict.has_play_status_discrepancy
        self.query_one("#btn-delete-a", Button).disabled = not can_delete
        self.query_one("#btn-delete-b", Button).disabled = not can_delete

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None or event.row_key.value is None:
            return
        key = str(event.row_key.value)
        verdict = next((v for v in self._visible if row_key(v) == key), None)
        self._show_details(verdict)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search-input":
            self._refresh_table()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "view-select":
            self._refresh_table()

    def action_focus_search(self) -> None:
        self.query_one("#search-input", Input).focus()

    # Actions on the selected pair

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "btn-run":
            self.action_run_analysis()
        elif button_id == "btn-counts":
            self.action_enrich_counts()
        elif button_id == "btn-sync":
            self.action_sync_selected()
        elif button_id == "btn-delete-a" and self._selected:
            self._confirm_delete(self._selected.movie_a)
        elif button_id == "btn-delete-b" and self._selected:
            self._confirm_delete(self._selected.movie_b)

    def action_enrich_counts(self) -> None:
        """Fetch exact play counts for the selected pair."""
        if self._selected is None:
            self.notify_warning("No pair selected")
            return
        self.run_worker(self._enrich_counts(self._selected), name="enrich_worker", group="actions", exclusive=True)

    async def _enrich_counts(self, verdict: DuplicateVerdict) -> None:
        service = self.dedupe_app.analysis_service
        result = self.dedupe_app.app_state.result
        if service is None or result is None:
            return
        try:
            enriched = await service.enrich_play_counts(verdict, result.users)
        except AppError as e:
            self.post_message(self.ActionFailed(e, "play count lookup"))
            return
        self.dedupe_app.replace_verdict(enriched)
        self._selected = enriched
        self._refresh_table()

    def action_sync_selected(self) -> None:
        """Mark the under-played copy as played for every discrepancy user."""
        verdict = self._selected
        if verdict is None or not verdict.has_play_status_discrepancy:
            self.notify_warning("Nothing to sync")
            return
        self.run_worker(self._sync(verdict), name="sync_worker", group="actions", exclusive=True)

    async def _sync(self, verdict: DuplicateVerdict) -> None:
        service = self.dedupe_app.analysis_service
        if service is None:
            return
        try:
            applied = await service.sync_play_status(verdict)
        except AppError as e:
            self.post_message(self.ActionFailed(e, "play status sync"))
            return
        self.notify_success(f"Marked {len(applied)} item(s) as played")
        self.action_run_analysis()

    def _confirm_delete(self, movie: MovieRecord) -> None:
        if self._selected is None or not self._selected.has_identical_play_status:
            self.notify_warning("Play status differs, sync before deleting")
            return
        try:
            validate_item_id(movie.id)
        except AppError as e:
            self.handle_exception(e, "delete", context={"movie_id": movie.id})
            return

        def on_confirm(confirmed: bool | None) -> None:
            if confirmed:
                self.run_worker(self._delete(movie), name="delete_worker", group="actions", exclusive=True)

        self.app.push_screen(ConfirmDeleteScreen(movie), on_confirm)

    async def _delete(self, movie: MovieRecord) -> None:
        service = self.dedupe_app.analysis_service
        if service is None:
            return
        try:
            await service.delete_movie(movie.id)
        except AppError as e:
            self.post_message(self.ActionFailed(e, "delete"))
            return
        self.notify_success(f"Deleted {movie.name} ({movie.path or movie.id})")
        self.action_run_analysis()
