"""Textual TUI for browsing projects, sessions and transcripts."""

from datetime import datetime, timedelta
from enum import Enum, auto
from pathlib import Path

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Header, Footer, Static, Input, ListView, ListItem
from textual.message import Message
from textual import on, events, work

from . import bridge as channels
from .bridge import Bridge
from .models import Project, SessionSummary
from .sessions import (
    guess_project_name,
    parse_timestamp,
    project_stats,
    relative_time,
    shorten_path,
)

TRANSCRIPT_CHAR_LIMIT = 4000


def _get_date_group(ts: float | None) -> str:
    """Bucket a timestamp into macOS Finder-style date groups."""
    if ts is None:
        return "Unknown Date"
    now = datetime.now()
    dt = datetime.fromtimestamp(ts)
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday_start = today_start - timedelta(days=1)
    week_start = today_start - timedelta(days=7)
    month_start = today_start - timedelta(days=30)

    if dt >= today_start:
        return "Today"
    elif dt >= yesterday_start:
        return "Yesterday"
    elif dt >= week_start:
        return "Last 7 Days"
    elif dt >= month_start:
        return "Last 30 Days"
    else:
        return "Older"


def _format_tokens(count: int | None) -> str:
    if not count:
        return "0"
    if count < 1000:
        return str(count)
    if count < 1_000_000:
        return f"{count / 1000:.1f}k"
    return f"{count / 1_000_000:.1f}M"


class Pane(Enum):
    PROJECTS = auto()
    SESSIONS = auto()
    PREVIEW = auto()


class SearchInput(Input):
    """Custom Input that emits Escaped message instead of letting Textual handle it."""

    class Escaped(Message):
        pass

    def key_escape(self) -> None:
        self.value = ""
        self.post_message(self.Escaped())


class DateHeader(ListItem):
    """Non-interactive date group separator."""

    def __init__(self, label: str) -> None:
        super().__init__()
        self.label_text = label

    def compose(self) -> ComposeResult:
        yield Static(f"[bold dim]── {escape(self.label_text)} ──[/]")


class ProjectItem(ListItem):
    def __init__(self, project: Project) -> None:
        super().__init__()
        self.project = project

    def compose(self) -> ComposeResult:
        name = self.project.name
        if name.startswith("/"):
            title = guess_project_name(Path(self.project.path).name)
            subtitle = shorten_path(name)
        else:
            title, subtitle = name, shorten_path(self.project.path)
        count = self.project.session_count
        yield Static(
            f"[bold]{escape(title)}[/]  [dim]{count} session{'s' if count != 1 else ''}[/]\n"
            f"[cyan]{escape(subtitle)}[/]"
        )


class SessionItem(ListItem):
    """A single session row in the list."""
    def __init__(self, session: SessionSummary) -> None:
        super().__init__()
        self.session = session

    def compose(self) -> ComposeResult:
        ts = parse_timestamp(self.session.last_timestamp)
        age = relative_time(ts) if ts is not None else "unknown"
        yield Static(
            f"[bold]{escape(self.session.session_id[:8])}[/]  "
            f"{self.session.message_count} msgs\n[dim]{age}[/]"
        )


class TaskDone(Message):
    """Single message type for all background request completions."""
    def __init__(self, kind: str, result=None, error: str | None = None) -> None:
        super().__init__()
        self.kind = kind
        self.result = result
        self.error = error


class HistoryBrowserApp(App):
    """Three-pane browser: projects, sessions, preview."""

    CSS = """
    Screen { layout: vertical; }
    #search { dock: top; margin: 0 1; height: 3; }
    #main { height: 1fr; }
    #project-list { width: 30%; border-right: heavy $primary; }
    #session-list { width: 25%; border-right: heavy $primary; }
    #preview-scroll { width: 45%; padding: 1 2; overflow-y: auto; }
    #preview-scroll.focused { border-left: heavy $accent; padding: 1 1; }
    #preview { width: 100%; }
    DateHeader { height: auto; padding: 1 0 0 1; }
    """

    BINDINGS = []

    def __init__(self, bridge: Bridge, **kwargs):
        super().__init__(**kwargs)
        self._bridge = bridge
        self.projects: list[Project] = []
        self.sessions: list[SessionSummary] = []
        self._pane = Pane.PROJECTS
        self._current_project: Project | None = None
        self._last_request: tuple[str, tuple] | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        yield SearchInput(
            placeholder="/ filter  ↑↓←→ navigate  Enter open  r reload  Esc quit",
            id="search",
        )
        with Horizontal(id="main"):
            yield ListView(id="project-list")
            yield ListView(id="session-list")
            with VerticalScroll(id="preview-scroll"):
                yield Static("[dim]Loading session parser...[/]", id="preview", markup=True)
        yield Footer()

    # ── Lifecycle ──────────────────────────────────────────

    def on_mount(self) -> None:
        self.title = "claude-history"
        self.sub_title = "Claude Code Conversation History"
        self.query_one("#project-list", ListView).focus()
        self._load_parser()

    @work(exclusive=True, group="parser")
    async def _load_parser(self) -> None:
        try:
            await self._bridge.gate.load()
        except Exception as e:
            self.post_message(TaskDone("parser", error=str(e)))
            return
        self.post_message(TaskDone("parser"))

    # ── Requests ───────────────────────────────────────────

    def _request(self, kind: str, channel: str, *args) -> None:
        self._last_request = (kind, (channel, *args))
        self._run_request(kind, channel, *args)

    @work(exclusive=True, group="request")
    async def _run_request(self, kind: str, channel: str, *args) -> None:
        try:
            result = await self._bridge.invoke(channel, *args)
        except Exception as e:
            self.post_message(TaskDone(kind, error=str(e)))
            return
        self.post_message(TaskDone(kind, result))

    def _retry(self) -> None:
        if not self._bridge.gate.ready:
            self._load_parser()
        elif self._last_request is not None:
            kind, (channel, *args) = self._last_request
            self._request(kind, channel, *args)
        else:
            self._request("projects", channels.GET_ALL_PROJECTS)

    def on_task_done(self, message: TaskDone) -> None:
        """Single dispatcher for all request completions."""
        if message.error:
            self._show_preview_error(message.error)
            return

        if message.kind == "parser":
            self._request("projects", channels.GET_ALL_PROJECTS)

        elif message.kind == "projects":
            self.projects = message.result
            self._populate_projects(self.query_one("#search", SearchInput).value)
            self.query_one("#preview", Static).update(
                f"[bold]{len(self.projects)} projects[/]\n\n[dim]Enter to open a project[/]"
            )

        elif message.kind == "sessions":
            self.sessions = message.result
            self._populate_sessions()
            self._show_project_stats()

        elif message.kind == "transcript":
            self._display_transcript(message.result)

    # ── List management ────────────────────────────────────

    def _populate_projects(self, filter_text: str = "") -> None:
        query = filter_text.lower()
        lv = self.query_one("#project-list", ListView)
        lv.clear()
        for project in self.projects:
            if not query or query in project.name.lower() or query in project.path.lower():
                lv.append(ProjectItem(project))
        if lv.children:
            lv.index = 0

    def _populate_sessions(self) -> None:
        lv = self.query_one("#session-list", ListView)
        lv.clear()
        current_group = None
        for session in self.sessions:
            group = _get_date_group(parse_timestamp(session.last_timestamp))
            if group != current_group:
                current_group = group
                lv.append(DateHeader(group))
            lv.append(SessionItem(session))

    def _current_session(self) -> SessionSummary | None:
        lv = self.query_one("#session-list", ListView)
        item = lv.highlighted_child
        if isinstance(item, SessionItem):
            return item.session
        return None

    # ── Preview rendering ──────────────────────────────────

    def _show_project_stats(self) -> None:
        project = self._current_project
        if project is None:
            return
        stats = project_stats(self.sessions)
        text = f"[bold underline]{escape(project.name)}[/]\n\n"
        text += f"[bold]Directory:[/]   [cyan]{escape(shorten_path(project.path))}[/]\n"
        text += f"[bold]Sessions:[/]    {stats.session_count}"
        if stats.session_count != project.session_count:
            text += f" [dim]({project.session_count} files)[/]"
        text += "\n"
        text += f"[bold]Messages:[/]    {stats.total_messages} "
        text += f"[dim](mean {stats.mean_messages}, median {stats.median_messages:g})[/]\n"
        text += f"[bold]Tokens:[/]      {_format_tokens(stats.total_input_tokens)} in / "
        text += f"{_format_tokens(stats.total_output_tokens)} out\n"
        last = parse_timestamp(stats.last_timestamp)
        if last is not None:
            text += f"[bold]Last active:[/] {relative_time(last)}\n"
        self.query_one("#preview", Static).update(text)
        self.query_one("#preview-scroll", VerticalScroll).scroll_home(animate=False)

    def _update_preview(self, session: SessionSummary) -> None:
        first = parse_timestamp(session.first_timestamp)
        last = parse_timestamp(session.last_timestamp)
        text = f"[bold underline]{escape(session.session_id)}[/]\n\n"
        if session.cwd:
            text += f"[bold]Directory:[/]   [cyan]{escape(shorten_path(session.cwd))}[/]\n"
        if first is not None:
            text += f"[bold]Started:[/]     {datetime.fromtimestamp(first):%Y-%m-%d %H:%M}\n"
        if last is not None:
            text += f"[bold]Last active:[/] {relative_time(last)}\n"
        text += "\n[bold]Session stats:[/]\n"
        text += f"  Messages:     {session.message_count}\n"
        text += f"  User msgs:    {session.user_message_count}\n"
        text += f"  Asst msgs:    {session.assistant_message_count}\n"
        text += f"  Input tok:    {_format_tokens(session.total_input_tokens)}\n"
        text += f"  Output tok:   {_format_tokens(session.total_output_tokens)}\n"
        flags = [f for f, on_ in (("thinking", session.has_thinking),
                                  ("tools", session.has_tool_use)) if on_]
        if flags:
            text += f"  Uses:         {', '.join(flags)}\n"
        text += "\n[dim]Enter to read the transcript[/]"
        self.query_one("#preview", Static).update(text)
        self.query_one("#preview-scroll", VerticalScroll).scroll_home(animate=False)

    def _display_transcript(self, messages: list) -> None:
        if not messages:
            self.query_one("#preview", Static).update("[dim]No messages in this session[/]")
            return
        text = ""
        for msg in messages:
            color = "green" if msg.role == "user" else "magenta"
            ts = parse_timestamp(msg.timestamp)
            when = f"{datetime.fromtimestamp(ts):%H:%M}" if ts is not None else ""
            badges = ""
            if msg.has_tool_use:
                badges += " [dim]⚙ tools[/]"
            if msg.has_images:
                badges += " [dim]▣ image[/]"
            text += f"[bold {color}]{escape(msg.role)}[/] [dim]{when}[/]{badges}\n"
            body = msg.content
            if len(body) > TRANSCRIPT_CHAR_LIMIT:
                body = body[:TRANSCRIPT_CHAR_LIMIT] + " …"
            text += f"{escape(body)}\n\n" if body else "[dim](no text)[/]\n\n"
        self.query_one("#preview", Static).update(text)
        self.query_one("#preview-scroll", VerticalScroll).scroll_home(animate=False)

    def _show_preview_error(self, msg: str) -> None:
        """Surface errors visibly in the preview pane."""
        self.query_one("#preview", Static).update(
            f"[bold red]{escape(msg)}[/]\n\n[dim]Press r to retry[/]"
        )
        self.query_one("#preview-scroll", VerticalScroll).scroll_home(animate=False)

    # ── Search events ──────────────────────────────────────

    @on(Input.Changed, "#search")
    def on_search_changed(self, event: Input.Changed) -> None:
        self._populate_projects(event.value)

    @on(Input.Submitted, "#search")
    def on_search_submit(self, event: Input.Submitted) -> None:
        self.query_one("#project-list", ListView).focus()

    @on(SearchInput.Escaped)
    def on_search_escaped(self, event: SearchInput.Escaped) -> None:
        self._populate_projects("")
        self.query_one("#project-list", ListView).focus()

    # ── List events ────────────────────────────────────────

    @on(ListView.Selected, "#project-list")
    def on_project_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, ProjectItem):
            self._current_project = event.item.project
            self.query_one("#session-list", ListView).clear()
            self.query_one("#preview", Static).update("[bold yellow]⟳ Loading sessions...[/]")
            self._request("sessions", channels.GET_PROJECT_SESSIONS, event.item.project.path)
            self._focus_pane(Pane.SESSIONS)

    @on(ListView.Highlighted, "#session-list")
    def on_session_highlighted(self, event: ListView.Highlighted) -> None:
        if isinstance(event.item, SessionItem):
            self._update_preview(event.item.session)

    @on(ListView.Selected, "#session-list")
    def on_session_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, SessionItem):
            self.query_one("#preview", Static).update("[bold yellow]⟳ Reading transcript...[/]")
            self._request("transcript", channels.PARSE_SESSION, event.item.session.file_path)
            self._focus_pane(Pane.PREVIEW)

    # ── Key handling ───────────────────────────────────────

    def _focus_pane(self, pane: Pane) -> None:
        self._pane = pane
        scroll_pane = self.query_one("#preview-scroll", VerticalScroll)
        if pane == Pane.PREVIEW:
            scroll_pane.add_class("focused")
            scroll_pane.focus()
            return
        scroll_pane.remove_class("focused")
        target = "#project-list" if pane == Pane.PROJECTS else "#session-list"
        self.query_one(target, ListView).focus()

    def on_key(self, event: events.Key) -> None:
        search = self.query_one("#search", SearchInput)
        in_search = search == self.focused
        if in_search:
            if event.key == "down":
                self._focus_pane(Pane.PROJECTS)
                event.prevent_default()
                event.stop()
            return

        handled = True
        if event.key == "right":
            if self._pane == Pane.PROJECTS:
                self._focus_pane(Pane.SESSIONS)
            elif self._pane == Pane.SESSIONS:
                self._focus_pane(Pane.PREVIEW)
        elif event.key == "left":
            if self._pane == Pane.PREVIEW:
                self._focus_pane(Pane.SESSIONS)
            elif self._pane == Pane.SESSIONS:
                self._focus_pane(Pane.PROJECTS)
        elif event.key == "escape":
            if self._pane == Pane.PREVIEW:
                self._focus_pane(Pane.SESSIONS)
                session = self._current_session()
                if session is not None:
                    self._update_preview(session)
            else:
                self.exit()
        elif event.key == "slash":
            search.focus()
        elif event.character == "r":
            self._retry()
        elif event.character == "q":
            self.exit()
        else:
            handled = False

        if handled:
            event.prevent_default()
            event.stop()
