"""TUI Dashboard for bran."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Footer, Header, Label, RichLog, Static
from textual.worker import Worker, WorkerState

from .config import Host
from .executor import Executor, Job, NodeStatus, RunResult
from .log import Category, Output, Stream

STATUS_ICONS = {
    NodeStatus.PENDING: ("·", "dim"),
    NodeStatus.RUNNING: ("●", "yellow"),
    NodeStatus.SUCCESS: ("✔", "green"),
    NodeStatus.FAILED: ("✘", "red"),
}

CATEGORY_MARKUP = {
    Category.COMMAND: "bold green",
    Category.ERROR: "bold red",
    Category.SUCCESS: "bold green",
}


@dataclass
class HostOutput(Message):
    """Message for a line of host output."""

    host_name: str
    stream: Stream
    category: Category
    text: str


@dataclass
class HostStatusChange(Message):
    """Message for host status change."""

    host_name: str
    status: NodeStatus


class DashboardOutput(Output):
    """Output that forwards lines to the dashboard instead of the console."""

    def __init__(self, app: App):
        super().__init__(stdout_is_tty=False, stderr_is_tty=False)
        self.app = app

    def emit(self, caller_id: str, stream: Stream, category: Category, text: str) -> None:
        # post_message is thread safe; the engine runs on a worker thread
        self.app.post_message(HostOutput(caller_id, stream, category, text.rstrip()))

    def banner(self, text: str) -> None:
        """Drop banners; the panels have no summary area.

        The CLI prints the summary to the console once the app exits.
        """


class HostPanel(Static):
    """A panel displaying output for a single host."""

    status: reactive[NodeStatus] = reactive(NodeStatus.PENDING)

    def __init__(self, host: Host, **kwargs) -> None:
        super().__init__(**kwargs)
        self.host = host

    def compose(self) -> ComposeResult:
        yield Label(self._get_header(), id=f"header-{self.id}")
        yield RichLog(
            id=f"log-{self.id}",
            highlight=False,
            markup=True,
            wrap=True,
            auto_scroll=True,
        )

    def _get_header(self) -> str:
        icon, color = STATUS_ICONS.get(self.status, ("?", "white"))
        name = escape(self.host.name)
        target = escape(f"{self.host.user}@{self.host.address}:{self.host.build_dir}")
        return f"[{color}]{icon}[/] [{color}][bold]{name}[/bold][/] [{color}]{target}[/]"

    def watch_status(self, status: NodeStatus) -> None:
        """Update header when status changes."""
        if not self.is_mounted:
            return
        header = self.query_one(f"#header-{self.id}", Label)
        header.update(self._get_header())

    def append_output(self, category: Category, stream: Stream, line: str) -> None:
        """Append a line of output to this panel."""
        log = self.query_one(f"#log-{self.id}", RichLog)
        text = escape(f"$ {line}" if category is Category.COMMAND else line)
        style = CATEGORY_MARKUP.get(category)
        if style is None and stream is Stream.STDERR:
            style = "red"
        log.write(f"[{style}]{text}[/]" if style else text)


class StatusBar(Static):
    """Bottom status bar showing overall progress."""

    completed: reactive[int] = reactive(0)
    total: reactive[int] = reactive(0)
    running: reactive[bool] = reactive(True)

    def render(self) -> str:
        status = "Running..." if self.running else "Complete"
        return f"Progress: {self.completed}/{self.total} hosts complete | {status} | Press 'q' to quit"


class Dashboard(App):
    """Shows one live panel per host while a job runs on all of them."""

    CSS = """
    Screen {
        layout: grid;
        grid-size: 2;
        grid-gutter: 1;
    }

    HostPanel {
        border: solid $primary;
        height: 100%;
        min-height: 10;
    }

    HostPanel Label {
        dock: top;
        padding: 0 1;
        background: $surface;
    }

    HostPanel RichLog {
        height: 1fr;
        padding: 0 1;
    }

    StatusBar {
        dock: bottom;
        height: 1;
        background: $surface;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("escape", "quit", "Quit"),
    ]

    def __init__(self, hosts: Mapping[str, Host], job: Job, task: str = "Build", **kwargs) -> None:
        super().__init__(**kwargs)
        self.hosts = hosts
        self.job = job
        self.task_name = task
        self.panels: dict[str, HostPanel] = {}
        self.executor: Executor | None = None
        self.result: RunResult | None = None
        self.error: BaseException | None = None
        self._worker: Worker | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        for index, host in enumerate(self.hosts.values()):
            panel = HostPanel(host, id=f"panel-{index}")
            self.panels[host.name] = panel
            yield panel

        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Start execution when the app mounts."""
        self.title = f"bran {self.task_name.lower()}"
        status_bar = self.query_one("#status-bar", StatusBar)
        status_bar.total = len(self.hosts)

        self.executor = Executor(
            self.hosts,
            DashboardOutput(self),
            on_status=self._on_status,
        )
        self._worker = self.run_worker(
            self._run_execution(), exclusive=True, thread=True, exit_on_error=False
        )

    async def _run_execution(self) -> None:
        if self.executor:
            self.result = await self.executor.run_all(self.job, self.task_name)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Handle worker completion."""
        if event.worker is not self._worker:
            return
        if event.state in (WorkerState.SUCCESS, WorkerState.ERROR):
            if event.state == WorkerState.ERROR:
                self.error = event.worker.error
            status_bar = self.query_one("#status-bar", StatusBar)
            status_bar.running = False

    def _on_status(self, host_name: str, status: NodeStatus) -> None:
        self.post_message(HostStatusChange(host_name, status))

    def on_host_output(self, message: HostOutput) -> None:
        if message.host_name in self.panels:
            self.panels[message.host_name].append_output(
                message.category, message.stream, message.text
            )

    def on_host_status_change(self, message: HostStatusChange) -> None:
        if message.host_name in self.panels:
            self.panels[message.host_name].status = message.status

        if message.status in (NodeStatus.SUCCESS, NodeStatus.FAILED):
            status_bar = self.query_one("#status-bar", StatusBar)
            status_bar.completed += 1

    async def action_quit(self) -> None:
        """Quit the application."""
        if self._worker and self._worker.is_running:
            self._worker.cancel()
        self.exit()
