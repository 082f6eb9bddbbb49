"""Real-time CLI dashboard for proxy monitoring."""

from collections import Counter
from datetime import datetime
from threading import Lock

import httpx
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import write_cli_log, write_forward_log

console = Console()


class ForwardInfo:
    """Info about a single forwarded request."""

    def __init__(
        self,
        route: str,
        method: str,
        path: str,
        status: int,
        elapsed_ms: float,
        timestamp: datetime,
    ):
        self.route = route
        self.method = method
        self.path = path[:60] + "..." if len(path) > 60 else path
        self.status = status
        self.elapsed_ms = elapsed_ms
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing forwarded requests per route."""

    def __init__(self, config: Config, *, write_logs: bool = True):
        self.config = config
        self._lock = Lock()
        self._write_logs = write_logs
        self._recent: list[ForwardInfo] = []
        self._max_recent = 10
        self._forward_count: Counter[str] = Counter()
        self._rejection_count: Counter[str] = Counter()
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_forward(
        self,
        route: str,
        method: str,
        path: str,
        target_url: str,
        status: int,
        *,
        headers: httpx.Headers,
        elapsed_ms: float,
    ) -> None:
        """Log a request that was forwarded and replied to."""
        with self._lock:
            self._forward_count[route] += 1
            self._recent.insert(
                0,
                ForwardInfo(route, method, path, status, elapsed_ms, datetime.now()),
            )
            self._recent = self._recent[: self._max_recent]
            self._refresh()

            if self._write_logs:
                write_forward_log(
                    route,
                    method,
                    path,
                    target_url,
                    status,
                    headers.multi_items(),
                    elapsed_ms=elapsed_ms,
                )
                write_cli_log("FORWARD", f"{method} {path} -> {target_url}", status=status)

    def log_rejection(self, route: str, kind: str, stage: str, message: str) -> None:
        """Log a rejected forwarding operation."""
        with self._lock:
            self._rejection_count[route] += 1
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {kind}@{stage}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            if self._write_logs:
                write_cli_log("REJECTED", message[:200], route=route, kind=kind, stage=stage)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_recent_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Prefix Proxy", style="bold cyan")
        for route in sorted(set(self._forward_count) | set(self._rejection_count)):
            stats.append("  |  ")
            stats.append(f"{route}: {self._forward_count[route]}", style="blue")
            if self._rejection_count[route]:
                stats.append(f" ({self._rejection_count[route]} rejected)", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_recent_panel(self) -> Panel:
        """Build the recent forwards panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Route", width=16)
            table.add_column("Method", width=7)
            table.add_column("Path", ratio=2)
            table.add_column("Status", width=6)
            table.add_column("ms", justify="right", width=8)

            for info in self._recent:
                style = "red" if info.status >= 500 else "yellow" if info.status >= 400 else "green"
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    info.route[:16],
                    info.method,
                    info.path,
                    Text(str(info.status), style=style),
                    f"{info.elapsed_ms:.1f}",
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Forwarded[/blue]", border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with rejections and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"Listening on http://{self.config.proxy.host}:{self.config.proxy.port}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
