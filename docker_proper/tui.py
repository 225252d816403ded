import dataclasses
import os
from contextlib import closing
from datetime import datetime, timezone

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Grid, Horizontal
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Static, Switch, TabbedContent, TabPane

from . import config, daemon
from .errors import ProperError


def get_log_file(cfg):
    """Get the log file path with fallback options."""
    primary_log = cfg.get("log_file", config.DEFAULT_CONFIG["log_file"])
    if os.path.exists(primary_log):
        return primary_log
    elif os.path.exists(daemon.FALLBACK_LOG_FILE):
        return daemon.FALLBACK_LOG_FILE
    return primary_log


def format_age(moment, now=None):
    """Format a datetime as a relative age."""
    if moment is None:
        return "never"
    now = now or datetime.now(timezone.utc)
    age_days = (now - moment).days
    if age_days <= 0:
        return "Today"
    elif age_days == 1:
        return "1 day ago"
    elif age_days < 7:
        return f"{age_days} days ago"
    elif age_days < 30:
        weeks = age_days // 7
        return f"{weeks} week{'s' if weeks > 1 else ''} ago"
    months = age_days // 30
    return f"{months} month{'s' if months > 1 else ''} ago"


class ProperApp(App):
    """Shows what the next cleanup cycle would remove."""

    TITLE = "docker-proper"
    SUB_TITLE = "Expired container and image collector"

    CSS = """
    #metrics_grid, #settings_grid {
        grid-size: 2;
        grid-columns: 1fr 2fr;
        height: auto;
        margin: 1;
    }
    .section-header {
        text-style: bold;
        margin: 1 0 0 1;
    }
    .button_row {
        height: auto;
        margin: 0 1;
    }
    .status-message {
        margin: 0 1;
    }
    DataTable {
        height: auto;
        max-height: 20;
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", priority=True),
        Binding("d", "toggle_dark", "Toggle Dark Mode"),
        Binding("r", "refresh", "Refresh"),
        Binding("p", "preview", "Preview"),
    ]

    def __init__(self, config_file=None, cfg=None, settings=None, verbose=None):
        """cfg and settings carry command line overrides; they stay fixed for the session."""
        super().__init__()
        self.config_file = config_file
        self.cfg = cfg if cfg is not None else config.load_config(config_file)
        self.cleanup_settings = settings if settings is not None else config.CleanupSettings.from_config(self.cfg)
        self.verbose = verbose

    def compose(self) -> ComposeResult:
        yield Header()
        with TabbedContent(id="tabs"):
            with TabPane("Dashboard", id="dashboard_tab"):
                yield Container(
                    Grid(
                        Static("Docker daemon"),
                        Static(id="docker_status"),
                        Static("Containers"),
                        Static(id="total_containers"),
                        Static("Images"),
                        Static(id="total_images"),
                        Static("Expired (last preview)"),
                        Static(id="expired_counts"),
                        Static("Max container / image age"),
                        Static(id="max_ages"),
                        Static("Interval"),
                        Static(id="interval"),
                        id="metrics_grid",
                    ),
                    Static("Recent Activity", classes="section-header"),
                    DataTable(id="log_table", cursor_type="none", zebra_stripes=True),
                    Button("Refresh Dashboard", id="refresh_dashboard", variant="success"),
                )
            with TabPane("Plan", id="plan_tab"):
                yield Container(
                    Horizontal(
                        Button("Preview", id="preview_button", variant="primary"),
                        Button("Run Cleanup", id="cleanup_button", variant="error"),
                        classes="button_row",
                    ),
                    Static(id="plan_status", classes="status-message"),
                    Static("Containers", classes="section-header"),
                    DataTable(id="container_table", cursor_type="row", zebra_stripes=True),
                    Static("Images", classes="section-header"),
                    DataTable(id="image_table", cursor_type="row", zebra_stripes=True),
                )
            with TabPane("Settings", id="settings_tab"):
                yield Container(
                    Grid(
                        Label("Max container age:"),
                        Input(id="container_age_input", placeholder="4w"),
                        Label("Max image age:"),
                        Input(id="image_age_input", placeholder="4w"),
                        Label("Interval (0 runs once):"),
                        Input(id="interval_input", placeholder="0"),
                        Label("Dry run:"),
                        Switch(id="dry_run_switch"),
                        Label("Unsafe (no finish time):"),
                        Switch(id="unsafe_switch"),
                        id="settings_grid",
                    ),
                    Horizontal(
                        Button("Save Settings", id="save_button", variant="primary"),
                        Button("Test Connection", id="test_button"),
                        classes="button_row",
                    ),
                    Static(id="settings_status", classes="status-message"),
                )
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#container_table", DataTable).add_columns("ID", "Name", "Image", "Created", "Finished")
        self.query_one("#image_table", DataTable).add_columns("ID", "Tags", "Created")
        self.query_one("#log_table", DataTable).add_columns("Time", "Level", "Message")
        daemon.setup_logging(self.cfg, verbose=self.verbose, console=False)
        self.load_settings()
        self.update_dashboard()

    def open_runtime(self):
        return daemon.open_runtime(self.cfg)

    def action_refresh(self) -> None:
        self.update_dashboard()

    def action_preview(self) -> None:
        self.run_preview()

    def update_dashboard(self):
        """Updates the dashboard with current status and logs."""
        cfg = self.cfg
        try:
            with closing(self.open_runtime()) as runtime:
                runtime.ping()
                containers = runtime.list_containers(include_stopped=True)
                images = runtime.list_images()
        except ProperError as e:
            self.query_one("#docker_status", Static).update(f"[bold red]{str(e)[:60]}[/bold red]")
            self.query_one("#total_containers", Static).update("[bold red]Error[/bold red]")
            self.query_one("#total_images", Static).update("[bold red]Error[/bold red]")
        else:
            self.query_one("#docker_status", Static).update(f"[bold green]{cfg.get('docker_host')}[/bold green]")
            self.query_one("#total_containers", Static).update(f"[bold blue]{len(containers)}[/bold blue]")
            self.query_one("#total_images", Static).update(f"[bold blue]{len(images)}[/bold blue]")

        self.query_one("#max_ages", Static).update(
            f"{self.cleanup_settings.max_container_age} / {self.cleanup_settings.max_image_age}"
        )
        self.query_one("#interval", Static).update(str(cfg.get("interval")))

        log_table = self.query_one("#log_table", DataTable)
        log_table.clear()
        log_file_path = get_log_file(cfg)
        try:
            with open(log_file_path, "r") as f:
                lines = f.readlines()
        except OSError:
            log_table.add_row("", "[red]ERROR[/red]", f"Log file not readable: {log_file_path}")
            return
        for line in lines[-15:]:
            parts = line.strip().split(" - ", 3)
            if len(parts) < 4:
                continue
            timestamp = parts[0].split()[-1]
            level = parts[2]
            message = parts[3][:80] + "..." if len(parts[3]) > 80 else parts[3]
            if level == "ERROR":
                level = f"[red]{level}[/red]"
            elif level == "WARNING":
                level = f"[yellow]{level}[/yellow]"
            log_table.add_row(timestamp, level, message)

    def run_preview(self):
        """Classifies without removing and fills the plan tables."""
        status = self.query_one("#plan_status", Static)
        now = datetime.now(timezone.utc)
        settings = dataclasses.replace(self.cleanup_settings, dry_run=True)
        try:
            with closing(self.open_runtime()) as runtime:
                runtime.ping()
                plan = daemon.plan_cycle(runtime, now, settings)
        except ProperError as e:
            status.update(f"[bold red]Preview failed: {str(e)[:80]}[/bold red]")
            return

        container_table = self.query_one("#container_table", DataTable)
        container_table.clear()
        for c in plan.containers:
            container_table.add_row(
                c.short_id, c.name, c.image.replace("sha256:", "")[:12],
                format_age(c.created, now), format_age(c.finished, now), key=c.id,
            )
        image_table = self.query_one("#image_table", DataTable)
        image_table.clear()
        for image in plan.images:
            tags = ", ".join(image.repo_tags) or "<dangling>"
            if len(tags) > 40:
                tags = tags[:37] + "..."
            image_table.add_row(image.short_id, tags, format_age(image.created, now), key=image.id)

        summary = plan.summary
        self.query_one("#expired_counts", Static).update(
            f"{summary.containers_expired} containers, {summary.images_expired} images"
        )
        status.update(
            f"[bold green]Would remove {summary.containers_expired} of {summary.containers_evaluated} containers "
            f"and {summary.images_expired} of {summary.images_evaluated} images[/bold green]"
        )

    def run_cleanup(self):
        status = self.query_one("#plan_status", Static)
        try:
            summary = daemon.cleanup(self.cfg, self.cleanup_settings)
        except ProperError as e:
            status.update(f"[bold red]Cleanup failed: {str(e)[:80]}[/bold red]")
            return
        self.run_preview()
        prefix = "Dry run: " if summary.dry_run else ""
        status.update(
            f"[bold green]{prefix}removed {summary.containers_removed} containers and "
            f"{summary.images_removed} images, {summary.containers_failed + summary.images_failed} failed[/bold green]"
        )

    def load_settings(self):
        """Loads the saved settings into the input fields."""
        cfg = config.load_config(self.config_file)
        self.query_one("#container_age_input", Input).value = str(cfg.get("container_max_age"))
        self.query_one("#image_age_input", Input).value = str(cfg.get("image_max_age"))
        self.query_one("#interval_input", Input).value = str(cfg.get("interval"))
        self.query_one("#dry_run_switch", Switch).value = bool(cfg.get("dry_run_mode"))
        self.query_one("#unsafe_switch", Switch).value = bool(cfg.get("unsafe_mode"))

    def save_settings(self):
        status = self.query_one("#settings_status", Static)
        values = {
            "container_max_age": self.query_one("#container_age_input", Input).value.strip() or "4w",
            "image_max_age": self.query_one("#image_age_input", Input).value.strip() or "4w",
            "interval": self.query_one("#interval_input", Input).value.strip() or "0",
        }
        try:
            for value in values.values():
                config.parse_duration(value)
        except ValueError as e:
            status.update(f"[bold red]{e}[/bold red]")
            return

        cfg = config.load_config(self.config_file)
        cfg.update(values)
        cfg["dry_run_mode"] = self.query_one("#dry_run_switch", Switch).value
        cfg["unsafe_mode"] = self.query_one("#unsafe_switch", Switch).value
        config.save_config(cfg, self.config_file)
        status.update("[bold green]Settings saved. Restart docker-proper to apply them.[/bold green]")
        self.update_dashboard()

    def test_connection(self):
        status = self.query_one("#settings_status", Static)
        try:
            with closing(self.open_runtime()) as runtime:
                runtime.ping()
        except ProperError as e:
            status.update(f"[bold red]Cannot connect to Docker daemon: {str(e)[:60]}[/bold red]")
            return
        status.update("[bold green]Docker daemon is reachable.[/bold green]")

    @on(Button.Pressed)
    def handle_button_press(self, event: Button.Pressed):
        """Handle button press events."""
        if event.button.id == "preview_button":
            self.run_preview()
        elif event.button.id == "cleanup_button":
            self.run_cleanup()
        elif event.button.id == "save_button":
            self.save_settings()
        elif event.button.id == "test_button":
            self.test_connection()
        elif event.button.id == "refresh_dashboard":
            self.update_dashboard()


if __name__ == "__main__":
    ProperApp().run()
