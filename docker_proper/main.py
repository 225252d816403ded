import logging
from typing import Optional

import typer

from . import config, daemon
from .errors import ProperError

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False)


@app.command()
def main(
    host: Optional[str] = typer.Option(None, "--host", "-a", help="Address of the Docker daemon."),
    container_age: Optional[str] = typer.Option(None, "--container-age", "--ca", help="Max container age, e.g. 672h or 4w."),
    image_age: Optional[str] = typer.Option(None, "--image-age", "--ia", help="Max image age, e.g. 672h or 4w."),
    interval: Optional[str] = typer.Option(None, "--interval", "-r", help="Run continuously in the given interval; 0 runs once."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview what would be deleted without actually deleting."),
    unsafe: bool = typer.Option(False, "--unsafe", "-u", help="Delete containers without a recorded finish time."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Be verbose."),
    config_file: Optional[str] = typer.Option(None, "--config", help="Path of the JSON config file."),
    tui: bool = typer.Option(False, "--tui", help="Open the interactive preview instead of cleaning up."),
):
    """Removes old stopped containers and unused images."""
    cfg = config.load_config(config_file)
    if host:
        cfg["docker_host"] = host

    try:
        settings = config.CleanupSettings.from_config(
            cfg,
            max_container_age=container_age,
            max_image_age=image_age,
            allow_missing_finish_time=True if unsafe else None,
            dry_run=True if dry_run else None,
        )
        repeat = config.parse_duration(interval if interval is not None else cfg.get("interval", "0"))
    except ValueError as e:
        raise typer.BadParameter(str(e))

    if tui:
        from .tui import ProperApp

        ProperApp(config_file=config_file, cfg=cfg, settings=settings, verbose=verbose or None).run()
        return

    daemon.setup_logging(cfg, verbose=verbose or None)
    try:
        daemon.run_daemon(cfg, settings, repeat)
    except ProperError as e:
        logger.error(f"Cleanup failed: {e}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
