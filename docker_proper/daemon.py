import json
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from logging.handlers import RotatingFileHandler
from typing import List

from . import config
from .classify import classify_containers, classify_images
from .models import ContainerRecord, ImageRecord
from .remover import Outcome, remove_containers, remove_images
from .runtime import DockerRuntime, Runtime

logger = logging.getLogger(__name__)

FALLBACK_LOG_FILE = os.path.expanduser("~/.docker-proper.log")


def setup_logging(cfg=None, verbose=None, console=True):
    """Setup logging with fallback options if main log file is not accessible."""
    if cfg is None:
        cfg = config.load_config()
    log_file = cfg.get("log_file", config.DEFAULT_CONFIG["log_file"])
    log_level = cfg.get("log_level", "INFO")
    if verbose is None:
        verbose = cfg.get("verbose", False)

    # Convert string log level to logging constant
    numeric_level = logging.DEBUG if verbose else getattr(logging, str(log_level).upper(), logging.INFO)

    handlers = []
    for path in (log_file, FALLBACK_LOG_FILE):
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            handlers.append(RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5))
            break
        except OSError:
            continue

    # Console handler for immediate feedback, unless a TUI owns the terminal
    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(numeric_level)
        handlers.append(console_handler)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )
    return logging.getLogger("docker_proper")


@dataclass
class CycleSummary:
    containers_evaluated: int = 0
    containers_inspect_failed: int = 0
    containers_expired: int = 0
    containers_removed: int = 0
    containers_in_use: int = 0
    containers_missing: int = 0
    containers_failed: int = 0
    images_evaluated: int = 0
    images_expired: int = 0
    images_removed: int = 0
    images_in_use: int = 0
    images_missing: int = 0
    images_failed: int = 0
    dry_run: bool = False

    def count_results(self, kind, results):
        for result in results:
            if result.outcome is Outcome.REMOVED:
                field = "removed"
            elif result.outcome is Outcome.IN_USE:
                field = "in_use"
            elif result.outcome is Outcome.MISSING:
                field = "missing"
            elif result.outcome is Outcome.FAILED:
                field = "failed"
            else:
                continue
            name = f"{kind}_{field}"
            setattr(self, name, getattr(self, name) + 1)


def write_journal(containers, images, journal_file, now=None):
    """Records what is about to be removed."""
    now = now or datetime.now(timezone.utc)
    journal = {
        "timestamp": now.isoformat(),
        "containers": [
            {
                "id": c.id,
                "name": c.name,
                "image": c.image,
                "created": c.created.isoformat(),
                "finished": c.finished.isoformat() if c.finished else None,
            }
            for c in containers
        ],
        "images": [
            {"id": i.id, "tags": list(i.repo_tags), "created": i.created.isoformat()}
            for i in images
        ],
    }
    try:
        os.makedirs(os.path.dirname(journal_file) or ".", exist_ok=True)
        with open(journal_file, "w") as f:
            json.dump(journal, f, indent=2)
        logger.info(f"Recorded {len(containers)} container(s) and {len(images)} image(s) in {journal_file}")
    except OSError as e:
        logger.error(f"Failed to write removal journal: {e}")


@dataclass
class CyclePlan:
    containers: List[ContainerRecord]
    images: List[ImageRecord]
    summary: CycleSummary


def plan_cycle(runtime: Runtime, now, settings: config.CleanupSettings) -> CyclePlan:
    """Classifies containers and images without removing anything."""
    summary = CycleSummary(dry_run=settings.dry_run)

    summaries = runtime.list_containers(include_stopped=True)
    summary.containers_evaluated = len(summaries)
    failures = []
    expired_containers, usage = classify_containers(
        summaries,
        runtime.inspect_container,
        now,
        settings.max_container_age,
        settings.allow_missing_finish_time,
        failures,
    )
    summary.containers_inspect_failed = len(failures)
    summary.containers_expired = len(expired_containers)
    logger.info(f"Found {len(expired_containers)} expired containers out of {len(summaries)}")

    images = runtime.list_images()
    summary.images_evaluated = len(images)
    expired_images = classify_images(images, usage, now, settings.max_image_age)
    summary.images_expired = len(expired_images)
    logger.info(f"Found {len(expired_images)} expired images out of {len(images)}")
    return CyclePlan(expired_containers, expired_images, summary)


def run_cycle(runtime: Runtime, now, settings: config.CleanupSettings) -> CycleSummary:
    """Classifies containers and images, then removes the expired ones.

    Errors that make the classification untrustworthy (daemon unreachable,
    malformed listings or timestamps) propagate; failures on single items
    are counted in the summary.
    """
    plan = plan_cycle(runtime, now, settings)
    summary = plan.summary
    expired_containers, expired_images = plan.containers, plan.images

    if settings.dry_run:
        logger.info("DRY RUN MODE - nothing will actually be removed")
    elif settings.journal_enabled and (expired_containers or expired_images):
        write_journal(expired_containers, expired_images, settings.journal_file, now)

    summary.count_results("containers", remove_containers(runtime, expired_containers, settings.dry_run))
    summary.count_results("images", remove_images(runtime, expired_images, settings.dry_run))

    logger.info(
        f"Cycle done: removed {summary.containers_removed} container(s) and {summary.images_removed} image(s), "
        f"{summary.containers_failed + summary.images_failed} failure(s)"
    )
    return summary


def open_runtime(cfg) -> DockerRuntime:
    return DockerRuntime(
        cfg.get("docker_host", config.DEFAULT_CONFIG["docker_host"]),
        timeout=cfg.get("api_timeout_seconds", 60),
    )


def cleanup(cfg, settings, now=None, runtime=None) -> CycleSummary:
    """Connects to the daemon and performs one cleanup cycle."""
    logger.info("Starting Docker cleanup cycle.")
    if runtime is not None:
        runtime.ping()  # Verify connection
        return run_cycle(runtime, now or datetime.now(timezone.utc), settings)

    runtime = open_runtime(cfg)
    try:
        runtime.ping()
        return run_cycle(runtime, now or datetime.now(timezone.utc), settings)
    finally:
        runtime.close()


def run_daemon(cfg, settings, interval=timedelta(0), runtime=None, sleep=time.sleep):
    """Runs cleanup cycles every interval; once if the interval is zero.

    Errors are not caught: a failing cycle ends the process and leaves
    recovery to the supervisor.
    """
    if interval:
        logger.info("docker-proper daemon started.")
    while True:
        cleanup(cfg, settings, runtime=runtime)
        if not interval:
            break
        logger.info(f"Sleeping for {interval}")
        sleep(interval.total_seconds())
