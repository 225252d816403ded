import enum
import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import ConflictError, NotFoundError, TransportError

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    REMOVED = "removed"
    DRY_RUN = "dry_run"
    IN_USE = "in_use"
    MISSING = "missing"
    FAILED = "failed"


@dataclass(frozen=True)
class RemovalResult:
    target: str
    outcome: Outcome
    error: Optional[str] = None


def remove_containers(runtime, containers, dry_run=False) -> List[RemovalResult]:
    """Removes each container, carrying on past failures."""
    results = []
    for container in containers:
        if dry_run:
            logger.info(f"Would remove container {container.short_id} ({container.name})")
            results.append(RemovalResult(container.id, Outcome.DRY_RUN))
            continue

        logger.info(f"rm {container.short_id} ({container.name})")
        try:
            runtime.remove_container(container.id)
        except NotFoundError:
            logger.info(f"Container {container.short_id} is already gone")
            results.append(RemovalResult(container.id, Outcome.MISSING))
        except ConflictError as e:
            logger.debug(f"Container {container.short_id} is in use: {e}")
            results.append(RemovalResult(container.id, Outcome.IN_USE, str(e)))
        except TransportError as e:
            logger.error(f"Failed to remove container {container.short_id}: {e}")
            results.append(RemovalResult(container.id, Outcome.FAILED, str(e)))
        else:
            results.append(RemovalResult(container.id, Outcome.REMOVED))
    return results


def _remove_image(runtime, image) -> RemovalResult:
    # Some daemons refuse to delete a multi-tagged image by id but accept its tags.
    conflict = None
    last_error = None
    for ref in [image.id] + list(image.repo_tags):
        try:
            runtime.remove_image(ref)
        except NotFoundError as e:
            if ref == image.id:
                logger.info(f"Image {image.short_id} is already gone")
                return RemovalResult(image.id, Outcome.MISSING)
            last_error = e
        except ConflictError as e:
            conflict = e
            last_error = e
        except TransportError as e:
            last_error = e
        else:
            if ref != image.id:
                logger.debug(f"Removed image {image.short_id} by tag {ref}")
            return RemovalResult(image.id, Outcome.REMOVED)

    if conflict is not None:
        logger.debug(f"Image {image.short_id} is in use: {conflict}")
        return RemovalResult(image.id, Outcome.IN_USE, str(conflict))
    logger.error(f"Failed to remove image {image.short_id}: {last_error}")
    return RemovalResult(image.id, Outcome.FAILED, str(last_error))


def remove_images(runtime, images, dry_run=False) -> List[RemovalResult]:
    """Removes each image by id, falling back to its tags in order."""
    results = []
    for image in images:
        tags = image.repo_tags or ["<dangling>"]
        if dry_run:
            logger.info(f"Would remove image {image.short_id} with tags: {tags}")
            results.append(RemovalResult(image.id, Outcome.DRY_RUN))
            continue

        logger.info(f"rmi {image.short_id} with tags: {tags}")
        results.append(_remove_image(runtime, image))
    return results
