"""
Decides which containers and images are expired.

Containers are classified first. While scanning them we record which
containers use which image and how many containers mount volumes from each
container; the image pass then only looks at images nobody would still be
using after the container removals.
"""

import logging
from collections import Counter
from typing import Callable, Dict, List, Optional, Tuple

from .errors import NotFoundError, TransportError
from .models import ContainerRecord, ContainerSummary, ImageRecord

logger = logging.getLogger(__name__)

UsageMap = Dict[str, List[str]]


def _register(container, usage, refcount):
    usage.setdefault(container.image, []).append(container.name)
    for source in container.volumes_from:
        refcount[source] += 1


def _unregister(container, usage, refcount):
    users = usage.get(container.image)
    if users and container.name in users:
        users.remove(container.name)
    for source in container.volumes_from:
        refcount[source] -= 1


def classify_containers(
    containers: List[ContainerSummary],
    inspect: Callable[[str], ContainerRecord],
    now,
    max_age,
    allow_missing_finish_time=False,
    failures: Optional[List[str]] = None,
) -> Tuple[List[ContainerRecord], UsageMap]:
    """Returns the expired containers and the image usage map.

    A container expires when it is stopped, was created and finished more
    than max_age before now, and no surviving container uses it as a volume
    source. Containers whose finish time was never recorded only expire when
    allow_missing_finish_time is set.

    Containers that cannot be inspected are skipped and their ids appended
    to failures. Malformed timestamps raise MalformedTimestampError.
    """
    usage: UsageMap = {}
    refcount: Counter = Counter()
    threshold = now - max_age
    provisional = []

    for summary in containers:
        logger.debug(f"< container: {summary.short_id}")
        try:
            container = inspect(summary.id)
        except (NotFoundError, TransportError) as e:
            logger.warning(f"Skipping container {summary.short_id}: {e}")
            if failures is not None:
                failures.append(summary.id)
            continue

        _register(container, usage, refcount)

        if container.running:
            continue
        logger.debug("  + not running")

        if container.finished is None and not allow_missing_finish_time:
            logger.info(f"Keeping container {container.short_id} ({container.name}): no finish time recorded")
            continue

        if container.created > threshold:
            continue
        logger.debug(f"  + created before {threshold.isoformat()}")

        if container.finished is not None and container.finished > threshold:
            continue
        logger.debug(f"  + exited before {threshold.isoformat()}")

        _unregister(container, usage, refcount)
        provisional.append(container)

    # A kept container needs its volume sources again, which can pin more.
    pinned = set()
    changed = True
    while changed:
        changed = False
        for container in provisional:
            if container.id in pinned or refcount[container.name] <= 0:
                continue
            logger.debug(f"Keeping container {container.short_id} ({container.name}): used as volume source")
            pinned.add(container.id)
            _register(container, usage, refcount)
            changed = True

    expired = [c for c in provisional if c.id not in pinned]
    return expired, usage


def classify_images(images: List[ImageRecord], usage: UsageMap, now, max_age) -> List[ImageRecord]:
    """Returns images older than max_age that no surviving container uses."""
    threshold = now - max_age
    expired = []
    for image in images:
        logger.debug(f"< image: {image.short_id}")
        if usage.get(image.id):
            logger.debug(f"  - in use by {', '.join(usage[image.id])}")
            continue
        if image.created > threshold:
            continue
        logger.debug(f"  + created before {threshold.isoformat()}")
        expired.append(image)
    return expired
