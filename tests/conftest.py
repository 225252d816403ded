"""
Pytest configuration file.

Provides an in-memory runtime and record builders shared by the tests.
"""
from datetime import datetime, timedelta, timezone

import pytest

from docker_proper.errors import NotFoundError
from docker_proper.models import ContainerRecord, ContainerSummary, ImageRecord

NOW = datetime(2014, 9, 30, tzinfo=timezone.utc)
MAX_AGE = timedelta(weeks=4)
OLD = NOW - timedelta(days=60)
RECENT = NOW - timedelta(days=2)


def make_container(name, image="sha256:base", running=False, created=OLD, finished=OLD, volumes_from=()):
    return ContainerRecord(
        id=f"id-{name}",
        name=name,
        created=created,
        running=running,
        finished=finished,
        image=image,
        volumes_from=list(volumes_from),
    )


def make_image(image_id, created=OLD, tags=()):
    return ImageRecord(id=image_id, created=created, repo_tags=list(tags))


class FakeRuntime:
    """Serves fixed records and records every delete call."""

    def __init__(self, containers=(), images=()):
        self.containers = {c.id: c for c in containers}
        self.images = list(images)
        self.removed_containers = []
        self.removed_images = []
        self.container_errors = {}
        self.image_errors = {}
        self.inspect_errors = {}

    def ping(self):
        pass

    def list_containers(self, include_stopped=True):
        return [ContainerSummary(id=c.id, names=[c.name]) for c in self.containers.values()]

    def inspect_container(self, container_id):
        if container_id in self.inspect_errors:
            raise self.inspect_errors[container_id]
        if container_id not in self.containers:
            raise NotFoundError(f"No such container: {container_id}", status_code=404)
        return self.containers[container_id]

    def list_images(self):
        return list(self.images)

    def remove_container(self, container_id):
        self.removed_containers.append(container_id)
        if container_id in self.container_errors:
            raise self.container_errors[container_id]

    def remove_image(self, image):
        self.removed_images.append(image)
        if image in self.image_errors:
            raise self.image_errors[image]


@pytest.fixture
def five_containers():
    """Two running, one without finish time, two old and stopped."""
    return [
        make_container("web", image="sha256:web", running=True, finished=None),
        make_container("worker", image="sha256:web", running=True, finished=None),
        make_container("crashed", image="sha256:app", finished=None),
        make_container("old-job", image="sha256:app"),
        make_container("old-build", image="sha256:builder"),
    ]


@pytest.fixture
def fake_runtime():
    return FakeRuntime()
