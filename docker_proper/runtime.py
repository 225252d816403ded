import logging
from typing import List, Protocol

import docker
import requests

from .errors import ConflictError, MalformedResponseError, NotFoundError, TransportError
from .models import ContainerRecord, ContainerSummary, ImageRecord

logger = logging.getLogger(__name__)

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"


class Runtime(Protocol):
    """What the cleanup needs from a container runtime."""

    def ping(self) -> None: ...

    def list_containers(self, include_stopped: bool = True) -> List[ContainerSummary]: ...

    def inspect_container(self, container_id: str) -> ContainerRecord: ...

    def list_images(self) -> List[ImageRecord]: ...

    def remove_container(self, container_id: str) -> None: ...

    def remove_image(self, image: str) -> None: ...


def translate_error(e, action):
    """Maps a docker SDK or requests error onto our error kinds."""
    if isinstance(e, docker.errors.NotFound):
        return NotFoundError(f"{action}: {e}", status_code=404)
    if isinstance(e, docker.errors.APIError):
        status = e.status_code
        if status == 409:
            return ConflictError(f"{action}: {e}", status_code=409)
        return TransportError(f"{action}: {e}", status_code=status)
    return TransportError(f"{action}: {e}")


class DockerRuntime:
    """Talks to the Docker daemon through the low level docker SDK client."""

    def __init__(self, base_url=DEFAULT_DOCKER_HOST, timeout=60, client=None):
        self.base_url = base_url
        if client is None:
            try:
                client = docker.APIClient(base_url=base_url, version="auto", timeout=timeout)
            except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
                raise translate_error(e, f"Could not connect to Docker daemon at {base_url}") from e
        self.client = client

    def _call(self, action, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise translate_error(e, action) from e

    def ping(self):
        self._call(f"Could not connect to Docker daemon at {self.base_url}", self.client.ping)

    def list_containers(self, include_stopped=True):
        data = self._call("Could not list containers", self.client.containers, all=include_stopped)
        if not isinstance(data, list):
            raise MalformedResponseError(f"Container listing is not a list: {data!r}")
        return [ContainerSummary.from_api(entry) for entry in data]

    def inspect_container(self, container_id):
        data = self._call(
            f"Could not inspect container {container_id}",
            self.client.inspect_container,
            container_id,
        )
        return ContainerRecord.from_api(data)

    def list_images(self):
        data = self._call("Could not list images", self.client.images)
        if not isinstance(data, list):
            raise MalformedResponseError(f"Image listing is not a list: {data!r}")
        return [ImageRecord.from_api(entry) for entry in data]

    def remove_container(self, container_id):
        self._call(
            f"Could not remove container {container_id}",
            self.client.remove_container,
            container_id,
        )

    def remove_image(self, image):
        self._call(f"Could not remove image {image}", self.client.remove_image, image)

    def close(self):
        self.client.close()
