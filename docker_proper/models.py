import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from .errors import MalformedResponseError, MalformedTimestampError

# Docker reports "never happened" as Go's zero time
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

UNTAGGED = "<none>:<none>"

_TIMESTAMP_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})$"
)


def parse_docker_timestamp(value, what="timestamp") -> Optional[datetime]:
    """Parses an RFC 3339 timestamp as written by the Docker API.

    Docker uses nanosecond precision, which datetime cannot hold, so the
    fraction is cut down to microseconds. Returns None for the zero time.
    """
    if not isinstance(value, str):
        raise MalformedTimestampError(f"Missing {what}: {value!r}")
    match = _TIMESTAMP_RE.match(value.strip())
    if match is None:
        raise MalformedTimestampError(f"Unparsable {what}: {value!r}")

    fraction = (match.group("fraction") or "0")[:6].ljust(6, "0")
    tz = match.group("tz")
    if tz == "Z":
        tz = "+00:00"
    try:
        parsed = datetime.fromisoformat(f"{match.group('base')}.{fraction}{tz}")
        parsed = parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise MalformedTimestampError(f"Unparsable {what}: {value!r}") from e

    if parsed == ZERO_TIME:
        return None
    return parsed


def parse_unix_timestamp(value, what="timestamp") -> datetime:
    """Parses the integer seconds the image listing uses for creation time."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedTimestampError(f"Missing {what}: {value!r}")
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedTimestampError(f"Unparsable {what}: {value!r}") from e


def strip_name(name: str) -> str:
    """Container names come back from the API with a leading slash."""
    return name[1:] if name.startswith("/") else name


def volume_source_name(entry: str) -> str:
    """Turns a VolumesFrom entry like "data:ro" into the container name."""
    name, sep, mode = entry.rpartition(":")
    if sep and mode in ("ro", "rw"):
        return strip_name(name)
    return strip_name(entry)


@dataclass(frozen=True)
class ContainerSummary:
    id: str
    names: List[str] = field(default_factory=list)

    @property
    def short_id(self):
        return self.id[:12]

    @classmethod
    def from_api(cls, data) -> "ContainerSummary":
        if not isinstance(data, dict) or not data.get("Id"):
            raise MalformedResponseError(f"Container listing entry without Id: {data!r}")
        return cls(id=data["Id"], names=[strip_name(n) for n in data.get("Names") or []])


@dataclass(frozen=True)
class ContainerRecord:
    """Inspected state of one container."""

    id: str
    name: str
    created: datetime
    running: bool
    finished: Optional[datetime]
    image: str
    volumes_from: List[str] = field(default_factory=list)

    @property
    def short_id(self):
        return self.id[:12]

    @classmethod
    def from_api(cls, data) -> "ContainerRecord":
        """Builds a record from the body of GET /containers/{id}/json."""
        if not isinstance(data, dict) or not data.get("Id"):
            raise MalformedResponseError(f"Container inspect payload without Id: {data!r}")
        container_id = data["Id"]
        state = data.get("State") or {}
        host_config = data.get("HostConfig") or {}

        created = parse_docker_timestamp(data.get("Created"), f"creation time of {container_id}")
        if created is None:
            raise MalformedTimestampError(f"Container {container_id} has no creation time")

        finished_raw = state.get("FinishedAt")
        finished = None
        if finished_raw:
            finished = parse_docker_timestamp(finished_raw, f"finish time of {container_id}")

        return cls(
            id=container_id,
            name=strip_name(data.get("Name") or ""),
            created=created,
            running=bool(state.get("Running", False)),
            finished=finished,
            image=data.get("Image") or "",
            volumes_from=[volume_source_name(v) for v in host_config.get("VolumesFrom") or []],
        )


@dataclass(frozen=True)
class ImageRecord:
    id: str
    created: datetime
    repo_tags: List[str] = field(default_factory=list)

    @property
    def short_id(self):
        return self.id.replace("sha256:", "")[:12]

    @classmethod
    def from_api(cls, data) -> "ImageRecord":
        """Builds a record from one entry of GET /images/json."""
        if not isinstance(data, dict) or not data.get("Id"):
            raise MalformedResponseError(f"Image listing entry without Id: {data!r}")
        image_id = data["Id"]
        tags = [t for t in data.get("RepoTags") or [] if t and t != UNTAGGED]
        return cls(
            id=image_id,
            created=parse_unix_timestamp(data.get("Created"), f"creation time of {image_id}"),
            repo_tags=tags,
        )
