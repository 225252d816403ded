"""
Tests for parsing Docker API payloads.
"""

from datetime import datetime, timezone

import pytest

from docker_proper.errors import MalformedResponseError, MalformedTimestampError
from docker_proper.models import (
    ContainerRecord,
    ContainerSummary,
    ImageRecord,
    parse_docker_timestamp,
    volume_source_name,
)


def inspect_payload(**overrides):
    payload = {
        "Id": "4fa6e0f0c678",
        "Name": "/data",
        "Created": "2014-08-24T13:47:52.538542314Z",
        "Image": "sha256:busybox",
        "State": {"Running": False, "FinishedAt": "2014-08-25T09:00:00.12Z"},
        "HostConfig": {"VolumesFrom": ["config:ro", "logs"]},
    }
    payload.update(overrides)
    return payload


class TestTimestamps:
    """Docker timestamp parsing"""

    def test_nanoseconds_are_truncated(self):
        ts = parse_docker_timestamp("2014-09-24T13:47:52.538542314Z")
        assert ts == datetime(2014, 9, 24, 13, 47, 52, 538542, tzinfo=timezone.utc)

    def test_offset_is_converted_to_utc(self):
        ts = parse_docker_timestamp("2014-09-24T15:47:52+02:00")
        assert ts == datetime(2014, 9, 24, 13, 47, 52, tzinfo=timezone.utc)

    def test_zero_time_is_unset(self):
        assert parse_docker_timestamp("0001-01-01T00:00:00Z") is None

    @pytest.mark.parametrize("value", [None, "", "yesterday", "2014-09-24", 1411566472])
    def test_invalid(self, value):
        with pytest.raises(MalformedTimestampError):
            parse_docker_timestamp(value)


class TestContainerRecord:
    """Building records from inspect payloads"""

    def test_from_api(self):
        record = ContainerRecord.from_api(inspect_payload())
        assert record.name == "data"
        assert record.running is False
        assert record.image == "sha256:busybox"
        assert record.volumes_from == ["config", "logs"]
        assert record.finished == datetime(2014, 8, 25, 9, 0, 0, 120000, tzinfo=timezone.utc)

    def test_never_finished(self):
        record = ContainerRecord.from_api(inspect_payload(State={"Running": False, "FinishedAt": "0001-01-01T00:00:00Z"}))
        assert record.finished is None

    def test_missing_creation_time_is_fatal(self):
        payload = inspect_payload()
        del payload["Created"]
        with pytest.raises(MalformedTimestampError):
            ContainerRecord.from_api(payload)

    def test_missing_id(self):
        with pytest.raises(MalformedResponseError):
            ContainerRecord.from_api({"Name": "/x"})

    def test_volume_source_name(self):
        assert volume_source_name("data:rw") == "data"
        assert volume_source_name("/data") == "data"
        assert volume_source_name("data") == "data"


class TestListings:
    """Container and image listing entries"""

    def test_container_summary(self):
        summary = ContainerSummary.from_api({"Id": "abc", "Names": ["/web", "/proxy/web"]})
        assert summary.names == ["web", "proxy/web"]

    def test_image_record(self):
        image = ImageRecord.from_api({
            "Id": "sha256:0123456789abcdef",
            "Created": 1411566472,
            "RepoTags": ["busybox:latest", "<none>:<none>"],
        })
        assert image.repo_tags == ["busybox:latest"]
        assert image.created == datetime.fromtimestamp(1411566472, tz=timezone.utc)
        assert image.short_id == "0123456789ab"

    def test_image_without_tags(self):
        image = ImageRecord.from_api({"Id": "sha256:abc", "Created": 1411566472, "RepoTags": None})
        assert image.repo_tags == []

    def test_image_with_bad_created(self):
        with pytest.raises(MalformedTimestampError):
            ImageRecord.from_api({"Id": "sha256:abc", "Created": "yesterday"})
