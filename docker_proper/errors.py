"""Exceptions raised while talking to the Docker daemon or reading its answers."""


class ProperError(Exception):
    """Base class for all docker-proper errors."""


class TransportError(ProperError):
    """The Docker daemon could not be reached or answered with an error."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TransportError):
    """The container or image does not exist (anymore)."""


class ConflictError(TransportError):
    """The container or image is in use and cannot be removed."""


class MalformedResponseError(ProperError):
    """A payload from the daemon lacks fields the cleanup relies on."""


class MalformedTimestampError(MalformedResponseError):
    """A timestamp from the daemon could not be parsed."""
