"""Domain error taxonomy shared by the relationship, discovery, chat and identity services."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from linkedup.infra.documents import StoreError
from linkedup.obs import metrics as obs_metrics


class LinkedUpError(Exception):
    """Base class for domain errors; ``reason`` is the machine-readable code."""

    reason: str = "unknown"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class NotAuthenticated(LinkedUpError):
    reason = "not_authenticated"


class InvalidArgument(LinkedUpError):
    reason = "invalid_argument"


class SelfLinkError(InvalidArgument):
    reason = "self_link"


class UnknownTag(InvalidArgument):
    reason = "unknown_tag"

    def __init__(self, tag: str) -> None:
        super().__init__()
        self.tag = tag


class EmptyMessage(InvalidArgument):
    reason = "empty_message"


class MessageTooLong(InvalidArgument):
    reason = "message_too_long"


class InvalidRadius(InvalidArgument):
    reason = "invalid_radius"


class InvalidPhoto(InvalidArgument):
    reason = "invalid_photo"


class NotFound(LinkedUpError):
    reason = "not_found"


class ProfileNotFound(NotFound):
    reason = "profile_not_found"


class Forbidden(LinkedUpError):
    reason = "forbidden"


class NotMatched(Forbidden):
    reason = "not_matched"


class RepositoryError(LinkedUpError):
    """Underlying store failure; the original error is chained as ``__cause__``."""

    reason = "repository_unavailable"

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        super().__init__()
        self.operation = operation
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is None:
            return f"{self.operation} failed"
        return f"{self.operation} failed: {self.cause}"


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except StoreError as exc:
        obs_metrics.inc_store_error(operation)
        raise RepositoryError(operation, exc) from exc
