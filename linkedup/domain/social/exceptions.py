"""Domain-level exceptions for links and matches."""

from __future__ import annotations

from linkedup.domain.common.exceptions import InvalidArgument, NotMatched, RepositoryError, SelfLinkError

__all__ = ["InvalidArgument", "NotMatched", "RepositoryError", "SelfLinkError"]
