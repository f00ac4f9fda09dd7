"""Domain error taxonomy.

Raised by services and translated into HTTP envelopes by `promptops.api.errors`.
NotFound messages are constant per entity kind: they never say whether the resource
exists under another tenant or project.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for errors raised by the domain layer."""

    code = "DOMAIN_ERROR"
    default_message = "Domain error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(DomainError):
    """Malformed client input (identifiers, pagination, names)."""

    code = "BAD_REQUEST"
    default_message = "Invalid input"


class NotFoundError(DomainError):
    code = "NOT_FOUND"
    default_message = "Resource not found"


class PromptNotFound(NotFoundError):
    default_message = "Prompt not found"


class DatasetNotFound(NotFoundError):
    default_message = "Dataset not found"


class VersionNotFoundError(DomainError):
    code = "VERSION_NOT_FOUND"
    default_message = "Version not found"


class SlugConflictError(DomainError):
    code = "SLUG_CONFLICT"
    default_message = "Slug already in use"


class ConcurrentUpdateError(DomainError):
    """Un autre écrivain est passé avant (compare-and-swap perdu, ou verrou d'écriture
    non obtenu dans le délai)."""

    code = "CONCURRENT_UPDATE"
    default_message = "Concurrent modification detected, retry the request"


class ConsistencyViolationError(DomainError):
    """Invariant interne cassé à la lecture (ex: routeur vers une version absente)."""

    code = "CONSISTENCY_VIOLATION"
    default_message = "Stored state is inconsistent"
