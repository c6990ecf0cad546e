"""Failure classes for the merge workflow.

Every class carries the HTTP status the API answers with, so transports only
need to render ``str(exc)`` and ``exc.status_code``.
"""

from __future__ import annotations

from typing import ClassVar


class MergeError(RuntimeError):
    """Base class for merge failures surfaced to callers."""

    status_code: ClassVar[int] = 500


class Unauthenticated(MergeError):
    """No actor identity accompanied the request."""

    status_code = 401


class PermissionDenied(MergeError):
    """The actor lacks the administrative role."""

    status_code = 403


class InvalidArgument(MergeError):
    """The request itself is malformed (self-merge, unknown type or field)."""

    status_code = 400


class NotFound(MergeError):
    """The source or target row does not exist."""

    status_code = 404


class InvalidState(MergeError):
    """The source or target has already been merged into another record."""

    status_code = 400


class PersistenceFailure(MergeError):
    """An underlying store write failed; the merge was rolled back."""

    status_code = 500


class AuditWriteFailure(MergeError):
    """The audit row could not be written.

    Non-fatal under the default policy: it is logged and the merge still commits.
    """

    status_code = 500
