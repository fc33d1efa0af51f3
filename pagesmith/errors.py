"""Exception hierarchy shared by the model, generators, and sync engine.

Errors fall into two groups.  Caller errors (``NotFoundError``,
``InvalidInputError``, ``StaleSnapshotError``) mean the request itself was
wrong and retrying it unchanged will not help.  Operational errors
(``SyncError``, ``SerializationError``) come from I/O or data that could not be
read or written; the caller may inspect them and retry.  Nothing in this
package retries on its own.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional


class PagesmithError(Exception):
    """Base class for every error raised by pagesmith."""

    #: ``True`` for errors caused by the request (4xx-equivalent).
    caller_error: bool = False


# ---------------------------------------------------------------------------
# Caller errors
# ---------------------------------------------------------------------------


class NotFoundError(PagesmithError):
    """No project is loaded, or a referenced page/block/model does not exist."""

    caller_error = True

    def __init__(self, kind: str, ident: str | None = None) -> None:
        self.kind = kind
        self.ident = ident
        if ident is None:
            super().__init__(f"No {kind} loaded")
        else:
            super().__init__(f"{kind.capitalize()} not found: {ident!r}")


class InvalidInputError(PagesmithError):
    """A request carried a value outside an accepted set or a malformed name."""

    caller_error = True

    def __init__(
        self,
        message: str,
        *,
        value: object = None,
        accepted: Optional[Iterable[str]] = None,
    ) -> None:
        self.value = value
        self.accepted = list(accepted) if accepted is not None else None
        if self.accepted:
            message = f"{message}. Supported: {', '.join(self.accepted)}"
        super().__init__(message)


class StaleSnapshotError(PagesmithError):
    """A compare-and-set publish lost the race against another writer."""

    caller_error = True

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Project snapshot is stale: expected version {expected}, store is at {actual}"
        )


# ---------------------------------------------------------------------------
# Operational errors
# ---------------------------------------------------------------------------


class SyncError(PagesmithError):
    """A file-system operation failed during init or sync."""

    def __init__(
        self,
        operation: str,
        path: str | Path | None,
        cause: BaseException | str,
    ) -> None:
        self.operation = operation
        self.path = str(path) if path is not None else None
        self.cause = cause
        where = f" at {self.path}" if self.path else ""
        super().__init__(f"{operation} failed{where}: {cause}")


class SyncConflictError(SyncError):
    """A disk edit cannot be folded back into the model.

    Raised when both the file on disk and the model changed since the last
    sync, or when an edited file no longer parses.  Nothing is applied.
    """

    def __init__(self, path: str | Path, reason: str) -> None:
        self.reason = reason
        super().__init__("sync_disk_to_project", path, reason)


class SerializationError(PagesmithError):
    """Importing or exporting the project model failed."""
