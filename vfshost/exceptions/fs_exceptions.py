"""
Filesystem Exceptions

Exceptions raised by the in-memory virtual filesystem and the path
utilities built on top of it.

Author: YSNRFD
Version: 1.0.0
"""

from typing import Optional, Any

from .base import HostException


class FileSystemException(HostException):
    """
    Base exception for all filesystem-related errors.

    Attributes:
        message: Human-readable error description
        path: File path associated with the error (if applicable)
        code: POSIX-style error name (ENOENT, EEXIST, ...)
        error_code: Numeric error code for programmatic handling
    """

    code: str = "EIO"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        error_code: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if path:
            ctx["path"] = path
        super().__init__(message, error_code=error_code or 4000, context=ctx)
        self.path = path

    def __str__(self) -> str:
        base = f"[Error {self.error_code}] {self.code}: {self.message}"
        if self.path:
            base = f"{base} (path={self.path})"
        return base


class NotFoundError(FileSystemException):
    """
    The path does not exist, or a file was expected and a directory found.

    Example:
        >>> raise NotFoundError("/libs/lib.d.ts")
    """

    code = "ENOENT"

    def __init__(
        self,
        path: str,
        reason: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if reason:
            ctx["reason"] = reason
        super().__init__(
            message=f"No such file or directory: {path}",
            path=path,
            error_code=4001,
            context=ctx
        )
        self.reason = reason


class AlreadyExistsError(FileSystemException):
    """
    The path already exists and the operation does not allow it.

    Example:
        >>> raise AlreadyExistsError("/node_modules")
    """

    code = "EEXIST"

    def __init__(
        self,
        path: str,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=f"File already exists: {path}",
            path=path,
            error_code=4002,
            context=context
        )


class TypeConflictError(FileSystemException):
    """
    A path segment has the wrong kind: a file where a directory is
    required, or a directory where a file is required.

    Example:
        >>> raise TypeConflictError("/a/b", segment="/a", expected="directory")
    """

    def __init__(
        self,
        path: str,
        segment: Optional[str] = None,
        expected: str = "directory",
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if segment:
            ctx["segment"] = segment
        ctx["expected"] = expected
        super().__init__(
            message=f"Not a {expected}: {segment or path}",
            path=path,
            error_code=4003,
            context=ctx
        )
        self.segment = segment
        self.expected = expected

    @property
    def code(self) -> str:  # type: ignore[override]
        return "ENOTDIR" if self.expected == "directory" else "EISDIR"
