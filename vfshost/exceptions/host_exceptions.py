"""
Host Exceptions

Errors raised outside the filesystem proper: remote package fetches,
the pre-emit transformation hook, controlled exits, configuration and
session lifecycle.

Author: YSNRFD
Version: 1.0.0
"""

from typing import Optional, Any

from .base import HostException


class RemoteFetchError(HostException):
    """
    Retrieving a package manifest, declaration file or default library
    failed.

    Fetch failures are deferred: they are stored on a FetchOutcome and
    raised only when an action that depends on the package is attempted.

    Example:
        >>> raise RemoteFetchError("left-pad", "HTTP 404", status=404)
    """

    def __init__(
        self,
        package: str,
        reason: str,
        url: Optional[str] = None,
        status: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        ctx["package"] = package
        if url:
            ctx["url"] = url
        if status is not None:
            ctx["status"] = status
        super().__init__(
            message=f"Failed to fetch {package}: {reason}",
            error_code=5001,
            context=ctx
        )
        self.package = package
        self.reason = reason
        self.url = url
        self.status = status


class TransformationError(HostException):
    """
    The pre-emit transformation hook raised.

    This signals a defect in the transformation, so it is raised
    immediately and never retried. The original exception is chained
    as ``__cause__`` and kept on ``cause``.
    """

    def __init__(
        self,
        file_name: str,
        cause: BaseException,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        ctx["file_name"] = file_name
        ctx["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__(
            message=f"Transformation failed for {file_name}",
            error_code=5101,
            context=ctx
        )
        self.file_name = file_name
        self.cause = cause


class HostExitSignal(HostException):
    """Raised by the host bridge's exit() to cancel the current unit of work."""

    def __init__(self, exit_code: int = 0) -> None:
        super().__init__(
            message=f"Host exit requested with code {exit_code}",
            error_code=5201,
            context={"exit_code": exit_code}
        )
        self.exit_code = exit_code


class ConfigValidationError(HostException):
    """Raised when configuration loading or validation fails."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if key:
            ctx["key"] = key
        super().__init__(message, error_code=6001, context=ctx)
        self.key = key


class SessionClosedError(HostException):
    """An operation was attempted on a session that has been torn down."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            message="Session is closed",
            error_code=6101,
            context={"session": session_id}
        )
        self.session_id = session_id
