"""
Base Exception

Root of the vfshost exception hierarchy.

Author: YSNRFD
Version: 1.0.0
"""

from typing import Optional, Any


class HostException(Exception):
    """
    Base exception for all vfshost errors.

    Every error carries a numeric ``error_code`` (4xxx filesystem,
    5xxx network and compiler, 6xxx configuration and lifecycle) and a
    ``context`` dict that is rendered after the message and attached to
    log records.

    Example:
        >>> str(HostException("Session failure", error_code=6101, context={'session': 'a1'}))
        '[Error 6101] Session failure (session=a1)'
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or 0
        self.context: dict[str, Any] = dict(context or {})

    def describe_context(self) -> str:
        return ", ".join(f"{key}={value}" for key, value in self.context.items())

    def __str__(self) -> str:
        details = self.describe_context()
        if details:
            return f"[Error {self.error_code}] {self.message} ({details})"
        return f"[Error {self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, error_code={self.error_code})"
