"""
vfshost Exception Hierarchy

All custom exceptions inherit from HostException, with specific
sub-categories for the filesystem and for the host/compiler layers.

Architecture:
    HostException (Base)
    ├── FileSystemException
    │   ├── NotFoundError
    │   ├── AlreadyExistsError
    │   └── TypeConflictError
    ├── RemoteFetchError
    ├── TransformationError
    ├── HostExitSignal
    ├── ConfigValidationError
    └── SessionClosedError
"""

from .base import HostException

from .fs_exceptions import (
    FileSystemException,
    NotFoundError,
    AlreadyExistsError,
    TypeConflictError,
)

from .host_exceptions import (
    RemoteFetchError,
    TransformationError,
    HostExitSignal,
    ConfigValidationError,
    SessionClosedError,
)

__all__ = [
    "HostException",
    # Filesystem exceptions
    "FileSystemException",
    "NotFoundError",
    "AlreadyExistsError",
    "TypeConflictError",
    # Host exceptions
    "RemoteFetchError",
    "TransformationError",
    "HostExitSignal",
    "ConfigValidationError",
    "SessionClosedError",
]
