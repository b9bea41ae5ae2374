"""
vfshost - In-memory filesystem and compiler host for in-editor builds

This package provides a session-scoped virtual filesystem and the
synchronous host facade a source-to-source compiler needs, so a full
"compile with a custom transformation" cycle runs without a server.
"""

__version__ = "1.0.0"
__author__ = "YSNRFD"

from .core.session import Session
from .core.config_loader import Config, ConfigLoader
from .filesystem import VirtualFileSystem, mkdirp
from .host import HostBridge, CompilerHostAdapter
from .packages import PackageFetcher, DefaultLibraryLoader
from .transform import TransformationInvocation
from .plugin import RuntimeCheckPlugin

__all__ = [
    'Session',
    'Config',
    'ConfigLoader',
    'VirtualFileSystem',
    'mkdirp',
    'HostBridge',
    'CompilerHostAdapter',
    'PackageFetcher',
    'DefaultLibraryLoader',
    'TransformationInvocation',
    'RuntimeCheckPlugin',
]
