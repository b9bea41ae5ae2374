"""
vfshost Host Module

The compiler-facing side of the session:
- HostBridge: synchronous system facade over the VFS
- CompilerHostAdapter: source units, default libraries, module resolution
"""

from .records import PackageIdentity, ResolvedModule, ResolutionOptions
from .system import HostBridge
from .compiler_host import CompilerHostAdapter

__all__ = [
    'PackageIdentity',
    'ResolvedModule',
    'ResolutionOptions',
    'HostBridge',
    'CompilerHostAdapter',
]
