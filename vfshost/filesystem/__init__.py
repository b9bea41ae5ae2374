"""
vfshost Virtual File System Module

Provides the in-memory file system:
- Hierarchical directory structure of FileNodes
- POSIX path resolution
- Synchronous file and directory operations
- Recursive directory creation (mkdirp)
"""

from .node import FileNode, FileStat, NodeKind
from .path_resolver import PathResolver
from .vfs import VirtualFileSystem
from .mkdirp import mkdirp

__all__ = [
    # Nodes
    'FileNode',
    'FileStat',
    'NodeKind',
    # Path Resolver
    'PathResolver',
    # VFS
    'VirtualFileSystem',
    'mkdirp',
]
