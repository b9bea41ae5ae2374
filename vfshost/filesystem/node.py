"""
File Node Module

Nodes of the in-memory file tree. A directory node owns its children
by name; a file node owns its content bytes.

Author: YSNRFD
Version: 1.0.0
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List


class NodeKind(Enum):
    """Kinds of nodes."""
    FILE = 1
    DIRECTORY = 2


@dataclass(frozen=True)
class FileStat:
    """Result of a stat() call."""
    is_file: bool
    is_directory: bool
    size: int = 0
    mtime: float = 0.0


@dataclass
class FileNode:
    """
    A node in the virtual file tree.

    Every node has exactly one parent (the directory whose ``children``
    holds it), so the structure is always a tree.
    """

    name: str
    kind: NodeKind

    mtime: float = field(default_factory=time.time)
    ctime: float = field(default_factory=time.time)

    _data: bytes = field(default_factory=bytes, repr=False)
    _children: dict[str, 'FileNode'] = field(default_factory=dict, repr=False)

    @classmethod
    def directory(cls, name: str) -> 'FileNode':
        return cls(name=name, kind=NodeKind.DIRECTORY)

    @classmethod
    def file(cls, name: str, data: bytes = b'') -> 'FileNode':
        return cls(name=name, kind=NodeKind.FILE, _data=data)

    @property
    def is_directory(self) -> bool:
        return self.kind == NodeKind.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.kind == NodeKind.FILE

    @property
    def size(self) -> int:
        return len(self._data)

    def stat(self) -> FileStat:
        return FileStat(
            is_file=self.is_file,
            is_directory=self.is_directory,
            size=self.size,
            mtime=self.mtime,
        )

    # File operations

    def read(self) -> bytes:
        """Return the whole content of a file node."""
        if not self.is_file:
            raise ValueError("Not a file")
        return self._data

    def write(self, data: bytes) -> int:
        """Replace the content of a file node."""
        if not self.is_file:
            raise ValueError("Not a file")

        self._data = data
        self.mtime = time.time()
        self.ctime = self.mtime
        return len(data)

    # Directory operations

    def add_child(self, node: 'FileNode') -> None:
        """Attach a child node under its own name."""
        if not self.is_directory:
            raise ValueError("Not a directory")

        self._children[node.name] = node
        self.mtime = time.time()

    def get_child(self, name: str) -> Optional['FileNode']:
        if not self.is_directory:
            return None
        return self._children.get(name)

    def child_names(self) -> List[str]:
        """Names of the children, sorted."""
        if not self.is_directory:
            return []
        return sorted(self._children)

    def children(self) -> List['FileNode']:
        return [self._children[name] for name in self.child_names()]
