"""
Virtual File System (VFS) Module

Implements the in-memory hierarchical store the compiler host reads
from and writes to:
- Hierarchical directory tree of FileNodes
- Synchronous stat / read / write / mkdir / readdir
- Path resolution against a working directory

Author: YSNRFD
Version: 1.0.0
"""

from typing import Optional, Any, Iterator, List, Tuple

from .node import FileNode, FileStat
from .path_resolver import PathResolver
from vfshost.exceptions import (
    NotFoundError,
    AlreadyExistsError,
    TypeConflictError,
    SessionClosedError,
)
from vfshost.logger import get_logger


class VirtualFileSystem:
    """
    In-memory file system.

    Relative paths are resolved against ``cwd``. Content is stored as
    bytes and encoded or decoded with the encoding given to each call.

    Example:
        >>> vfs = VirtualFileSystem()
        >>> vfs.mkdir('/src')
        >>> vfs.write_file('/src/index.ts', 'export {}')
        >>> vfs.read_file('/src/index.ts')
        'export {}'
    """

    def __init__(self, cwd: str = '/', label: str = 'vfs'):
        self._cwd = PathResolver.normalize(cwd)
        self._label = label
        self._root: Optional[FileNode] = FileNode.directory('/')
        self._logger = get_logger('vfs')

    @property
    def cwd(self) -> str:
        return self._cwd

    @property
    def closed(self) -> bool:
        return self._root is None

    def close(self) -> None:
        """Discard the whole tree. Further operations raise SessionClosedError."""
        self._root = None
        self._logger.debug("Virtual filesystem discarded", context={'label': self._label})

    def resolve(self, path: str) -> str:
        """Absolute normalized form of ``path``."""
        return PathResolver.resolve(path, self._cwd)

    def _require_root(self) -> FileNode:
        if self._root is None:
            raise SessionClosedError(self._label)
        return self._root

    def _find(self, resolved: str) -> Optional[FileNode]:
        """
        Look up an absolute path.

        Returns None when any component is missing or an intermediate
        component is a file.
        """
        node = self._require_root()

        for component in PathResolver.components(resolved):
            node = node.get_child(component)
            if node is None:
                return None

        return node

    def _parent_for_create(self, resolved: str) -> Tuple[FileNode, str]:
        """
        Find the directory that will hold a new node at ``resolved``.

        Raises:
            TypeConflictError: If an ancestor segment is a file
            NotFoundError: If the parent directory does not exist
        """
        components = PathResolver.components(resolved)
        if not components:
            raise AlreadyExistsError(resolved)

        node = self._require_root()
        walked = ''

        for component in components[:-1]:
            walked = f"{walked}/{component}"
            child = node.get_child(component)
            if child is None:
                raise NotFoundError(resolved, reason=f"missing parent {walked}")
            if not child.is_directory:
                raise TypeConflictError(resolved, segment=walked, expected="directory")
            node = child

        return node, components[-1]

    def stat(self, path: str) -> FileStat:
        """
        Get node information for a path.

        Raises:
            NotFoundError: If the path does not exist
            TypeConflictError: If an ancestor segment is a file
        """
        resolved = self.resolve(path)
        node = self._find(resolved)
        if node is None:
            segment = self._file_ancestor(resolved)
            if segment is not None:
                raise TypeConflictError(resolved, segment=segment, expected="directory")
            raise NotFoundError(resolved)
        return node.stat()

    def _file_ancestor(self, resolved: str) -> Optional[str]:
        """First proper ancestor of ``resolved`` that is a file, if any."""
        node = self._require_root()
        walked = ''

        for component in PathResolver.components(resolved)[:-1]:
            node = node.get_child(component)
            if node is None:
                return None
            walked = f"{walked}/{component}"
            if node.is_file:
                return walked

        return None

    def exists(self, path: str) -> bool:
        return self._find(self.resolve(path)) is not None

    def is_file(self, path: str) -> bool:
        node = self._find(self.resolve(path))
        return node is not None and node.is_file

    def is_directory(self, path: str) -> bool:
        node = self._find(self.resolve(path))
        return node is not None and node.is_directory

    def read_file(self, path: str, encoding: str = 'utf-8') -> str:
        """
        Read a whole file as text.

        Raises:
            NotFoundError: If the path is missing or is a directory
        """
        resolved = self.resolve(path)
        node = self._find(resolved)

        if node is None:
            raise NotFoundError(resolved)
        if node.is_directory:
            raise NotFoundError(resolved, reason="is a directory")

        return node.read().decode(encoding)

    def write_file(self, path: str, content: str, encoding: str = 'utf-8') -> None:
        """
        Create or overwrite a file.

        Raises:
            TypeConflictError: If an ancestor is a file or the path is a directory
            NotFoundError: If the parent directory does not exist
        """
        resolved = self.resolve(path)
        parent, name = self._parent_for_create(resolved)
        data = content.encode(encoding)

        existing = parent.get_child(name)
        if existing is None:
            parent.add_child(FileNode.file(name, data))
            self._logger.debug("Created file", context={'path': resolved, 'size': len(data)})
        elif existing.is_directory:
            raise TypeConflictError(resolved, segment=resolved, expected="file")
        else:
            existing.write(data)
            self._logger.debug("Overwrote file", context={'path': resolved, 'size': len(data)})

    def mkdir(self, path: str, exist_ok: bool = False) -> None:
        """
        Create a single directory level.

        Args:
            path: Directory to create
            exist_ok: Accept an existing directory at ``path`` silently

        Raises:
            AlreadyExistsError: If the path exists (and ``exist_ok`` does not apply)
            NotFoundError: If the parent directory does not exist
            TypeConflictError: If an ancestor segment is a file
        """
        resolved = self.resolve(path)
        parent, name = self._parent_for_create(resolved)

        existing = parent.get_child(name)
        if existing is not None:
            if exist_ok and existing.is_directory:
                return
            raise AlreadyExistsError(resolved)

        parent.add_child(FileNode.directory(name))
        self._logger.debug("Created directory", context={'path': resolved})

    def readdir(self, path: str) -> List[str]:
        """
        List the names in a directory, sorted.

        A path that does not exist yields an empty list.

        Raises:
            TypeConflictError: If the path is a file
        """
        resolved = self.resolve(path)
        node = self._find(resolved)

        if node is None:
            return []
        if not node.is_directory:
            raise TypeConflictError(resolved, segment=resolved, expected="directory")

        return node.child_names()

    def walk(self, top: str) -> Iterator[Tuple[str, List[str], List[str]]]:
        """
        Pre-order traversal below ``top``, like os.walk.

        Yields ``(dirpath, dirnames, filenames)``; removing names from
        ``dirnames`` in place prunes the traversal.
        """
        resolved = self.resolve(top)
        node = self._find(resolved)
        if node is None or not node.is_directory:
            return

        stack: List[Tuple[str, FileNode]] = [(resolved, node)]
        while stack:
            dirpath, current = stack.pop()
            dirnames = [c.name for c in current.children() if c.is_directory]
            filenames = [c.name for c in current.children() if c.is_file]

            yield dirpath, dirnames, filenames

            for name in reversed(dirnames):
                child = current.get_child(name)
                if child is not None:
                    stack.append((PathResolver.join(dirpath, name), child))

    def get_stats(self) -> dict[str, Any]:
        """Node and byte counts for the whole tree."""
        files = total_size = 0
        directories = 1  # root

        for dirpath, dirnames, filenames in self.walk('/'):
            directories += len(dirnames)
            files += len(filenames)
            for name in filenames:
                total_size += self.stat(PathResolver.join(dirpath, name)).size

        return {
            'files': files,
            'directories': directories,
            'total_size': total_size,
        }
