"""
mkdirp

Recursive, idempotent ancestor-directory creation on top of the VFS.
"""

from typing import List

from .path_resolver import PathResolver
from .vfs import VirtualFileSystem
from vfshost.exceptions import AlreadyExistsError, TypeConflictError


def mkdirp(vfs: VirtualFileSystem, path: str) -> List[str]:
    """
    Ensure ``path`` and all its ancestors exist as directories.

    Walks up from ``path`` until an existing directory is found, then
    creates the missing levels top-down.

    Args:
        vfs: Filesystem to create the directories in
        path: Directory path, absolute or relative to the VFS cwd

    Returns:
        The directories that were created, outermost first; empty when
        everything already existed.

    Raises:
        TypeConflictError: If any segment exists as a file
    """
    resolved = vfs.resolve(path)
    missing: List[str] = []
    current = resolved

    while current != '/':
        if vfs.is_directory(current):
            break
        if vfs.is_file(current):
            raise TypeConflictError(resolved, segment=current, expected="directory")
        missing.append(current)
        current = PathResolver.dirname(current)

    created: List[str] = []
    for directory in reversed(missing):
        try:
            vfs.mkdir(directory)
        except AlreadyExistsError:
            continue
        created.append(directory)

    return created
