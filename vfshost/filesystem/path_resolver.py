"""
Path Resolver Module

POSIX path arithmetic for the virtual file system. Every helper is pure
string manipulation; nothing here looks at the file tree.

Author: YSNRFD
Version: 1.0.0
"""

from typing import List, Tuple


SEP = '/'


class PathResolver:
    """
    Path helpers used by the VFS and the host layers.

    Conventions:
    - Absolute paths start with ``/``; everything else is relative
    - ``.`` is dropped, ``..`` pops a component and never climbs above root
    - Normalized absolute paths carry no trailing separator (except ``/``)

    Example:
        >>> PathResolver.resolve('src/../index.ts', '/work/')
        '/work/index.ts'
    """

    @staticmethod
    def _collapse(path: str) -> List[str]:
        stack: List[str] = []
        for part in path.split(SEP):
            if part in ('', '.'):
                continue
            if part == '..':
                if stack:
                    stack.pop()
                continue
            stack.append(part)
        return stack

    @staticmethod
    def normalize(path: str) -> str:
        """Collapse separators, ``.`` and ``..``; ``'.'`` for an empty relative path."""
        parts = PathResolver._collapse(path)
        if PathResolver.is_absolute(path):
            return SEP + SEP.join(parts)
        return SEP.join(parts) or '.'

    @staticmethod
    def resolve(path: str, cwd: str = SEP) -> str:
        """Absolute normalized form of ``path`` seen from ``cwd``."""
        if not PathResolver.is_absolute(path):
            path = f"{cwd.rstrip(SEP)}{SEP}{path}"
        return PathResolver.normalize(path)

    @staticmethod
    def join(*paths: str) -> str:
        """Join segments; an absolute segment discards what came before it."""
        joined = ''
        for segment in paths:
            if PathResolver.is_absolute(segment) or not joined:
                joined = segment
            else:
                joined = f"{joined.rstrip(SEP)}{SEP}{segment}"
        return PathResolver.normalize(joined) if joined else '.'

    @staticmethod
    def components(path: str) -> List[str]:
        """Components of an already-normalized absolute path."""
        return [part for part in path.split(SEP) if part]

    @staticmethod
    def split(path: str) -> Tuple[str, str]:
        """``(dirname, basename)`` of the normalized path."""
        normalized = PathResolver.normalize(path)
        if normalized == SEP:
            return SEP, SEP

        head, sep, tail = normalized.rpartition(SEP)
        if not sep:
            return '.', normalized
        return head or SEP, tail

    @staticmethod
    def dirname(path: str) -> str:
        return PathResolver.split(path)[0]

    @staticmethod
    def basename(path: str) -> str:
        return PathResolver.split(path)[1]

    @staticmethod
    def relative_to(path: str, base: str) -> str:
        """
        Express an absolute path relative to an absolute base directory.

        Raises:
            ValueError: If ``path`` is not inside ``base``
        """
        target = PathResolver._collapse(path)
        prefix = PathResolver._collapse(base)

        if target[:len(prefix)] != prefix:
            raise ValueError(f"{path} is not inside {base}")

        return SEP.join(target[len(prefix):]) or '.'

    @staticmethod
    def is_absolute(path: str) -> bool:
        return path.startswith(SEP)
