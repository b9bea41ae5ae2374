"""
Host Bridge Module

The synchronous, OS-like facade a batch compiler expects from its
environment, implemented on top of the session's virtual filesystem:
- File reads and writes
- Existence checks that never raise
- Directory creation and listing
- Recursive filtered directory listing
- Fixed newline, case-sensitivity and working-directory policy

Author: YSNRFD
Version: 1.0.0
"""

import fnmatch
from typing import Optional, List, Sequence

from vfshost.core.session import Session
from vfshost.exceptions import AlreadyExistsError, HostExitSignal
from vfshost.filesystem import PathResolver
from vfshost.logger import get_logger


def _matches(relative: str, patterns: Sequence[str]) -> bool:
    """
    Glob match of a path relative to the listing root.

    ``**/`` at the start of a pattern may match nothing, and ``dir/**``
    also matches ``dir`` itself so whole directories can be excluded.
    """
    for pattern in patterns:
        if pattern.startswith('./'):
            pattern = pattern[2:]
        candidates = {pattern}
        if pattern.startswith('**/'):
            candidates.add(pattern[3:])
        for candidate in list(candidates):
            if candidate.endswith('/**'):
                candidates.add(candidate[:-3])
        if any(fnmatch.fnmatchcase(relative, candidate) for candidate in candidates):
            return True
    return False


class HostBridge:
    """
    System facade backed by a Session's VFS.

    The bridge never owns the filesystem; it reaches it through the
    session on every call, so a closed session fails loudly.

    Example:
        >>> bridge = HostBridge(Session())
        >>> bridge.file_exists('/missing.ts')
        False
    """

    def __init__(self, session: Session):
        self._session = session
        self._config = session.config.host
        self._logger = get_logger('host')
        self.args: List[str] = []
        self.exit_code: Optional[int] = None

    @property
    def session(self) -> Session:
        return self._session

    @property
    def new_line(self) -> str:
        return self._config.new_line

    @property
    def use_case_sensitive_file_names(self) -> bool:
        return self._config.case_sensitive

    def write(self, text: str) -> None:
        """Compiler console output; there is no terminal, so it is logged."""
        self._logger.info(text.rstrip(self.new_line))

    def write_output_is_tty(self) -> bool:
        return False

    def read_file(self, path: str, encoding: Optional[str] = None) -> str:
        return self._session.vfs.read_file(path, encoding or self._config.encoding)

    def write_file(self, path: str, data: str, write_byte_order_mark: bool = False) -> None:
        if write_byte_order_mark:
            data = '\ufeff' + data
        self._session.vfs.write_file(path, data, self._config.encoding)

    def resolve_path(self, path: str) -> str:
        return self._session.vfs.resolve(path)

    def file_exists(self, path: str) -> bool:
        try:
            return self._session.vfs.stat(path).is_file
        except Exception:
            return False

    def directory_exists(self, path: str) -> bool:
        try:
            return self._session.vfs.stat(path).is_directory
        except Exception:
            return False

    def create_directory(self, path: str) -> None:
        """Create one directory level; an existing entry counts as success."""
        if self.directory_exists(path):
            return
        try:
            self._session.vfs.mkdir(path)
        except AlreadyExistsError:
            pass

    def get_current_directory(self) -> str:
        return self._config.cwd

    def get_executing_file_path(self) -> str:
        return self.get_current_directory()

    def get_directories(self, path: str) -> List[str]:
        """Entry names under ``path``; best effort, [] on any failure."""
        try:
            return self._session.vfs.readdir(path)
        except Exception:
            return []

    def read_directory(
        self,
        path: str,
        extensions: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
        include: Optional[Sequence[str]] = None,
        depth: Optional[int] = None
    ) -> List[str]:
        """
        Recursive filtered listing of files below ``path``.

        Args:
            path: Directory to list
            extensions: Keep files ending in one of these suffixes
            exclude: Glob patterns (relative to ``path``) of files and
                directories to skip; excluded directories are not entered
            include: Glob patterns a file must match, when given
            depth: Maximum number of path components below ``path``;
                None or 0 means unbounded

        Returns:
            Absolute file paths in walk order
        """
        vfs = self._session.vfs
        root = vfs.resolve(path)
        if not vfs.is_directory(root):
            return []

        exclude = list(exclude or [])
        include = list(include or [])
        extensions = list(extensions or [])
        limit = depth if depth else None

        results: List[str] = []
        for dirpath, dirnames, filenames in vfs.walk(root):
            rel_dir = PathResolver.relative_to(dirpath, root)
            level = 0 if rel_dir == '.' else len(PathResolver.components(rel_dir))

            for name in filenames:
                relative = name if rel_dir == '.' else f"{rel_dir}/{name}"
                if limit is not None and level + 1 > limit:
                    continue
                if extensions and not any(name.endswith(ext) for ext in extensions):
                    continue
                if exclude and _matches(relative, exclude):
                    continue
                if include and not _matches(relative, include):
                    continue
                results.append(PathResolver.join(dirpath, name))

            kept = []
            for name in dirnames:
                relative = name if rel_dir == '.' else f"{rel_dir}/{name}"
                if limit is not None and level + 1 >= limit:
                    continue
                if exclude and _matches(relative, exclude):
                    continue
                kept.append(name)
            dirnames[:] = kept

        return results

    def exit(self, exit_code: int = 0) -> None:
        """
        End the current unit of work.

        There is no process to terminate: the code is recorded and,
        unless disabled in configuration, HostExitSignal is raised for
        the invocation layer to report.
        """
        self.exit_code = exit_code
        self._logger.info("Exit requested", context={'exit_code': exit_code})
        if self._config.raise_on_exit:
            raise HostExitSignal(exit_code)
