"""
Session Context

One Session exists per editor session. It owns the virtual filesystem
and carries everything the other components would otherwise read from
global state: configuration, working directory, the invocation
generation counter and the deferred results of remote fetches.

Lifecycle:
    1. Session(config) - VFS created, logging configured
    2. components are constructed with the session
    3. close() - VFS discarded, stored outcomes dropped

Author: YSNRFD
Version: 1.0.0
"""

from __future__ import annotations

import uuid
from enum import Enum, auto
from typing import TYPE_CHECKING, Iterable, List, Optional

from vfshost.core.config_loader import Config, ConfigLoader
from vfshost.exceptions import RemoteFetchError, SessionClosedError
from vfshost.filesystem import VirtualFileSystem
from vfshost.logger import Logger, LogLevel, get_logger

if TYPE_CHECKING:
    from vfshost.packages.fetcher import FetchOutcome


class SessionState(Enum):
    """Lifecycle state of a session."""
    ACTIVE = auto()
    CLOSED = auto()


class Session:
    """
    Per-editor-session context.

    Logging handlers are process-wide: the ``logging`` section of the
    most recently created session is the one in effect.

    Example:
        >>> with Session() as session:
        ...     session.vfs.write_file('/index.ts', 'export {}')
    """

    def __init__(self, config: Optional[Config] = None, session_id: Optional[str] = None):
        self._config = config or Config()
        ConfigLoader.validate(self._config)

        log_config = self._config.logging
        Logger.initialize(
            level=LogLevel[log_config.level.upper()],
            log_file=log_config.log_file,
            console_output=log_config.console_output,
            buffer_size=log_config.buffer_size,
        )

        self._id = session_id or uuid.uuid4().hex[:12]
        self._logger = get_logger('session')
        self._vfs = VirtualFileSystem(cwd=self._config.host.cwd, label=f"session-{self._id}")
        self._state = SessionState.ACTIVE
        self._generation = 0
        self._fetches: dict[str, FetchOutcome] = {}
        self._library_sets: set[str] = set()

        self._logger.info("Session started", context={'session': self._id})

    @property
    def id(self) -> str:
        return self._id

    @property
    def config(self) -> Config:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def vfs(self) -> VirtualFileSystem:
        self.ensure_open()
        return self._vfs

    def ensure_open(self) -> None:
        if self._state is SessionState.CLOSED:
            raise SessionClosedError(self._id)

    # Invocation generations

    @property
    def generation(self) -> int:
        """Generation of the most recent invocation."""
        return self._generation

    def next_generation(self) -> int:
        """Start a new invocation; older generations become stale."""
        self.ensure_open()
        self._generation += 1
        self._logger.debug("New invocation", generation=self._generation)
        return self._generation

    def is_current(self, generation: Optional[int]) -> bool:
        """
        Whether work tagged with ``generation`` may still write its
        results. Untagged (session-scoped) work is always current.
        """
        if self._state is SessionState.CLOSED:
            return False
        return generation is None or generation == self._generation

    # Deferred fetch outcomes

    def record_fetch(self, outcome: FetchOutcome) -> None:
        self.ensure_open()
        self._fetches[outcome.package] = outcome
        if not outcome.ok:
            self._logger.warning(
                "Fetch failure deferred",
                generation=outcome.generation,
                context={'package': outcome.package, 'error': outcome.error}
            )

    def get_fetch(self, package: str) -> Optional[FetchOutcome]:
        return self._fetches.get(package)

    def failures(self, packages: Optional[Iterable[str]] = None) -> List[RemoteFetchError]:
        """Stored fetch errors, optionally restricted to ``packages``."""
        names = list(packages) if packages is not None else list(self._fetches)
        errors = []
        for name in names:
            outcome = self._fetches.get(name)
            if outcome is not None and outcome.error is not None:
                errors.append(outcome.error)
        return errors

    def require_packages(self, packages: Iterable[str]) -> None:
        """
        Raise the first stored fetch failure among ``packages``.

        Called at the point of use, by the action that depends on them.
        """
        self.ensure_open()
        errors = self.failures(packages)
        if errors:
            raise errors[0]

    # Default-library bookkeeping

    def has_library_set(self, key: str) -> bool:
        return key in self._library_sets

    def mark_library_set(self, key: str) -> None:
        self._library_sets.add(key)

    # Teardown

    def close(self) -> None:
        """Discard the VFS and every stored outcome. Safe to call twice."""
        if self._state is SessionState.CLOSED:
            return

        self._vfs.close()
        self._fetches.clear()
        self._library_sets.clear()
        self._state = SessionState.CLOSED
        self._logger.info("Session closed", context={'session': self._id})

    def __enter__(self) -> 'Session':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
