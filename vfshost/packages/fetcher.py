"""
Remote Package Fetcher Module

Retrieves a package's manifest and declared type-definition file from
the public mirror and materializes it in the session VFS under
``node_modules/<name>/<entry>``.

Failures never escape fetch(): they are captured on a FetchOutcome,
stored on the Session and raised later by whichever action needs the
package.

Author: YSNRFD
Version: 1.0.0
"""

import asyncio
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .registry import RegistryClient
from vfshost.core.session import Session, SessionState
from vfshost.exceptions import HostException, RemoteFetchError
from vfshost.filesystem import PathResolver, mkdirp
from vfshost.logger import get_logger


_DEFAULT_EXPORT = re.compile(r'\bexport\s+default\b|\bexport\s*\{[^}]*\bdefault\b')


@dataclass(frozen=True)
class PackageDescriptor:
    """Name and declared types entry of a fetched package."""
    name: str
    types_entry_path: str


@dataclass(frozen=True)
class FetchOutcome:
    """
    Result or typed failure of one package fetch.

    ``stale`` marks a fetch whose invocation was superseded before it
    could write; nothing was materialized for it.
    """
    package: str
    descriptor: Optional[PackageDescriptor] = None
    error: Optional[RemoteFetchError] = None
    generation: Optional[int] = None
    stale: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.descriptor is not None and not self.stale

    def unwrap(self) -> PackageDescriptor:
        """Return the descriptor or raise the stored failure."""
        if self.error is not None:
            raise self.error
        if self.descriptor is None or self.stale:
            raise RemoteFetchError(self.package, "fetch was superseded")
        return self.descriptor


class PackageFetcher:
    """
    Fetch-and-cache of package declarations for one session.

    Example:
        >>> fetcher = PackageFetcher(session)
        >>> outcome = await fetcher.fetch('ts-transform-runtime-check')
        >>> outcome.ok
        True
    """

    def __init__(self, session: Session, client: Optional[RegistryClient] = None):
        self._session = session
        self._client = client or RegistryClient(session.config.registry)
        self._modules_dir = session.config.resolution.modules_dir.rstrip('/')
        self._entry_file_name = session.config.resolution.entry_file_name
        self._inflight: dict[str, asyncio.Task] = {}
        self._logger = get_logger('fetcher')

    async def fetch(self, name: str, generation: Optional[int] = None) -> FetchOutcome:
        """
        Fetch one package, at most once per session.

        Args:
            name: Package name
            generation: Invocation generation that asked for it; None
                for session-scoped fetches that can never go stale

        Returns:
            The FetchOutcome, also recorded on the session
        """
        cached = self._session.get_fetch(name)
        if cached is not None and cached.ok:
            return cached

        task = self._inflight.get(name)
        if task is None:
            task = asyncio.ensure_future(self._fetch(name, generation))
            self._inflight[name] = task
            task.add_done_callback(lambda _: self._inflight.pop(name, None))

        return await asyncio.shield(task)

    @property
    def in_flight(self) -> dict[str, asyncio.Task]:
        """Fetches started but not finished, by package name."""
        return dict(self._inflight)

    def close(self) -> None:
        """Cancel every unfinished fetch; nothing they retrieved is written."""
        for name, task in list(self._inflight.items()):
            if not task.done():
                task.cancel()
                self._logger.debug("Cancelled fetch", context={'package': name})
        self._inflight.clear()

    async def fetch_all(
        self,
        names: Iterable[str],
        generation: Optional[int] = None
    ) -> List[FetchOutcome]:
        """Fetch several packages concurrently."""
        return list(await asyncio.gather(*(self.fetch(n, generation) for n in names)))

    async def _fetch(self, name: str, generation: Optional[int]) -> FetchOutcome:
        try:
            descriptor, text = await self._retrieve(name)
        except RemoteFetchError as exc:
            outcome = FetchOutcome(package=name, error=exc, generation=generation)
        else:
            if not self._session.is_current(generation):
                self._logger.info(
                    "Dropping stale fetch", generation=generation, context={'package': name}
                )
                return FetchOutcome(
                    package=name, descriptor=descriptor, generation=generation, stale=True
                )
            try:
                self._materialize(descriptor, text)
            except HostException as exc:
                outcome = FetchOutcome(
                    package=name,
                    error=RemoteFetchError(name, f"cannot materialize: {exc}"),
                    generation=generation,
                )
            else:
                outcome = FetchOutcome(package=name, descriptor=descriptor, generation=generation)
                self._logger.info(
                    "Fetched package",
                    generation=generation,
                    context={'package': name, 'entry': descriptor.types_entry_path}
                )

        if self._session.state is SessionState.ACTIVE:
            self._session.record_fetch(outcome)
        return outcome

    async def _retrieve(self, name: str) -> Tuple[PackageDescriptor, str]:
        manifest_url = self._client.package_url(name, 'package.json')
        manifest = await self._client.get_json(manifest_url, name)

        if not isinstance(manifest, dict):
            raise RemoteFetchError(name, "manifest is not a JSON object", url=manifest_url)

        entry = manifest.get('types') or manifest.get('typings')
        if not isinstance(entry, str) or not entry.strip():
            raise RemoteFetchError(name, "manifest declares no types entry", url=manifest_url)

        entry = PathResolver.normalize(entry.strip())
        if entry.startswith(('/', '..')) or entry == '.':
            raise RemoteFetchError(name, f"invalid types entry: {entry}", url=manifest_url)

        text = await self._client.get_text(self._client.package_url(name, entry), name)
        return PackageDescriptor(name=name, types_entry_path=entry), text

    def _materialize(self, descriptor: PackageDescriptor, text: str) -> None:
        vfs = self._session.vfs
        package_dir = f"{self._modules_dir}/{descriptor.name}"
        target = f"{package_dir}/{descriptor.types_entry_path}"

        mkdirp(vfs, PathResolver.dirname(target))
        vfs.write_file(target, text)

        if descriptor.types_entry_path != self._entry_file_name:
            module = './' + re.sub(r'(\.d)?\.ts$', '', descriptor.types_entry_path)
            lines = [f"export * from '{module}';"]
            if _DEFAULT_EXPORT.search(text):
                lines.append(f"export {{ default }} from '{module}';")
            vfs.write_file(f"{package_dir}/{self._entry_file_name}", "\n".join(lines) + "\n")
