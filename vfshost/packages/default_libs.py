"""
Default Library Loader

Populates the bundled standard-library directory (``<cwd>libs/``) that
the compiler host points the compiler at. It must finish before a
program is created, otherwise every ambient-library lookup fails.
"""

import asyncio
import json
import re
from typing import Dict, List, Mapping, Optional

from .registry import RegistryClient
from vfshost.core.session import Session
from vfshost.filesystem import mkdirp
from vfshost.logger import get_logger
from vfshost.transform.contracts import CompilerModule, CompilerOptions


_REFERENCE_LIB = re.compile(
    r'^\s*///\s*<reference\s+lib\s*=\s*["\']([^"\']+)["\']\s*/>', re.MULTILINE
)

DefaultLibraryMap = Dict[str, str]


def lib_file_name(lib: str) -> str:
    """``es2015.promise`` -> ``lib.es2015.promise.d.ts``"""
    lib = lib.lower()
    if lib.startswith('lib.') and lib.endswith('.d.ts'):
        return lib
    return f"lib.{lib}.d.ts"


class DefaultLibraryLoader:
    """
    Loads the default library files for a compiler-options configuration.

    Texts come from ``bundled`` when it has them, otherwise from the
    configured CDN. Each distinct options configuration is populated
    once per session; individual files already in the VFS are reused.
    """

    def __init__(
        self,
        session: Session,
        compiler: CompilerModule,
        client: Optional[RegistryClient] = None,
        bundled: Optional[Mapping[str, str]] = None
    ):
        self._session = session
        self._compiler = compiler
        self._client = client or RegistryClient(session.config.registry)
        self._bundled = dict(bundled or {})
        self._cdn_url = session.config.libraries.cdn_url.rstrip('/')
        self._location = session.config.host.cwd + session.config.libraries.directory
        self._logger = get_logger('libraries')

    @property
    def location(self) -> str:
        return self._location

    @staticmethod
    def options_key(options: CompilerOptions) -> str:
        return json.dumps(dict(options), sort_keys=True, default=str)

    def library_names(self, options: CompilerOptions) -> List[str]:
        """Root library files for ``options``, before following references."""
        names = [self._compiler.get_default_lib_file_name(options)]
        for lib in options.get('lib') or []:
            name = lib_file_name(lib)
            if name not in names:
                names.append(name)
        return names

    async def populate(
        self,
        options: CompilerOptions,
        generation: Optional[int] = None
    ) -> DefaultLibraryMap:
        """
        Make every library file needed by ``options`` present in the VFS.

        Files are written only after all of them were retrieved, and not
        at all when ``generation`` went stale meanwhile.

        Returns:
            Library file name -> text for the whole configuration

        Raises:
            RemoteFetchError: If a library file cannot be retrieved
        """
        key = self.options_key(options)
        vfs = self._session.vfs
        libraries: DefaultLibraryMap = {}
        pending = self.library_names(options)

        while pending:
            texts = await asyncio.gather(*(self._load(name) for name in pending))
            discovered: List[str] = []
            for name, text in zip(pending, texts):
                libraries[name] = text
                for ref in _REFERENCE_LIB.findall(text):
                    ref_name = lib_file_name(ref)
                    if ref_name not in libraries and ref_name not in discovered:
                        discovered.append(ref_name)
            pending = [n for n in discovered if n not in libraries]

        if not self._session.is_current(generation):
            self._logger.info("Dropping stale library set", generation=generation)
            return libraries

        if not self._session.has_library_set(key):
            mkdirp(vfs, self._location)
            for name, text in libraries.items():
                path = self._location + name
                if not vfs.is_file(path):
                    vfs.write_file(path, text)
            self._session.mark_library_set(key)
            self._logger.info(
                "Default libraries populated",
                generation=generation,
                context={'files': len(libraries)}
            )

        return libraries

    async def _load(self, name: str) -> str:
        path = self._location + name
        if self._session.vfs.is_file(path):
            return self._session.vfs.read_file(path)
        if name in self._bundled:
            return self._bundled[name]
        return await self._client.get_text(f"{self._cdn_url}/{name}", package='typescript')
