"""
Runtime Check Plugin

Editor plugin that compiles the current file with a runtime-check
transformation, entirely against the session VFS.

Lifecycle:
    1. did_mount() - background fetch of the required packages starts;
       fetch failures are stored, never raised here
    2. run() - the "run the transformer" action: waits for the fetches
       (completion barrier), surfaces a stored failure, populates the
       default libraries, builds the program and emits
    3. did_unmount() - pending work cancelled, session closed

Author: YSNRFD
Version: 1.0.0
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence

from vfshost.core.session import Session
from vfshost.exceptions import HostExitSignal
from vfshost.filesystem import PathResolver, mkdirp
from vfshost.host import CompilerHostAdapter, HostBridge
from vfshost.logger import get_logger
from vfshost.packages import DefaultLibraryLoader, FetchOutcome, PackageFetcher
from vfshost.transform import (
    CompilerModule,
    CompilerOptions,
    EmitOutcome,
    Program,
    TransformationInvocation,
    TransformerFactory,
    build_program,
)
from vfshost.transform.invocation import OutputCallback


RUNTIME_CHECK_PACKAGE = "ts-transform-runtime-check"


class EditorSandbox(Protocol):
    """What the editor shell exposes about the file being edited."""
    filepath: str

    def get_text(self) -> str:
        ...

    def get_compiler_options(self) -> CompilerOptions:
        ...


class PluginState(Enum):
    """Plugin lifecycle state."""
    UNMOUNTED = "unmounted"
    MOUNTED = "mounted"
    CLOSED = "closed"


@dataclass
class PluginInfo:
    """Information about a plugin."""
    id: str
    display_name: str
    state: PluginState = PluginState.UNMOUNTED


class RuntimeCheckPlugin:
    """
    Runs the runtime-check transformation over the editor's file.

    Example:
        >>> plugin = RuntimeCheckPlugin(session, compiler, runtime_check)
        >>> plugin.did_mount(sandbox)
        >>> outcome = await plugin.run(sandbox)
    """

    id = "ts-transform-runtime-check"
    display_name = "Runtime Check"

    def __init__(
        self,
        session: Session,
        compiler: CompilerModule,
        transformer_factory: Callable[[Program], TransformerFactory],
        packages: Sequence[str] = (RUNTIME_CHECK_PACKAGE,),
        fetcher: Optional[PackageFetcher] = None,
        libraries: Optional[DefaultLibraryLoader] = None
    ):
        self._session = session
        self._compiler = compiler
        self._transformer_factory = transformer_factory
        self._packages = list(packages)
        self._fetcher = fetcher or PackageFetcher(session)
        self._libraries = libraries or DefaultLibraryLoader(session, compiler)
        self._setup: Optional[asyncio.Task] = None
        self._state = PluginState.UNMOUNTED
        self._logger = get_logger('plugin')

    @property
    def info(self) -> PluginInfo:
        return PluginInfo(id=self.id, display_name=self.display_name, state=self._state)

    @property
    def session(self) -> Session:
        return self._session

    def did_mount(self, sandbox: Optional[EditorSandbox] = None) -> None:
        """
        Start fetching the required packages in the background.

        Must be called from a running event loop. Never fails because of
        the network: fetch errors are kept for the next run().
        """
        self._session.ensure_open()
        if self._setup is None:
            self._setup = asyncio.get_running_loop().create_task(
                self._fetcher.fetch_all(self._packages)
            )
        self._state = PluginState.MOUNTED
        self._logger.info("Plugin mounted", context={'packages': self._packages})

    def model_changed(self, sandbox: EditorSandbox) -> None:
        """Editor text changed; nothing is compiled until run()."""

    async def run(
        self,
        sandbox: EditorSandbox,
        on_output: Optional[OutputCallback] = None
    ) -> Optional[EmitOutcome]:
        """
        Compile the editor's file through the transformation.

        Returns:
            The EmitOutcome, or None when a newer run superseded this one
            or the compiler requested an exit

        Raises:
            RemoteFetchError: A required package or library could not be fetched
            TransformationError: The transformation raised
        """
        generation = self._session.next_generation()

        if self._setup is None:
            self.did_mount(sandbox)
        try:
            outcomes: List[FetchOutcome] = await asyncio.shield(self._setup)
        except Exception:
            # a crashed setup task must not be awaited again
            self._setup = None
            raise

        if any(not o.ok for o in outcomes):
            # the next run() is a fresh attempt
            self._setup = None
            self._session.require_packages(self._packages)

        options = sandbox.get_compiler_options()
        await self._libraries.populate(options, generation)

        if not self._session.is_current(generation):
            self._logger.info("Run superseded before compile", generation=generation)
            return None

        file_path = self._session.vfs.resolve(sandbox.filepath)
        mkdirp(self._session.vfs, PathResolver.dirname(file_path))
        self._session.vfs.write_file(file_path, sandbox.get_text())

        host = CompilerHostAdapter(HostBridge(self._session), self._compiler, options)

        try:
            program = build_program(self._compiler, host, [file_path], options)
            source_unit = program.get_source_file(file_path)
            diagnostics = list(self._compiler.get_pre_emit_diagnostics(program, source_unit))

            invocation = TransformationInvocation(
                program, source_unit, self._transformer_factory, on_output, generation
            )
            outcome = invocation.run()
        except HostExitSignal as signal:
            self._logger.warning(
                "Compiler requested exit", generation=generation,
                context={'exit_code': signal.exit_code}
            )
            return None

        outcome.diagnostics[:0] = diagnostics
        return outcome

    def did_unmount(self) -> None:
        """Cancel pending fetches and tear the session down."""
        if self._setup is not None and not self._setup.done():
            self._setup.cancel()
        self._setup = None
        self._fetcher.close()
        self._session.close()
        self._state = PluginState.CLOSED
        self._logger.info("Plugin unmounted")
