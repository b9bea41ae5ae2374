"""
Compiler Host Adapter Module

Layers compiler-specific concerns on top of the HostBridge:
- Source unit construction with best-effort reads
- Default-library location
- Canonical file names, newline and case policy
- The shallow node_modules resolution policy

Author: YSNRFD
Version: 1.0.0
"""

from typing import Any, Callable, List, Optional, Sequence

from .records import PackageIdentity, ResolutionOptions, ResolvedModule
from .system import HostBridge
from vfshost.logger import get_logger
from vfshost.transform.contracts import CompilerModule, CompilerOptions, SourceUnit


ErrorCallback = Callable[[str], None]


class CompilerHostAdapter:
    """
    The host object handed to ``compiler.create_program``.

    Example:
        >>> host = CompilerHostAdapter(HostBridge(session), compiler, {'target': 'es5'})
        >>> host.get_default_lib_location()
        '/libs/'
    """

    def __init__(
        self,
        bridge: HostBridge,
        compiler: CompilerModule,
        compiler_options: CompilerOptions,
        resolution: Optional[ResolutionOptions] = None
    ):
        self._bridge = bridge
        self._compiler = compiler
        self._compiler_options = compiler_options
        self._resolution = resolution or ResolutionOptions.from_config(
            bridge.session.config.resolution
        )
        self._libraries_dir = bridge.session.config.libraries.directory
        self._logger = get_logger('compiler_host')

    @property
    def bridge(self) -> HostBridge:
        return self._bridge

    @property
    def resolution(self) -> ResolutionOptions:
        return self._resolution

    def get_source_file(
        self,
        file_name: str,
        language_version: Any = None,
        on_error: Optional[ErrorCallback] = None,
        should_create_new_source_file: bool = False
    ) -> Optional[SourceUnit]:
        """
        Read and parse a source unit.

        A failed read is reported through ``on_error`` and replaced by
        empty text so the compiler can carry on with an empty unit.
        """
        text: Optional[str]
        try:
            text = self.read_file(file_name)
        except Exception as exc:
            self._logger.debug(
                "Substituting empty source",
                context={'file': file_name, 'error': exc}
            )
            if on_error is not None:
                on_error(getattr(exc, 'message', str(exc)))
            text = ""

        if text is None:
            return None
        return self._compiler.create_source_file(file_name, text, language_version, False)

    def get_default_lib_location(self) -> str:
        return self._bridge.get_current_directory() + self._libraries_dir

    def get_default_lib_file_name(self, options: Optional[CompilerOptions] = None) -> str:
        return self.get_default_lib_location() + self._compiler.get_default_lib_file_name(
            options if options is not None else self._compiler_options
        )

    def get_canonical_file_name(self, file_name: str) -> str:
        return file_name

    def get_new_line(self) -> str:
        return self._bridge.new_line

    def use_case_sensitive_file_names(self) -> bool:
        return self._bridge.use_case_sensitive_file_names

    def _package_installed(self, name: str) -> bool:
        modules_dir = self._resolution.modules_dir
        if name.startswith('@') and name.count('/') == 1:
            scope, package = name.split('/')
            return package in self._bridge.get_directories(f"{modules_dir}/{scope}")
        return name in self._bridge.get_directories(modules_dir)

    def resolve_module_names(
        self,
        module_names: Sequence[str],
        containing_file: str,
        reused_names: Optional[Sequence[str]] = None,
        redirected_reference: Any = None,
        options: Optional[CompilerOptions] = None
    ) -> List[Optional[ResolvedModule]]:
        """
        Resolve bare module names against ``node_modules`` one level deep.

        A name resolves only when an entry of that name sits directly
        under the modules directory; the result then points at the
        conventional entry file. Everything else is ``None``.
        """
        results: List[Optional[ResolvedModule]] = []

        for name in module_names:
            if name.startswith(('.', '/')) or not self._package_installed(name):
                results.append(None)
                continue

            results.append(ResolvedModule(
                resolved_file_name=self._resolution.entry_path(name),
                extension=self._resolution.extension,
                package_id=PackageIdentity(
                    name=name,
                    sub_module_name='',
                    version=self._resolution.package_version,
                ),
            ))

        self._logger.debug(
            "Resolved modules",
            context={
                'containing_file': containing_file,
                'unresolved': [n for n, r in zip(module_names, results) if r is None],
            }
        )
        return results

    # Delegation to the bridge

    def read_file(self, file_name: str) -> str:
        return self._bridge.read_file(file_name)

    def write_file(
        self,
        file_name: str,
        data: str,
        write_byte_order_mark: bool = False,
        on_error: Optional[ErrorCallback] = None,
        source_files: Optional[Sequence[SourceUnit]] = None
    ) -> None:
        try:
            self._bridge.write_file(file_name, data, write_byte_order_mark)
        except Exception as exc:
            if on_error is None:
                raise
            on_error(getattr(exc, 'message', str(exc)))

    def file_exists(self, file_name: str) -> bool:
        return self._bridge.file_exists(file_name)

    def directory_exists(self, directory_name: str) -> bool:
        return self._bridge.directory_exists(directory_name)

    def create_directory(self, directory_name: str) -> None:
        self._bridge.create_directory(directory_name)

    def get_current_directory(self) -> str:
        return self._bridge.get_current_directory()

    def get_directories(self, path: str) -> List[str]:
        return self._bridge.get_directories(path)

    def exit(self, exit_code: int = 0) -> None:
        self._bridge.exit(exit_code)

    def read_directory(
        self,
        path: str,
        extensions: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
        include: Optional[Sequence[str]] = None,
        depth: Optional[int] = None
    ) -> List[str]:
        return self._bridge.read_directory(path, extensions, exclude, include, depth)
