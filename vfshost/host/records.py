"""
Module Resolution Records

Typed records exchanged between the compiler host adapter and the
compiler when module names are resolved.
"""

from dataclasses import dataclass

from vfshost.core.config_loader import ResolutionConfig


@dataclass(frozen=True)
class PackageIdentity:
    """Which package a resolved module belongs to."""
    name: str
    sub_module_name: str = ''
    version: str = '0.0.0-alpha5'


@dataclass(frozen=True)
class ResolvedModule:
    """A successful module resolution. Unresolved names are ``None``."""
    resolved_file_name: str
    extension: str
    package_id: PackageIdentity
    is_external_library_import: bool = True


@dataclass(frozen=True)
class ResolutionOptions:
    """Settings of the shallow resolution policy."""
    modules_dir: str = 'node_modules'
    entry_file_name: str = 'index.d.ts'
    extension: str = '.ts'
    package_version: str = '0.0.0-alpha5'

    @classmethod
    def from_config(cls, config: ResolutionConfig) -> 'ResolutionOptions':
        return cls(
            modules_dir=config.modules_dir.rstrip('/'),
            entry_file_name=config.entry_file_name,
            extension=config.extension,
            package_version=config.package_version,
        )

    def entry_path(self, package: str) -> str:
        return f"{self.modules_dir}/{package}/{self.entry_file_name}"
