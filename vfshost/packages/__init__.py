"""
vfshost Packages Module

Everything that pulls content from the network into the session VFS:
- RegistryClient: aiohttp access to the package mirror and library CDN
- PackageFetcher: manifest + declaration fetch, deferred failures
- DefaultLibraryLoader: bundled standard-library files under libs/
"""

from .registry import RegistryClient
from .fetcher import PackageFetcher, PackageDescriptor, FetchOutcome
from .default_libs import DefaultLibraryLoader, DefaultLibraryMap, lib_file_name

__all__ = [
    'RegistryClient',
    'PackageFetcher',
    'PackageDescriptor',
    'FetchOutcome',
    'DefaultLibraryLoader',
    'DefaultLibraryMap',
    'lib_file_name',
]
