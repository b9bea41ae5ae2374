"""
vfshost Core Module

Core components:
- Configuration Loader
- Session context
"""

from .config_loader import (
    ConfigLoader,
    Config,
    HostConfig,
    RegistryConfig,
    LibraryConfig,
    ResolutionConfig,
    LoggingConfig,
)
from .session import Session, SessionState

__all__ = [
    # Config
    'ConfigLoader',
    'Config',
    'HostConfig',
    'RegistryConfig',
    'LibraryConfig',
    'ResolutionConfig',
    'LoggingConfig',
    # Session
    'Session',
    'SessionState',
]
