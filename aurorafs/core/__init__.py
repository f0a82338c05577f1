"""
AuroraFS Core Module

Configuration and subsystem lifecycle shared by every component.
The bootloader lives in ``aurorafs.core.bootloader``.
"""

from .config_loader import (
    ConfigLoader,
    Config,
    SystemConfig,
    FilesystemConfig,
    UsersConfig,
    LoggingConfig,
    IntegrityConfig,
    get_config,
)
from .subsystem import Subsystem, SubsystemState

__all__ = [
    'ConfigLoader',
    'Config',
    'SystemConfig',
    'FilesystemConfig',
    'UsersConfig',
    'LoggingConfig',
    'IntegrityConfig',
    'get_config',
    'Subsystem',
    'SubsystemState',
]
