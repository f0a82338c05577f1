"""
AuroraFS Bootloader

The load sequence of the filesystem core:
- Loading configuration
- Initializing logging
- Reading the stored snapshot
- Migrating it to the current release
- Computing the integrity flag
- Bringing up the identity store and the filesystem

Storage problems never fail the boot; they fall back to defaults.

Author: YSNRFD
Version: 1.0.0
"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Mapping

from aurorafs.core.config_loader import ConfigLoader, Config, DEFAULT_CONFIG_PATH
from aurorafs.exceptions import BootException, BootFailureError
from aurorafs.filesystem.vfs import VirtualFileSystem
from aurorafs.logger import Logger, LogLevel, get_logger
from aurorafs.migration.migrator import Migrator, MigrationReport
from aurorafs.notifications import NotificationSink
from aurorafs.security.integrity import IntegrityGuard, SystemHealth, project_identity
from aurorafs.storage import MemoryStorage, Snapshot, SnapshotStore, StorageBackend
from aurorafs.users.identity_store import IdentityStore


class BootStage(Enum):
    """Boot process stages."""
    PRE_INIT = auto()
    CONFIG_LOAD = auto()
    LOGGING_INIT = auto()
    STORAGE_LOAD = auto()
    MIGRATION = auto()
    INTEGRITY_CHECK = auto()
    FILESYSTEM_INIT = auto()
    COMPLETE = auto()
    FAILED = auto()


@dataclass
class BootResult:
    """Result of the boot process."""
    success: bool
    stage: BootStage
    message: str
    elapsed_time: float
    error: Optional[Exception] = None
    health: Optional[SystemHealth] = None
    migration: Optional[MigrationReport] = None


class Bootloader:
    """
    Brings the filesystem core up from stored data.

    Boot Sequence:
        1. Load configuration
        2. Initialize logging
        3. Load the stored snapshot
        4. Migrate it (merge with defaults when behind)
        5. Integrity check (degraded read-only mode on mismatch)
        6. Initialize identity store and filesystem
        7. Complete

    Example:
        >>> bootloader = Bootloader(storage=MemoryStorage())
        >>> result = bootloader.boot()
        >>> vfs = bootloader.get_filesystem()
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        storage: Optional[StorageBackend] = None,
        notifier: Optional[NotificationSink] = None,
        identity: Optional[Mapping[str, str]] = None
    ):
        self._config_path = config_path or str(DEFAULT_CONFIG_PATH)
        self._storage = storage if storage is not None else MemoryStorage()
        self._notifier = notifier
        self._identity = identity
        self._stage = BootStage.PRE_INIT
        self._logger: Optional[Logger] = None
        self._start_time: float = 0
        self._config: Optional[Config] = None
        self._snapshot: Optional[Snapshot] = None
        self._snapshots: Optional[SnapshotStore] = None
        self._migration = None
        self._health: Optional[SystemHealth] = None
        self._vfs: Optional[VirtualFileSystem] = None

    @property
    def stage(self) -> BootStage:
        return self._stage

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    def boot(self) -> BootResult:
        """
        Execute the boot sequence.

        Returns:
            BootResult indicating success or failure
        """
        self._start_time = time.time()

        try:
            self._stage = BootStage.PRE_INIT
            self._pre_init()

            self._stage = BootStage.CONFIG_LOAD
            self._load_config()

            self._stage = BootStage.LOGGING_INIT
            self._init_logging()

            self._logger = get_logger('bootloader')
            self._logger.info("AuroraFS bootloader starting")

            self._stage = BootStage.STORAGE_LOAD
            self._load_storage()

            self._stage = BootStage.MIGRATION
            self._migrate()

            self._stage = BootStage.INTEGRITY_CHECK
            self._check_integrity()

            self._stage = BootStage.FILESYSTEM_INIT
            self._init_filesystem()

            self._stage = BootStage.COMPLETE
            elapsed = time.time() - self._start_time
            self._logger.info(
                "Boot complete",
                context={'elapsed_ms': f"{elapsed * 1000:.2f}", 'health': self._health.value}
            )

            return BootResult(
                success=True,
                stage=self._stage,
                message="System booted successfully",
                elapsed_time=elapsed,
                health=self._health,
                migration=self._migration.report,
            )

        except Exception as e:
            failed_stage = self._stage
            self._stage = BootStage.FAILED
            elapsed = time.time() - self._start_time

            if self._logger:
                self._logger.critical(f"Boot failed at stage {failed_stage.name}: {e}")

            return BootResult(
                success=False,
                stage=failed_stage,
                message=f"Boot failed: {e}",
                elapsed_time=elapsed,
                error=e
            )

    def _pre_init(self) -> None:
        if sys.version_info < (3, 10):
            raise BootFailureError("Python 3.10+ required", stage="pre_init")

    def _load_config(self) -> None:
        loader = ConfigLoader()
        try:
            self._config = loader.load(self._config_path)
        except BootException:
            # ConfigLoader keeps the defaults
            self._config = loader.config

    def _init_logging(self) -> None:
        settings = self._config.logging
        level = LogLevel.__members__.get(settings.level.upper(), LogLevel.INFO)

        Logger.initialize(
            level=level,
            log_file=settings.log_file,
            use_colors=settings.use_colors,
            console_output=settings.console_output
        )

    def _load_storage(self) -> None:
        fs = self._config.filesystem
        self._snapshots = SnapshotStore(
            self._storage,
            tree_key=fs.storage_key,
            users_key=fs.users_storage_key,
            groups_key=fs.groups_storage_key,
            version_key=fs.version_storage_key,
        )
        self._snapshot = self._snapshots.load()
        if self._snapshot.is_empty:
            self._logger.info("No stored filesystem, using defaults")

    def _migrate(self) -> None:
        migrator = Migrator(self._config.system.schema_version)
        self._migration = migrator.migrate(self._snapshot)
        if self._migration.report.changed:
            self._snapshots.save(self._migration.to_snapshot())

    def _check_integrity(self) -> None:
        settings = self._config.integrity
        guard = IntegrityGuard(
            expected={
                'name': settings.expected_name,
                'author': settings.expected_author,
                'license': settings.expected_license,
            },
            override_key_hash=settings.override_key_hash,
            storage=self._storage,
            override_storage_key=settings.override_storage_key,
        )
        identity = self._identity if self._identity is not None else project_identity()
        self._health = guard.health(identity)

    def _init_filesystem(self) -> None:
        identities = IdentityStore(
            users=self._migration.users,
            groups=self._migration.groups,
            config=self._config.users,
        )
        identities.initialize()

        self._vfs = VirtualFileSystem(
            root=self._migration.root,
            identities=identities,
            config=self._config,
            notifier=self._notifier,
            snapshots=self._snapshots,
            read_only=self._health != SystemHealth.OK,
        )
        self._vfs.initialize()
        self._vfs.start()

    def get_filesystem(self) -> Optional[VirtualFileSystem]:
        """Get the initialized filesystem."""
        return self._vfs

    def shutdown(self) -> None:
        """Flush pending writes and stop the filesystem."""
        if self._logger:
            self._logger.info("System shutdown initiated")

        if self._vfs:
            self._vfs.stop()

        if self._logger:
            self._logger.info("System shutdown complete")


def boot_system(
    config_path: Optional[str] = None,
    storage: Optional[StorageBackend] = None
) -> tuple[BootResult, Optional[VirtualFileSystem]]:
    """
    Convenience function to boot the filesystem core.

    Returns:
        Tuple of (BootResult, VirtualFileSystem or None)
    """
    bootloader = Bootloader(config_path, storage)
    result = bootloader.boot()
    return result, bootloader.get_filesystem()
