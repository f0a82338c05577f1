"""
Integrity Gate

Computes, once per load, whether the running build still carries
its expected identity markers. A mismatch puts the system into a
degraded mode: the filesystem refuses writes and privilege
escalation is disabled. A developer override stored in the
persistence backend skips the check.

The filesystem never computes this flag; it is handed the result.

Author: YSNRFD
Version: 1.0.0
"""

import hashlib
from enum import Enum
from typing import Optional, Mapping

from aurorafs.logger import get_logger
from aurorafs.storage import StorageBackend


class SystemHealth(Enum):
    """Outcome of the integrity check."""
    OK = 'OK'
    CORRUPTED = 'CORRUPTED'


def hash_key(phrase: str) -> str:
    """Hash an override phrase the way it is stored."""
    return hashlib.sha256(phrase.encode('utf-8')).hexdigest()


def project_identity() -> dict[str, str]:
    """Identity markers of the installed package."""
    import aurorafs
    return {
        'name': aurorafs.__title__,
        'author': aurorafs.__author__,
        'license': aurorafs.__license__,
    }


class IntegrityGuard:
    """
    Compares identity markers against expected constants.

    Example:
        >>> guard = IntegrityGuard({'name': 'aurorafs'}, override_key_hash=hash_key('secret'))
        >>> guard.validate({'name': 'aurorafs'})
        True
    """

    def __init__(
        self,
        expected: Mapping[str, str],
        override_key_hash: str,
        storage: Optional[StorageBackend] = None,
        override_storage_key: str = 'aurora-dev-override'
    ):
        self._expected = dict(expected)
        self._override_key_hash = override_key_hash
        self._storage = storage
        self._override_storage_key = override_storage_key
        self._logger = get_logger('integrity')

    def _override_active(self) -> bool:
        if self._storage is None:
            return False
        stored = self._storage.load(self._override_storage_key)
        return stored is not None and stored == self._override_key_hash

    def validate(self, identity: Mapping[str, str]) -> bool:
        """
        Check identity markers.

        Returns:
            True if the markers match or the override is active
        """
        if self._override_active():
            self._logger.warning("Developer override active, integrity checks skipped")
            return True

        mismatched = {
            key: {'expected': expected, 'actual': identity.get(key)}
            for key, expected in self._expected.items()
            if identity.get(key) != expected
        }
        if mismatched:
            self._logger.error(
                "System integrity compromised: identity mismatch",
                context={'fields': ','.join(sorted(mismatched))}
            )
            return False
        return True

    def health(self, identity: Mapping[str, str]) -> SystemHealth:
        return SystemHealth.OK if self.validate(identity) else SystemHealth.CORRUPTED

    def unlock(self, phrase: str) -> bool:
        """Store the override token if ``phrase`` is the developer key."""
        if hash_key(phrase) != self._override_key_hash:
            return False
        if self._storage is not None:
            self._storage.save(self._override_storage_key, self._override_key_hash)
        self._logger.warning("Developer override unlocked")
        return True

    def lock(self) -> None:
        if self._storage is not None:
            self._storage.remove(self._override_storage_key)
