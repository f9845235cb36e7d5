"""
File-backed blacklist of revoked JWT tokens.

Entries map a token fingerprint (SHA-256 of the raw token) to the token's own
``exp`` timestamp, so an entry can be dropped as soon as the token it shadows
would be rejected as expired anyway. The set is bounded: when full, the
entries closest to expiry are evicted first.

Every operation is a read-modify-write of one JSON file, serialized by a
single lock owned by the store instance.
"""
import json
import math
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Dict

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class TokenBlacklist:
    """
    Bounded, expiry-pruned, persisted set of revoked token fingerprints.

    Construct one per process and share it; it owns the file location and
    the lock guarding it.
    """

    def __init__(self, path: str | os.PathLike, max_size: int, clock: Clock = time.time):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.path = Path(path)
        self.max_size = max_size
        self._clock = clock
        self._lock = threading.Lock()

    def record(self, fingerprint: str, expires_at: float) -> None:
        """
        Add (or overwrite) a revoked fingerprint.

        Expired entries are pruned first. If the set is still full, the
        entries with the soonest expiry are evicted until one slot is free.
        Write errors propagate: a logout that fails to persist must not
        look successful.
        """
        with self._lock:
            entries = self._load()
            self._prune(entries)

            if fingerprint not in entries:
                self._evict(entries, keep=self.max_size - 1)

            entries[fingerprint] = math.ceil(expires_at)
            self._save(entries)
            logger.debug(f"Blacklisted token {fingerprint[:12]}... ({len(entries)} entries)")

    def contains(self, fingerprint: str) -> bool:
        """
        Return True if the fingerprint is blacklisted.

        Lookups prune expired entries and persist the result when anything
        was removed, which keeps the file bounded without a sweeper.
        """
        with self._lock:
            entries = self._load()
            if self._prune(entries):
                try:
                    self._save(entries)
                except OSError as e:
                    # Pruning is housekeeping only; the answer below is still correct.
                    logger.warning(f"Could not persist pruned token blacklist at {self.path}: {e}")
            return fingerprint in entries

    def snapshot(self) -> Dict[str, int]:
        """Return a copy of the persisted entries, without pruning."""
        with self._lock:
            return self._load()

    def __len__(self) -> int:
        return len(self.snapshot())

    def _load(self) -> Dict[str, int]:
        """
        Read the persisted set.

        A missing file is an empty set. An unreadable or corrupt file is
        ALSO treated as empty (fail-open): availability of login/verify is
        preferred over strict enforcement, at the cost that previously
        revoked tokens are accepted until the file is rewritten. Do not
        change this without revisiting that trade-off.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Token blacklist at {self.path} is unreadable, treating as empty: {e}")
            return {}

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Token blacklist at {self.path} is corrupt, treating as empty: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Token blacklist at {self.path} is not a JSON object, treating as empty")
            return {}

        entries = {}
        for fingerprint, expires_at in data.items():
            if isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool):
                entries[fingerprint] = math.ceil(expires_at)
            else:
                logger.warning(f"Dropping malformed blacklist entry {fingerprint[:12]}...")
        return entries

    def _save(self, entries: Dict[str, int]) -> None:
        """Replace the file atomically (temp file in the same dir + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise

    def _prune(self, entries: Dict[str, int]) -> int:
        """Drop entries whose token has expired. Returns the number removed."""
        now = self._clock()
        expired = [fp for fp, expires_at in entries.items() if expires_at < now]
        for fp in expired:
            del entries[fp]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired blacklist entries")
        return len(expired)

    def _evict(self, entries: Dict[str, int], keep: int) -> int:
        """Evict soonest-expiring entries until at most ``keep`` remain."""
        overflow = len(entries) - keep
        if overflow <= 0:
            return 0
        # sorted() is stable, so ties keep their enumeration order
        victims = sorted(entries, key=entries.__getitem__)[:overflow]
        for fp in victims:
            del entries[fp]
        logger.debug(f"Evicted {len(victims)} blacklist entries (max_size={self.max_size})")
        return len(victims)
