"""
Tests for the file-backed token blacklist.
"""
import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from mekcook.core.blacklist import TokenBlacklist


class TestRecord:
    """Tests for TokenBlacklist.record."""

    def test_record_then_contains(self, blacklist: TokenBlacklist, clock):
        """A recorded fingerprint is reported as blacklisted."""
        blacklist.record("fp-a", int(clock.now) + 60)

        assert blacklist.contains("fp-a") is True
        assert blacklist.contains("fp-b") is False

    def test_record_persists_json_map(self, blacklist: TokenBlacklist, clock):
        """The file holds a plain fingerprint -> expiry mapping."""
        expires_at = int(clock.now) + 60
        blacklist.record("fp-a", expires_at)

        data = json.loads(blacklist.path.read_text())
        assert data == {"fp-a": expires_at}

    def test_survives_restart(self, tmp_path, clock):
        """A new instance on the same file sees earlier revocations."""
        path = tmp_path / "token_blacklist.json"
        TokenBlacklist(path, max_size=10, clock=clock).record("fp-a", int(clock.now) + 60)

        reopened = TokenBlacklist(path, max_size=10, clock=clock)

        assert reopened.contains("fp-a") is True

    def test_creates_missing_directory(self, tmp_path, clock):
        """The storage directory is created on first write."""
        blacklist = TokenBlacklist(tmp_path / "storage" / "nested" / "bl.json", max_size=10, clock=clock)

        blacklist.record("fp-a", int(clock.now) + 60)

        assert blacklist.path.exists()

    def test_overwrite_updates_expiry(self, blacklist: TokenBlacklist, clock):
        """Recording the same fingerprint twice keeps one entry with the new expiry."""
        blacklist.record("fp-a", int(clock.now) + 60)
        blacklist.record("fp-a", int(clock.now) + 120)

        assert blacklist.snapshot() == {"fp-a": int(clock.now) + 120}

    def test_fractional_expiry_rounded_up(self, blacklist: TokenBlacklist, clock):
        blacklist.record("fp-a", int(clock.now) + 60.2)

        assert blacklist.snapshot() == {"fp-a": int(clock.now) + 61}

    def test_rejects_invalid_max_size(self, tmp_path):
        with pytest.raises(ValueError):
            TokenBlacklist(tmp_path / "bl.json", max_size=0)


class TestPruning:
    """Expired entries are dropped lazily on every access."""

    def test_contains_prunes_expired_entries(self, blacklist: TokenBlacklist, clock):
        """After a token's expiry its entry disappears from the file."""
        blacklist.record("fp-short", int(clock.now) + 5)
        blacklist.record("fp-long", int(clock.now) + 500)

        clock.advance(10)

        assert blacklist.contains("fp-short") is False
        assert blacklist.snapshot() == {"fp-long": int(clock.now) - 10 + 500}

    def test_entry_kept_until_exact_expiry(self, blacklist: TokenBlacklist, clock):
        """An entry is still present at its expiry second."""
        blacklist.record("fp-a", int(clock.now) + 5)

        clock.advance(5)

        assert blacklist.contains("fp-a") is True

    def test_record_prunes_before_insert(self, blacklist: TokenBlacklist, clock):
        """Recording also clears expired entries."""
        blacklist.record("fp-old", int(clock.now) + 1)
        clock.advance(10)

        blacklist.record("fp-new", int(clock.now) + 60)

        assert set(blacklist.snapshot()) == {"fp-new"}

    def test_pruning_is_idempotent(self, blacklist: TokenBlacklist, clock):
        """Once pruned, repeated lookups leave the persisted file untouched."""
        blacklist.record("fp-short", int(clock.now) + 5)
        blacklist.record("fp-long", int(clock.now) + 500)
        clock.advance(10)

        blacklist.contains("fp-x")
        first_stat = blacklist.path.stat()
        first_content = blacklist.path.read_bytes()

        blacklist.contains("fp-x")
        blacklist.contains("fp-long")

        second_stat = blacklist.path.stat()
        assert blacklist.path.read_bytes() == first_content
        # Writes replace the file, so an unchanged inode means no write happened
        assert second_stat.st_ino == first_stat.st_ino
        assert second_stat.st_mtime_ns == first_stat.st_mtime_ns

    def test_lookup_without_expired_entries_does_not_write(self, blacklist: TokenBlacklist, clock):
        blacklist.record("fp-a", int(clock.now) + 60)
        before = blacklist.path.stat()

        assert blacklist.contains("fp-a") is True

        assert blacklist.path.stat().st_ino == before.st_ino

    def test_lookup_on_missing_file_does_not_create_it(self, blacklist: TokenBlacklist):
        assert blacklist.contains("fp-a") is False
        assert not blacklist.path.exists()


class TestEviction:
    """The set never grows beyond max_size."""

    def test_evicts_soonest_expiring_not_first_inserted(self, tmp_path, clock):
        """
        max_size=2: A (T+10), B (T+5), then C (T+20).
        B is evicted because it expires first, although A was inserted first.
        """
        blacklist = TokenBlacklist(tmp_path / "bl.json", max_size=2, clock=clock)
        now = int(clock.now)

        blacklist.record("A", now + 10)
        blacklist.record("B", now + 5)
        blacklist.record("C", now + 20)

        assert set(blacklist.snapshot()) == {"A", "C"}

    def test_newest_entry_always_kept(self, tmp_path, clock):
        """The inserted entry survives even if it expires sooner than the rest."""
        blacklist = TokenBlacklist(tmp_path / "bl.json", max_size=2, clock=clock)
        now = int(clock.now)

        blacklist.record("A", now + 100)
        blacklist.record("B", now + 200)
        blacklist.record("C", now + 1)

        assert set(blacklist.snapshot()) == {"B", "C"}

    def test_size_never_exceeds_max(self, tmp_path, clock):
        blacklist = TokenBlacklist(tmp_path / "bl.json", max_size=3, clock=clock)
        now = int(clock.now)
        expiries = [50, 10, 70, 30, 90, 20, 60, 80, 40, 100]

        for i, offset in enumerate(expiries):
            blacklist.record(f"fp-{i}", now + offset)
            snapshot = blacklist.snapshot()
            assert len(snapshot) <= 3
            assert f"fp-{i}" in snapshot

    def test_prunes_expired_before_evicting(self, tmp_path, clock):
        """Expired entries free room, so nothing live is evicted."""
        blacklist = TokenBlacklist(tmp_path / "bl.json", max_size=2, clock=clock)
        now = int(clock.now)
        blacklist.record("expiring", now + 1)
        blacklist.record("live", now + 100)

        clock.advance(5)
        blacklist.record("new", now + 50)

        assert set(blacklist.snapshot()) == {"live", "new"}

    def test_overwrite_at_capacity_does_not_evict(self, tmp_path, clock):
        blacklist = TokenBlacklist(tmp_path / "bl.json", max_size=2, clock=clock)
        now = int(clock.now)
        blacklist.record("A", now + 10)
        blacklist.record("B", now + 20)

        blacklist.record("A", now + 30)

        assert blacklist.snapshot() == {"A": now + 30, "B": now + 20}


class TestStorageFailures:
    """
    Reads fail open (an unreadable file counts as empty), writes fail closed.

    This trade-off keeps login/verify available when the file is damaged;
    these tests pin it so it is not changed by accident.
    """

    def test_corrupt_file_treated_as_empty(self, blacklist: TokenBlacklist, clock, caplog):
        blacklist.path.write_text("{not json")

        with caplog.at_level(logging.WARNING, logger="mekcook.core.blacklist"):
            assert blacklist.contains("fp-a") is False

        assert "corrupt" in caplog.text

    def test_corrupt_file_is_replaced_on_record(self, blacklist: TokenBlacklist, clock):
        blacklist.path.write_text("{not json")

        blacklist.record("fp-a", int(clock.now) + 60)

        assert json.loads(blacklist.path.read_text()) == {"fp-a": int(clock.now) + 60}

    def test_non_object_file_treated_as_empty(self, blacklist: TokenBlacklist, caplog):
        blacklist.path.write_text("[1, 2, 3]")

        with caplog.at_level(logging.WARNING, logger="mekcook.core.blacklist"):
            assert blacklist.snapshot() == {}

        assert "not a JSON object" in caplog.text

    def test_malformed_entries_are_dropped(self, blacklist: TokenBlacklist, clock):
        expires_at = int(clock.now) + 60
        blacklist.path.write_text(json.dumps({"fp-bad": "tomorrow", "fp-good": expires_at}))

        assert blacklist.snapshot() == {"fp-good": expires_at}

    def test_write_failure_propagates_from_record(self, tmp_path, clock):
        """A revocation that cannot be persisted must raise."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where a directory should be")
        blacklist = TokenBlacklist(blocker / "bl.json", max_size=10, clock=clock)

        with pytest.raises(OSError):
            blacklist.record("fp-a", int(clock.now) + 60)

    def test_no_temp_files_left_behind(self, blacklist: TokenBlacklist, clock):
        for i in range(5):
            blacklist.record(f"fp-{i}", int(clock.now) + 60)

        assert [p.name for p in blacklist.path.parent.iterdir()] == [blacklist.path.name]


class TestConcurrency:
    """Concurrent callers must not lose each other's updates."""

    def test_two_concurrent_records_both_persist(self, tmp_path, clock):
        blacklist = TokenBlacklist(tmp_path / "bl.json", max_size=100, clock=clock)
        barrier = threading.Barrier(2)

        def revoke(fingerprint: str) -> None:
            barrier.wait()
            blacklist.record(fingerprint, int(clock.now) + 60)

        with ThreadPoolExecutor(max_workers=2) as pool:
            list(pool.map(revoke, ["fp-one", "fp-two"]))

        assert blacklist.contains("fp-one") is True
        assert blacklist.contains("fp-two") is True

    def test_many_concurrent_records_and_lookups(self, tmp_path, clock):
        blacklist = TokenBlacklist(tmp_path / "bl.json", max_size=100, clock=clock)
        fingerprints = [f"fp-{i}" for i in range(40)]

        def revoke_and_check(fingerprint: str) -> bool:
            blacklist.record(fingerprint, int(clock.now) + 60)
            return blacklist.contains(fingerprint)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(revoke_and_check, fingerprints))

        assert all(results)
        assert set(blacklist.snapshot()) == set(fingerprints)
