"""Tests for snapshot persistence."""

import gzip

import numpy as np
import pytest

from Axiomforge.beliefs.store import PrincipleStore
from Axiomforge.core.pipeline import converge
from Axiomforge.memory.persistence import SnapshotCodec, SnapshotManager, read_snapshot, write_snapshot
from Axiomforge.utils.errors import StorageError


@pytest.fixture
def promoted_store(make_signal, canonical_gateway):
    signals = [
        make_signal("a", (1.0, 0.0, 0.0), category="diary", order=0),
        make_signal("b", (1.0, 0.1, 0.0), category="goals", order=1),
        make_signal("c", (1.0, 0.0, 0.1), category="knowledge", order=2),
        make_signal("d", (0.0, 0.0, 1.0), category="diary", order=3),
    ]
    store, _ = converge(signals, PrincipleStore(), gateway=canonical_gateway)
    return store


class TestSnapshotCodec:
    """Test the blob encoding."""

    def test_restores_same_content(self, promoted_store):
        """Test a decoded snapshot holds the same principles, axioms and ownership."""
        restored = SnapshotCodec().decode(SnapshotCodec().encode(promoted_store))
        assert list(restored.principles) == list(promoted_store.principles)
        assert list(restored.axioms) == list(promoted_store.axioms)
        for pid, p in promoted_store.principles.items():
            r = restored.get(pid)
            assert r.signal_ids == p.signal_ids
            assert r.promotion == p.promotion
            assert np.allclose(r.centroid, p.centroid)
        assert restored.owner_of("a") == promoted_store.owner_of("a")
        assert restored.next_order == promoted_store.next_order

    def test_uncompressed_readable(self, promoted_store):
        """Test plain JSON snapshots decode too."""
        blob = SnapshotCodec(compression=False).encode(promoted_store)
        assert blob.startswith(b"{")
        assert len(SnapshotCodec().decode(blob)) == len(promoted_store)

    def test_garbage_rejected(self):
        """Test unreadable blobs raise StorageError."""
        with pytest.raises(StorageError):
            SnapshotCodec().decode(b"\x1f\x8b not gzip")

    def test_unknown_format_rejected(self):
        """Test a snapshot of another format version is refused."""
        with pytest.raises(StorageError):
            SnapshotCodec().decode(gzip.compress(b'{"format": 99}'))


class TestSnapshotFiles:
    """Test single-file snapshots."""

    def test_write_then_read(self, tmp_path, promoted_store):
        """Test a written snapshot can be read back and leaves no temp file."""
        path = write_snapshot(promoted_store, tmp_path / "nested" / "store.json.gz")
        assert path.exists()
        assert list(path.parent.glob("*.tmp")) == []
        assert len(read_snapshot(path).axioms) == 1

    def test_missing_file(self, tmp_path):
        """Test a missing snapshot raises StorageError."""
        with pytest.raises(StorageError):
            read_snapshot(tmp_path / "absent.json.gz")


class TestSnapshotManager:
    """Test versioned checkpoints."""

    def test_versions_and_prune(self, tmp_path, promoted_store):
        """Test checkpoints are numbered and pruned beyond the cap."""
        manager = SnapshotManager(str(tmp_path / "cp"), max_checkpoints=2)
        for i in range(4):
            manager.save(promoted_store, description=f"run {i}")
        assert manager.versions() == [3, 4]
        assert not (tmp_path / "cp" / "store_v1.json.gz").exists()
        assert len(manager.load()) == len(promoted_store)

    def test_index_reloaded(self, tmp_path, promoted_store):
        """Test a new manager picks up the existing index."""
        SnapshotManager(str(tmp_path / "cp")).save(promoted_store)
        again = SnapshotManager(str(tmp_path / "cp"))
        assert again.current_version == 1
        assert again.list_checkpoints()[0]["stats"]["axioms"] == 1

    def test_corruption_detected(self, tmp_path, promoted_store):
        """Test a tampered checkpoint fails the integrity check."""
        manager = SnapshotManager(str(tmp_path / "cp"))
        manager.save(promoted_store)
        (tmp_path / "cp" / "store_v1.json.gz").write_bytes(b"tampered")
        with pytest.raises(StorageError):
            manager.load(1)

    def test_rollback(self, tmp_path, promoted_store):
        """Test rollback re-saves the earlier checkpoint as newest."""
        manager = SnapshotManager(str(tmp_path / "cp"))
        manager.save(PrincipleStore())
        manager.save(promoted_store)
        checkpoint = manager.rollback()
        assert checkpoint.version == 3
        assert len(manager.load()) == 0
