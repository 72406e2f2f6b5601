"""Store snapshots: opaque blobs, versioned checkpoints, atomic writes.

- `SnapshotCodec` turns a PrincipleStore into bytes (gzip JSON) and back
- `write_snapshot` / `read_snapshot` for a single file
- `SnapshotManager` keeps numbered checkpoints with SHA-256 integrity hashes
"""

from __future__ import annotations

import gzip
import hashlib
import json
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..beliefs.store import SNAPSHOT_FORMAT, PrincipleStore
from ..utils.errors import StorageError

logger = getLogger("AXIOMFORGE.Storage")

GZIP_MAGIC = b"\x1f\x8b"


class SnapshotCodec:
    """Encode stores as JSON, optionally gzip-compressed."""

    COMPRESSION_LEVEL = 9

    def __init__(self, compression: bool = True):
        self.compression = compression

    @staticmethod
    def compute_hash(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def encode(self, store: PrincipleStore) -> bytes:
        raw = json.dumps(store.to_dict(), ensure_ascii=False).encode("utf-8")
        if not self.compression:
            return raw
        return gzip.compress(raw, compresslevel=self.COMPRESSION_LEVEL)

    def decode(self, blob: bytes) -> PrincipleStore:
        try:
            raw = gzip.decompress(blob) if blob[:2] == GZIP_MAGIC else blob
            data = json.loads(raw.decode("utf-8"))
        except (OSError, EOFError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Snapshot is not readable: {e}") from e

        fmt = data.get("format") if isinstance(data, dict) else None
        if fmt != SNAPSHOT_FORMAT:
            raise StorageError(
                "Unsupported snapshot format",
                context={"format": fmt, "expected": SNAPSHOT_FORMAT},
            )
        try:
            return PrincipleStore.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Snapshot content is corrupt: {e}") from e


def _atomic_write(path: Path, blob: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = path.with_name(path.name + ".tmp")
    try:
        with open(temp_file, "wb") as f:
            f.write(blob)
        temp_file.replace(path)
    except OSError as e:
        if temp_file.exists():
            temp_file.unlink()
        raise StorageError(f"Failed to write snapshot: {e}", context={"path": str(path)}) from e


def write_snapshot(store: PrincipleStore, path: Union[str, Path], compression: bool = True) -> Path:
    path = Path(path)
    _atomic_write(path, SnapshotCodec(compression).encode(store))
    logger.info(f"Snapshot written to {path} ({len(store)} principles, {len(store.axioms)} axioms)")
    return path


def read_snapshot(path: Union[str, Path]) -> PrincipleStore:
    path = Path(path)
    try:
        blob = path.read_bytes()
    except OSError as e:
        raise StorageError(f"Failed to read snapshot: {e}", context={"path": str(path)}) from e
    return SnapshotCodec().decode(blob)


@dataclass
class Checkpoint:
    version: int
    timestamp: float = field(default_factory=time.time)
    data_hash: str = ""
    size_bytes: int = 0
    description: str = ""
    stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SnapshotManager:
    """Numbered store checkpoints with an integrity index."""

    INDEX_NAME = "checkpoints.json"

    def __init__(self, checkpoint_dir: str = ".axiomforge/checkpoints", max_checkpoints: int = 10, compression: bool = True):
        self.checkpoint_dir = Path(checkpoint_dir)
        self.max_checkpoints = max(1, max_checkpoints)
        self.codec = SnapshotCodec(compression)
        self.current_version = 0
        self.checkpoints: List[Checkpoint] = []
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)
        self._load_index()

    @classmethod
    def from_config(cls, storage: Any) -> "SnapshotManager":
        return cls(storage.checkpoint_dir, storage.max_checkpoints, storage.compression)

    @property
    def index_file(self) -> Path:
        return self.checkpoint_dir / self.INDEX_NAME

    def _path(self, version: int) -> Path:
        return self.checkpoint_dir / f"store_v{version}.json.gz"

    def _load_index(self) -> None:
        if not self.index_file.exists():
            return
        try:
            index = json.loads(self.index_file.read_text(encoding="utf-8"))
            self.checkpoints = [Checkpoint(**cp) for cp in index.get("checkpoints", [])]
            self.current_version = int(index.get("current_version", 0))
        except (OSError, json.JSONDecodeError, TypeError) as e:
            raise StorageError(f"Checkpoint index is corrupt: {e}", context={"path": str(self.index_file)}) from e
        logger.debug(f"Loaded {len(self.checkpoints)} checkpoints")

    def _save_index(self) -> None:
        payload = {
            "checkpoints": [cp.to_dict() for cp in self.checkpoints],
            "current_version": self.current_version,
            "last_updated": time.time(),
        }
        _atomic_write(self.index_file, json.dumps(payload, indent=2).encode("utf-8"))

    def save(self, store: PrincipleStore, description: str = "") -> Checkpoint:
        blob = self.codec.encode(store)
        checkpoint = Checkpoint(
            version=self.current_version + 1,
            data_hash=self.codec.compute_hash(blob),
            size_bytes=len(blob),
            description=description,
            stats=store.stats(),
        )
        _atomic_write(self._path(checkpoint.version), blob)

        self.current_version = checkpoint.version
        self.checkpoints.append(checkpoint)
        self._prune()
        self._save_index()
        logger.info(f"Saved checkpoint v{checkpoint.version} ({checkpoint.size_bytes} bytes)")
        return checkpoint

    def load(self, version: Optional[int] = None) -> PrincipleStore:
        target = version or self.current_version
        checkpoint = next((cp for cp in self.checkpoints if cp.version == target), None)
        if checkpoint is None:
            raise StorageError(f"Checkpoint v{target} not found", context={"available": self.versions()})
        try:
            blob = self._path(target).read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read checkpoint v{target}: {e}") from e
        if self.codec.compute_hash(blob) != checkpoint.data_hash:
            raise StorageError(f"Integrity check failed for checkpoint v{target}", context={"version": target})
        return self.codec.decode(blob)

    def rollback(self, steps: int = 1) -> Checkpoint:
        """Re-save an earlier checkpoint as the newest one (history is kept)."""
        versions = self.versions()
        if len(versions) < 2:
            raise StorageError("No earlier checkpoint to roll back to", context={"available": versions})
        target = versions[max(0, len(versions) - 1 - steps)]
        store = self.load(target)
        return self.save(store, description=f"Rolled back from v{self.current_version} to v{target}")

    def _prune(self) -> None:
        if len(self.checkpoints) <= self.max_checkpoints:
            return
        excess = len(self.checkpoints) - self.max_checkpoints
        for checkpoint in self.checkpoints[:excess]:
            path = self._path(checkpoint.version)
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            logger.debug(f"Pruned checkpoint v{checkpoint.version}")
        self.checkpoints = self.checkpoints[excess:]

    def versions(self) -> List[int]:
        return [cp.version for cp in self.checkpoints]

    def list_checkpoints(self) -> List[Dict[str, Any]]:
        return [
            {
                "version": cp.version,
                "datetime": datetime.fromtimestamp(cp.timestamp).isoformat(),
                "description": cp.description,
                "size_bytes": cp.size_bytes,
                "stats": cp.stats,
            }
            for cp in self.checkpoints
        ]


__all__ = [
    "SnapshotCodec",
    "SnapshotManager",
    "Checkpoint",
    "write_snapshot",
    "read_snapshot",
]
