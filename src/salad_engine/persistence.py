"""
Periodic snapshots of all rooms to disk.

Storage failures are logged and swallowed; they never reach players.
"""

import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple

import orjson

from .models import RoomState
from .serialization import room_from_dict, serialize_room

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "game-state-"
SNAPSHOT_SUFFIX = ".json"


class StatePersistence:
    def __init__(self, state_dir: str = "game-states", keep: int = 10):
        self.state_dir = Path(state_dir)
        self.keep = keep
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def _snapshot_files(self) -> List[Path]:
        """Snapshot files, newest first."""
        stamped = {}
        for path in self.state_dir.glob(f"{SNAPSHOT_PREFIX}*{SNAPSHOT_SUFFIX}"):
            stamp = path.name[len(SNAPSHOT_PREFIX):-len(SNAPSHOT_SUFFIX)]
            if stamp.isdigit():
                stamped[path] = int(stamp)
        return sorted(stamped, key=stamped.get, reverse=True)

    def encode_snapshot(self, rooms: List[RoomState]) -> Optional[Tuple[Path, bytes]]:
        """Serialize every room into a new snapshot; None when there is nothing to save."""
        if not rooms:
            return None

        timestamp = int(time.time() * 1000)
        path = self.state_dir / f"{SNAPSHOT_PREFIX}{timestamp}{SNAPSHOT_SUFFIX}"
        try:
            data = orjson.dumps(
                {"timestamp": timestamp, "rooms": [serialize_room(room) for room in rooms]},
                option=orjson.OPT_INDENT_2,
            )
        except TypeError as e:
            logger.error(f"Failed to encode snapshot: {e}")
            return None
        return path, data

    def write_snapshot(self, path: Path, data: bytes) -> Optional[Path]:
        """Write an encoded snapshot and prune old ones; touches no room state."""
        try:
            path.write_bytes(data)
            self.cleanup_old_snapshots()
        except OSError as e:
            logger.error(f"Failed to save snapshot: {e}")
            return None
        return path

    def save_snapshot(self, rooms: List[RoomState]) -> Optional[Path]:
        snapshot = self.encode_snapshot(rooms)
        if snapshot is None:
            return None
        return self.write_snapshot(*snapshot)

    def load_latest_snapshot(self) -> Optional[List[RoomState]]:
        """Rooms from the most recent snapshot, or None if there is none."""
        try:
            files = self._snapshot_files()
            if not files:
                return None
            parsed = orjson.loads(files[0].read_bytes())
            rooms = [room_from_dict(data) for data in parsed["rooms"]]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load snapshot: {e}")
            return None

        logger.info(f"Loaded snapshot from {files[0].name} with {len(rooms)} rooms")
        return rooms

    def cleanup_old_snapshots(self):
        try:
            for path in self._snapshot_files()[self.keep:]:
                path.unlink()
        except OSError as e:
            logger.error(f"Failed to cleanup snapshots: {e}")

    def save_before_shutdown(self, rooms: List[RoomState]):
        logger.info("Saving state before shutdown...")
        self.save_snapshot(rooms)
