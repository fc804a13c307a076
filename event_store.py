"""
Event storage with tiered fallbacks.

Reads come from exactly one of, in order:

1. a JSON snapshot carried in an environment variable
2. the process-local cache
3. the JSON file on disk (populates the cache)
4. the built-in defaults, written to disk first when the file is missing
5. the built-in defaults, returned directly when the disk is unusable

Writes are applied to the cache immediately and then written to disk on a
best-effort basis, so a read-only deployment keeps working for the lifetime
of the process. Once a write has been accepted the cache is authoritative
and the snapshot is no longer consulted.
"""
import copy
import json
import logging
import os
import shutil
import tempfile
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

EVENT_STATUSES = ("upcoming", "registration-open", "completed", "cancelled")
DEFAULT_IMAGE = "/assets/images/nttc.jpg"

# Fields callers may never overwrite
PROTECTED_FIELDS = ("id", "createdAt")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def default_events() -> List[Dict[str, Any]]:
    now = utc_timestamp()
    events = [
        {
            "id": "1",
            "title": "Maritime Safety Symposium 2025",
            "date": "2025-01-15",
            "time": "9:00 AM - 5:00 PM",
            "location": "NETI Training Center, Calamba",
            "description": (
                "Join industry experts for comprehensive discussions on the latest maritime "
                "safety protocols, regulations, and best practices. This symposium will feature "
                "keynote speakers from leading maritime organizations."
            ),
            "category": "Symposium",
            "attendees": "200+",
            "image": "/assets/images/nttc.jpg",
            "status": "registration-open",
            "maxCapacity": 250,
            "currentRegistrations": 45,
        },
        {
            "id": "2",
            "title": "Bridge Simulation Training Workshop",
            "date": "2025-01-22",
            "time": "8:00 AM - 4:00 PM",
            "location": "NETI Simulation Center",
            "description": (
                "Hands-on training using our state-of-the-art bridge simulation technology. "
                "Perfect for maritime officers looking to enhance their navigation and "
                "decision-making skills."
            ),
            "category": "Workshop",
            "attendees": "30",
            "image": "/assets/images/nyk.png",
            "status": "registration-open",
            "maxCapacity": 30,
            "currentRegistrations": 12,
        },
        {
            "id": "3",
            "title": "Digital Maritime Education Conference",
            "date": "2025-02-05",
            "time": "10:00 AM - 6:00 PM",
            "location": "Virtual Event",
            "description": (
                "Explore the future of maritime education through digital technologies, VR "
                "training, and e-learning platforms. Network with educators and technology "
                "providers."
            ),
            "category": "Conference",
            "attendees": "500+",
            "image": "/assets/images/tdg.png",
            "status": "upcoming",
            "maxCapacity": 500,
            "currentRegistrations": 0,
        },
        {
            "id": "4",
            "title": "NETI Open House 2025",
            "date": "2025-02-12",
            "time": "9:00 AM - 3:00 PM",
            "location": "NETI Training Center, Calamba",
            "description": (
                "Tour our facilities, meet our instructors, and learn about our comprehensive "
                "maritime training programs. Information sessions for prospective students "
                "and their families."
            ),
            "category": "Open House",
            "attendees": "150+",
            "image": "/assets/images/nttc.jpg",
            "status": "registration-open",
            "maxCapacity": 200,
            "currentRegistrations": 34,
        },
    ]
    for event in events:
        event["createdAt"] = now
        event["updatedAt"] = now
    return events


class EventStore:
    """Process-scoped event collection backed by an env snapshot or a JSON file."""

    def __init__(self, file_path, snapshot_env: str = "EVENTS_DATA"):
        self.file_path = Path(file_path)
        self.snapshot_env = snapshot_env
        self._cache: Optional[List[Dict[str, Any]]] = None
        self._mutated = False
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._load())

    def get(self, event_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for event in self._load():
                if event.get("id") == event_id:
                    return copy.deepcopy(event)
        return None

    def _load(self) -> List[Dict[str, Any]]:
        if not self._mutated:
            snapshot = self._read_snapshot()
            if snapshot is not None:
                return snapshot

        if self._cache is not None:
            return self._cache

        try:
            if not self.file_path.exists():
                logger.info(f"Event file {self.file_path} not found, writing built-in defaults")
                self._write_file(default_events())
            events = self._read_file()
        except (OSError, ValueError) as e:
            logger.warning(f"Event file unavailable ({e}), serving built-in defaults")
            return default_events()

        self._cache = events
        return events

    def _read_snapshot(self) -> Optional[List[Dict[str, Any]]]:
        raw = os.environ.get(self.snapshot_env)
        if not raw:
            return None
        try:
            events = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Could not parse {self.snapshot_env} snapshot: {e}")
            return None
        if not isinstance(events, list):
            logger.error(f"{self.snapshot_env} snapshot is not a JSON array, ignoring it")
            return None
        return events

    def _read_file(self) -> List[Dict[str, Any]]:
        with open(self.file_path, "r", encoding="utf-8") as f:
            events = json.load(f)
        if not isinstance(events, list):
            raise ValueError(f"{self.file_path} does not contain a JSON array")
        return events

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            events = copy.deepcopy(self._load())
            now = utc_timestamp()
            event = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
            event["id"] = self._next_id(events)
            event["createdAt"] = now
            event["updatedAt"] = now
            events.append(event)
            self._commit(events)
            logger.info(f"Created event {event['id']}: {event.get('title')}")
            return copy.deepcopy(event)

    def update(self, event_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply changes to one event; None when the id is unknown."""
        with self._lock:
            events = copy.deepcopy(self._load())
            for index, event in enumerate(events):
                if event.get("id") == event_id:
                    break
            else:
                return None

            updated = dict(event)
            updated.update({k: v for k, v in changes.items() if k not in PROTECTED_FIELDS})
            updated["updatedAt"] = utc_timestamp()
            events[index] = updated
            self._commit(events)
            logger.info(f"Updated event {event_id}")
            return copy.deepcopy(updated)

    def delete(self, event_id: str) -> bool:
        with self._lock:
            events = self._load()
            remaining = [e for e in events if e.get("id") != event_id]
            if len(remaining) == len(events):
                return False
            self._commit(copy.deepcopy(remaining))
            logger.info(f"Deleted event {event_id}")
            return True

    def _commit(self, events: List[Dict[str, Any]]):
        previous = (self._cache, self._mutated)
        self._cache = events
        self._mutated = True
        try:
            self._write_file(events)
        except OSError as e:
            logger.warning(f"Could not persist events to {self.file_path}, keeping them in memory: {e}")
        except Exception:
            # Unserializable data; the mutation is rejected
            self._cache, self._mutated = previous
            raise

    def _write_file(self, events: List[Dict[str, Any]]):
        dir_path = self.file_path.parent
        dir_path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(mode="w", dir=dir_path, delete=False, encoding="utf-8") as tf:
            temp_path = Path(tf.name)
            try:
                json.dump(events, tf, indent=2, ensure_ascii=False)
            except Exception:
                tf.close()
                temp_path.unlink()
                raise
        try:
            shutil.move(str(temp_path), str(self.file_path))
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    @staticmethod
    def _next_id(events: List[Dict[str, Any]]) -> str:
        taken = {str(e.get("id")) for e in events}
        candidate = int(time.time() * 1000)
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)
