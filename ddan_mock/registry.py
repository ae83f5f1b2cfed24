from threading import Lock
import logging

from ddan_mock import state_machine
from ddan_mock.models import ScanRecord

logger = logging.getLogger("ddan_mock.registry")


class ScanRegistry:
    """
    In-memory store of scan records keyed by file id.

    Lives as long as the process. Each id gets its own lock so that a poll's
    read-decide-write on one record never interleaves with another poll or
    submission for the same id, while different ids proceed independently.
    The map-level lock is only held for dict access.
    """

    def __init__(self) -> None:
        self._map_lock = Lock()
        self._records: dict[str, ScanRecord] = {}
        self._key_locks: dict[str, Lock] = {}

    def __len__(self) -> int:
        with self._map_lock:
            return len(self._records)

    def __contains__(self, file_id: object) -> bool:
        with self._map_lock:
            return file_id in self._records

    def _key_lock(self, file_id: str) -> Lock:
        with self._map_lock:
            return self._key_locks.setdefault(file_id, Lock())

    def put(self, file_id: str, record: ScanRecord) -> None:
        if not file_id:
            raise ValueError("file_id must be a non-empty string")

        stored = record.model_copy()
        with self._key_lock(file_id):
            with self._map_lock:
                self._records[file_id] = stored

    def get(self, file_id: str) -> ScanRecord | None:
        with self._map_lock:
            record = self._records.get(file_id)
        return record.model_copy() if record is not None else None

    def list(self) -> list[ScanRecord]:
        with self._map_lock:
            return [record.model_copy() for record in self._records.values()]

    def advance(self, file_id: str, value: float) -> ScanRecord | None:
        """
        Apply one poll with draw ``value`` to the record for ``file_id``.

        Returns the resulting record, or None if the id was never submitted.
        Unknown ids do not create records.
        """
        with self._map_lock:
            if file_id not in self._records:
                return None
            key_lock = self._key_locks.setdefault(file_id, Lock())

        with key_lock:
            with self._map_lock:
                current = self._records[file_id]
            was_terminal = current.is_terminal
            updated = state_machine.advance(current.model_copy(), value)
            if not was_terminal:
                with self._map_lock:
                    self._records[file_id] = updated
                logger.debug(
                    "Advanced '%s' with draw %s -> %s/%s",
                    file_id, value, updated.status.value, updated.result.value,
                )
            return updated.model_copy()
