"""
Record store access.

The store hands out immutable snapshots for the read path and owns the only
write path, the maintenance ticket collection. Ticket mutations are
serialised at two levels: an asyncio lock orders writers within one store,
and an exclusive ``flock`` on a sidecar ``.lock`` file orders writers across
store instances and worker processes sharing the same data file. Each
mutation reloads the document under both locks, applies the change in memory
and persists the whole document before the next writer may start. Tickets
additionally carry a version so that clients holding an outdated copy are
rejected instead of overwriting newer data.
"""

from __future__ import annotations

import asyncio
import fcntl
import json
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol, TypeVar

from pydantic import ValidationError

from transit_insights.core.metrics import observe_store_operation
from transit_insights.errors import StoreUnavailableError
from transit_insights.models.records import MaintenanceTicket
from transit_insights.persistence.snapshot import Snapshot, TICKETS_COLLECTION

logger = logging.getLogger(__name__)

T = TypeVar("T")

TicketMutation = Callable[
    [list[MaintenanceTicket]], tuple[list[MaintenanceTicket], T]
]


class RecordStore(Protocol):
    """Interface the analytics services rely on."""

    async def load_snapshot(self) -> Snapshot:
        """Return an immutable view of every collection."""
        ...

    async def modify_tickets(self, mutation: TicketMutation[T]) -> T:
        """Apply ``mutation`` to the ticket collection and persist the result.

        The mutation receives the current tickets and returns the new ticket
        list together with the value handed back to the caller. Exceptions
        raised by the mutation abort the write.
        """
        ...

    async def ping(self) -> bool:
        """Return True when the backing storage is readable."""
        ...


class JsonFileRecordStore:
    """Record store backed by a single JSON document on disk."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock_path = self._path.with_name(f"{self._path.name}.lock")
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def load_snapshot(self) -> Snapshot:
        started = time.monotonic()
        try:
            document = await asyncio.to_thread(self._load_sync)
            snapshot = Snapshot.from_document(document)
        except ValidationError as exc:
            observe_store_operation("load", "error", time.monotonic() - started)
            logger.error("Record store document at %s is malformed", self._path)
            raise StoreUnavailableError("Record store contains invalid records") from exc
        except StoreUnavailableError:
            observe_store_operation("load", "error", time.monotonic() - started)
            raise

        observe_store_operation("load", "success", time.monotonic() - started)
        return snapshot

    async def modify_tickets(self, mutation: TicketMutation[T]) -> T:
        async with self._write_lock:
            started = time.monotonic()
            try:
                result = await asyncio.to_thread(self._modify_sync, mutation)
            except StoreUnavailableError:
                observe_store_operation("write", "error", time.monotonic() - started)
                raise
            observe_store_operation("write", "success", time.monotonic() - started)
            return result

    async def ping(self) -> bool:
        try:
            await asyncio.to_thread(self._load_sync)
        except StoreUnavailableError:
            return False
        return True

    def _modify_sync(self, mutation: TicketMutation[T]) -> T:
        with self._file_lock():
            document = self._load_sync()
            try:
                tickets = [
                    MaintenanceTicket.model_validate(item)
                    for item in document.get(TICKETS_COLLECTION) or []
                ]
            except ValidationError as exc:
                raise StoreUnavailableError(
                    "Record store contains invalid maintenance tickets"
                ) from exc

            updated, result = mutation(tickets)

            document[TICKETS_COLLECTION] = [
                ticket.model_dump(mode="json", by_alias=True, exclude_none=True)
                for ticket in updated
            ]
            try:
                self._write_sync(document)
            except OSError as exc:
                logger.error(
                    "Failed to persist record store at %s", self._path, exc_info=True
                )
                raise StoreUnavailableError("Failed to persist record store") from exc
            return result

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        """Hold an exclusive lock on the sidecar lock file of the data file."""
        try:
            self._lock_path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self._lock_path, "a+", encoding="utf-8")
        except OSError as exc:
            logger.error("Cannot open record store lock %s: %s", self._lock_path, exc)
            raise StoreUnavailableError("Record store is unavailable") from exc
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()

    def _load_sync(self) -> dict[str, Any]:
        try:
            return self._read_sync()
        except (OSError, ValueError) as exc:
            logger.error("Failed to read record store at %s: %s", self._path, exc)
            raise StoreUnavailableError("Record store is unavailable") from exc

    def _read_sync(self) -> dict[str, Any]:
        if not self._path.exists():
            logger.debug("Record store %s does not exist yet; using empty data", self._path)
            return {}
        with self._path.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
        if not isinstance(document, dict):
            raise ValueError("Record store root must be a JSON object")
        return document

    def _write_sync(self, document: dict[str, Any]) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
            os.replace(temp_name, self._path)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise


__all__ = ["RecordStore", "JsonFileRecordStore", "TicketMutation"]
