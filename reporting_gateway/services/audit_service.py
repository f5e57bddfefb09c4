"""Best-effort audit trail of generated reports."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from reporting_gateway.services.date_range import to_iso, utc_now

logger = logging.getLogger(__name__)

AUDIT_TABLE = "report_requests"


class AuditRecord(BaseModel):
    """One row of the report request log."""

    requested_by: str
    report_name: str
    params: Dict[str, Any] = Field(default_factory=dict)
    format: str = "json"
    created_at: str = Field(default_factory=lambda: to_iso(utc_now()))


class AuditLogger:
    """Queue of audit records drained by a background worker.

    ``submit`` never blocks and never raises: a full queue drops the record,
    and write failures are logged and discarded.
    """

    def __init__(self, data_store, table: str = AUDIT_TABLE, max_queue_size: int = 1000):
        self.data_store = data_store
        self.table = table
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._worker_task: Optional[asyncio.Task] = None
        self.written = 0
        self.failed = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    async def start(self):
        """Start the background writer."""
        if self.running:
            return
        logger.info("Starting audit writer")
        self._worker_task = asyncio.create_task(self._worker_loop())

    async def stop(self, drain: bool = True):
        """Stop the background writer, optionally flushing queued records first."""
        if drain and self.running:
            await self._queue.join()
        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            self._worker_task = None
            logger.info("Stopped audit writer")

    def submit(self, record: AuditRecord) -> bool:
        """Enqueue a record; returns False when it was dropped."""
        try:
            self._queue.put_nowait(record)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Audit queue full, dropping record for {record.report_name}")
            return False
        return True

    async def join(self):
        """Wait until every queued record has been processed."""
        await self._queue.join()

    async def _write(self, record: AuditRecord):
        try:
            await self.data_store.insert(self.table, record.model_dump())
            self.written += 1
        except Exception as e:
            self.failed += 1
            logger.debug(f"{self.table} insert failed: {e}")

    async def _worker_loop(self):
        """Background loop writing queued records."""
        while True:
            record = await self._queue.get()
            try:
                await self._write(record)
            finally:
                self._queue.task_done()


def build_audit_record(user_id: str, report_name: str, params: Dict[str, Any], now: Optional[datetime] = None) -> AuditRecord:
    return AuditRecord(
        requested_by=user_id,
        report_name=report_name,
        params=params,
        created_at=to_iso(now or utc_now()),
    )
