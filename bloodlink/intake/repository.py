"""
Blood Request Repository: persistence for finished intake records.

The commit controller only needs ``create_blood_request_record``.  Two
implementations:

  - InMemoryBloodRequestRepository: process-lifetime dict (default)
  - GCSBloodRequestRepository: one JSON blob per record in GCS

Storage path (GCS): gs://{bucket}/blood_requests/{record_id}.json
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from google.api_core.exceptions import NotFound as ApiNotFound
from google.cloud import storage
from google.cloud.exceptions import NotFound
from pydantic import BaseModel, Field

from bloodlink.intake.errors import PersistenceError, RecordNotFoundError

logger = logging.getLogger("intake.repository")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_record_id() -> str:
    return uuid.uuid4().hex


class RequestStatus(str, Enum):
    ACTIVE = "active"


class BloodRequestRecord(BaseModel):
    """Immutable once created; the intake core never updates a record."""

    record_id: str = Field(default_factory=_new_record_id)
    requester: str
    blood_type: str
    hospital: str
    location: str
    zone: str
    patient_problem: str
    bag_needed: str
    date: str
    time: str
    hemoglobin_point: str = "Not specified"
    additional_info: str = ""
    status: RequestStatus = RequestStatus.ACTIVE
    view_count: int = 0
    created_at: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}


class BloodRequestRepository(ABC):
    """Outbound persistence collaborator."""

    @abstractmethod
    async def create_blood_request_record(
        self,
        *,
        requester_id: str,
        blood_type: str,
        hospital: str,
        location: str,
        zone: str,
        patient_problem: str,
        bag_needed: str,
        date: str,
        time: str,
        hemoglobin_point: str,
        additional_info: str,
    ) -> str:
        """
        Persist a new active blood request and return its record id.

        Raises PersistenceError if the store is unreachable or rejects
        the write.
        """

    @abstractmethod
    async def get(self, record_id: str) -> BloodRequestRecord:
        """Raises RecordNotFoundError if no such record exists."""


def _build_record(requester_id: str, **fields: Any) -> BloodRequestRecord:
    try:
        return BloodRequestRecord(requester=requester_id, **fields)
    except ValueError as exc:
        raise PersistenceError(f"Rejected blood request record: {exc}") from exc


class InMemoryBloodRequestRepository(BloodRequestRepository):

    def __init__(self) -> None:
        self._records: dict[str, BloodRequestRecord] = {}

    async def create_blood_request_record(self, *, requester_id: str, **fields: Any) -> str:
        record = _build_record(requester_id, **fields)
        self._records[record.record_id] = record
        logger.info(
            "Created blood request %s (%s, %s bags) for requester %s",
            record.record_id, record.blood_type, record.bag_needed, requester_id,
        )
        return record.record_id

    async def get(self, record_id: str) -> BloodRequestRecord:
        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"No blood request {record_id}")
        return record

    def list_by_requester(self, requester_id: str) -> list[BloodRequestRecord]:
        records = [r for r in self._records.values() if r.requester == requester_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def __len__(self) -> int:
        return len(self._records)


class GCSBloodRequestRepository(BloodRequestRepository):
    """
    Persists records to GCS as JSON.

    The google-cloud-storage client is synchronous, so every blob call runs
    in a worker thread to keep the event loop free.
    """

    RECORD_PREFIX = "blood_requests"

    # HTTP timeout for individual GCS operations (seconds)
    GCS_TIMEOUT = 30

    def __init__(self, bucket_name: str, bucket=None) -> None:
        self.bucket_name = bucket_name
        self._bucket = bucket

    @property
    def bucket(self):
        """Lazy initialization of the GCS client and bucket."""
        if self._bucket is None:
            client = storage.Client()
            self._bucket = client.bucket(self.bucket_name)
            logger.info("GCS bucket '%s' initialized for blood requests", self.bucket_name)
        return self._bucket

    def _blob_path(self, record_id: str) -> str:
        return f"{self.RECORD_PREFIX}/{record_id}.json"

    async def create_blood_request_record(self, *, requester_id: str, **fields: Any) -> str:
        record = _build_record(requester_id, **fields)
        try:
            await asyncio.to_thread(self._upload, record)
        except Exception as exc:
            raise PersistenceError(
                f"Could not write blood request {record.record_id}: {exc}"
            ) from exc
        logger.info(
            "Stored blood request %s for requester %s in gs://%s",
            record.record_id, requester_id, self.bucket_name,
        )
        return record.record_id

    async def get(self, record_id: str) -> BloodRequestRecord:
        try:
            content = await asyncio.to_thread(self._download, record_id)
        except (NotFound, ApiNotFound) as exc:
            raise RecordNotFoundError(f"No blood request {record_id}") from exc
        except Exception as exc:
            raise PersistenceError(f"Could not read blood request {record_id}: {exc}") from exc
        return BloodRequestRecord.model_validate_json(content)

    def _upload(self, record: BloodRequestRecord) -> None:
        blob = self.bucket.blob(self._blob_path(record.record_id))
        blob.upload_from_string(
            record.model_dump_json(indent=2),
            content_type="application/json",
            if_generation_match=0,  # never overwrite an existing record
            timeout=self.GCS_TIMEOUT,
        )

    def _download(self, record_id: str) -> str:
        blob = self.bucket.blob(self._blob_path(record_id))
        return blob.download_as_text(timeout=self.GCS_TIMEOUT)
