"""In-memory collaborator implementations for local runs and tests."""

import asyncio
import logging
from typing import Dict, List, Optional

from .base import IdentityProvider, ScanRecord, ScanRecordStore, UserIdentity
from ..core.exceptions import RecordStoreError
from ..core.scanning.data_structures import ScanResult


logger = logging.getLogger(__name__)


class InMemoryScanRecordStore(ScanRecordStore):
    """Keeps scan records in a per-user list."""

    def __init__(self, max_records_per_user: Optional[int] = None):
        self.max_records_per_user = max_records_per_user
        self._records: Dict[str, List[ScanRecord]] = {}
        self._lock = asyncio.Lock()

    async def save_scan_record(self, user_id: str, result: ScanResult) -> ScanRecord:
        if not user_id:
            raise RecordStoreError("Cannot save a scan record without a user", user_id=user_id)

        record = ScanRecord.from_result(user_id, result)
        async with self._lock:
            records = self._records.setdefault(user_id, [])
            records.append(record)
            if self.max_records_per_user and len(records) > self.max_records_per_user:
                del records[:len(records) - self.max_records_per_user]

        logger.debug(f"Saved scan record {record.record_id} for user {user_id}")
        return record

    async def list_scan_records(self, user_id: str) -> List[ScanRecord]:
        async with self._lock:
            records = list(self._records.get(user_id, []))
        # Records are appended in save order; ties on created_at keep it
        return [record for _, record in sorted(
            enumerate(records),
            key=lambda item: (item[1].created_at, item[0]),
            reverse=True
        )]

    async def clear(self) -> None:
        async with self._lock:
            self._records.clear()


class StaticIdentityProvider(IdentityProvider):
    """Identity provider returning a fixed user (or nobody)."""

    def __init__(self, user: Optional[UserIdentity] = None):
        self.user = user

    async def get_current_user(self) -> Optional[UserIdentity]:
        return self.user

    def sign_in(self, user: UserIdentity) -> None:
        self.user = user

    def sign_out(self) -> None:
        self.user = None
