"""Interfaces to the external account and record backend."""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional

from ..core.scanning.data_structures import ScanResult


@dataclass(frozen=True)
class UserIdentity:
    """The signed-in user as reported by the identity backend."""
    id: str
    email: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'email': self.email}


@dataclass(frozen=True)
class ScanRecord:
    """A persisted scan as stored by the record backend."""
    user_id: str
    url: str
    scan_type: str
    result: ScanResult
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_result(cls, user_id: str, result: ScanResult) -> 'ScanRecord':
        return cls(
            user_id=user_id,
            url=result.target_url,
            scan_type=",".join(category.value for category in result.categories_run),
            result=result,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.record_id,
            'user_id': self.user_id,
            'url': self.url,
            'scan_type': self.scan_type,
            'result': self.result.to_dict(),
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanRecord':
        return cls(
            user_id=data['user_id'],
            url=data['url'],
            scan_type=data['scan_type'],
            result=ScanResult.from_dict(data['result']),
            record_id=data.get('id') or str(uuid.uuid4()),
            created_at=datetime.fromisoformat(data['created_at']),
        )


class ScanRecordStore(ABC):
    """Abstract persistence for completed scans."""

    @abstractmethod
    async def save_scan_record(self, user_id: str, result: ScanResult) -> ScanRecord:
        """Persist a completed scan.

        Args:
            user_id: Owner of the record
            result: Completed scan result

        Returns:
            The stored ScanRecord

        Raises:
            RecordStoreError: If the record cannot be saved
        """
        pass

    @abstractmethod
    async def list_scan_records(self, user_id: str) -> List[ScanRecord]:
        """List a user's scan records, newest first.

        Raises:
            RecordStoreError: If the records cannot be listed
        """
        pass


class IdentityProvider(ABC):
    """Abstract source of the current user."""

    @abstractmethod
    async def get_current_user(self) -> Optional[UserIdentity]:
        """Return the signed-in user, or None when nobody is signed in."""
        pass
