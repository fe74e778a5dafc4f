"""Case Store - Persistence port used by the engine"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..domain.models import (
    Case, CaseSnapshot, AuditLogEntry, Clearance, Review, Attachment, AccountsBreakdown, TransferDeed
)


class CaseStore(ABC):
    """
    Versioned case storage with compare-and-swap writes

    Every write names the version it was computed from. A write against a
    stale version fails with ConcurrentModificationError and changes nothing;
    a successful write appends its audit entry and bumps the version in the
    same atomic step.
    """

    @abstractmethod
    def create_case(self, case: Case) -> Case:
        ...

    @abstractmethod
    def get_case(self, case_id: str) -> Case:
        """Full case including the audit log; raises CaseNotFoundError"""

    @abstractmethod
    def load_snapshot(self, case_id: str) -> CaseSnapshot:
        """Immutable guard view of a case; raises CaseNotFoundError"""

    @abstractmethod
    def commit(
        self,
        case_id: str,
        expected_version: int,
        new_stage: str,
        audit_entry: AuditLogEntry
    ) -> int:
        """Move the case to new_stage and append audit_entry; returns the new version"""

    @abstractmethod
    def apply(
        self,
        case_id: str,
        expected_version: int,
        audit_entry: AuditLogEntry,
        *,
        clearance: Optional[Clearance] = None,
        review: Optional[Review] = None,
        attachments: Optional[Sequence[Attachment]] = None,
        accounts_breakdown: Optional[AccountsBreakdown] = None,
        deed: Optional[TransferDeed] = None
    ) -> int:
        """
        Write case data without changing the stage; returns the new version

        clearance and review are appended, attachments replaces the whole
        list, accounts_breakdown and deed replace the current value.
        """

    @abstractmethod
    def get_audit_log(self, case_id: str) -> List[AuditLogEntry]:
        ...
