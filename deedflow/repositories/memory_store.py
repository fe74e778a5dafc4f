"""In-Memory Case Store - Thread-safe store for tests and single-process use"""
import threading
from typing import Dict, List, Optional, Sequence

from .base import CaseStore
from ..domain.models import (
    Case, CaseSnapshot, AuditLogEntry, Clearance, Review, Attachment, AccountsBreakdown, TransferDeed
)
from ..domain.errors import CaseNotFoundError, ConcurrentModificationError, ConflictError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryCaseStore(CaseStore):
    """Cases held in a dict; one lock serializes every compare-and-swap"""

    def __init__(self):
        self._cases: Dict[str, Case] = {}
        self._lock = threading.Lock()

    def create_case(self, case: Case) -> Case:
        with self._lock:
            if case.case_id in self._cases:
                raise ConflictError(f"Case {case.case_id} already exists")
            self._cases[case.case_id] = case.model_copy(deep=True)
        logger.info(f"Created case: {case.case_id}", extra={"case_id": case.case_id})
        return case

    def get_case(self, case_id: str) -> Case:
        with self._lock:
            return self._require(case_id).model_copy(deep=True)

    def load_snapshot(self, case_id: str) -> CaseSnapshot:
        with self._lock:
            return self._require(case_id).to_snapshot()

    def commit(
        self,
        case_id: str,
        expected_version: int,
        new_stage: str,
        audit_entry: AuditLogEntry
    ) -> int:
        with self._lock:
            case = self._check_version(case_id, expected_version)
            case.current_stage = new_stage
            return self._finish(case, audit_entry)

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
        with self._lock:
            case = self._check_version(case_id, expected_version)
            if clearance is not None:
                case.clearances.append(clearance)
            if review is not None:
                case.reviews.append(review)
            if attachments is not None:
                case.attachments = list(attachments)
            if accounts_breakdown is not None:
                case.accounts_breakdown = accounts_breakdown
            if deed is not None:
                case.deed = deed
            return self._finish(case, audit_entry)

    def get_audit_log(self, case_id: str) -> List[AuditLogEntry]:
        with self._lock:
            return list(self._require(case_id).audit_log)

    def _require(self, case_id: str) -> Case:
        case = self._cases.get(case_id)
        if case is None:
            raise CaseNotFoundError(f"Case {case_id} not found", details={"case_id": case_id})
        return case

    def _check_version(self, case_id: str, expected_version: int) -> Case:
        case = self._require(case_id)
        if case.version != expected_version:
            raise ConcurrentModificationError(
                f"Case {case_id} was modified. Please refresh and try again.",
                details={
                    "case_id": case_id,
                    "expected_version": expected_version,
                    "current_version": case.version,
                }
            )
        return case

    @staticmethod
    def _finish(case: Case, audit_entry: AuditLogEntry) -> int:
        case.audit_log.append(audit_entry)
        case.version += 1
        case.updated_at = audit_entry.timestamp
        return case.version
