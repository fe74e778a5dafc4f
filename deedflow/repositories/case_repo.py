"""Case Repository - MongoDB-backed case store"""
from typing import Any, Dict, List, Optional, Sequence
from pymongo import ReturnDocument
from pymongo.collection import Collection

from .base import CaseStore
from .mongo_client import get_collection
from ..config.settings import settings
from ..domain.models import (
    Case, CaseSnapshot, AuditLogEntry, Clearance, Review, Attachment, AccountsBreakdown, TransferDeed
)
from ..domain.errors import CaseNotFoundError, ConcurrentModificationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class MongoCaseRepository(CaseStore):
    """
    One document per case

    Clearances, reviews and the audit log are embedded arrays, so a stage
    change and its audit entry are a single find_one_and_update filtered on
    the expected version.
    """

    def __init__(self, collection: Optional[Collection] = None):
        self._cases: Collection = (
            collection if collection is not None else get_collection(settings.cases_collection)
        )

    def create_case(self, case: Case) -> Case:
        """Create a new case"""
        # mode="json" stores Decimal amounts as strings; pymongo cannot encode Decimal
        doc = case.model_dump(mode="json")
        doc["_id"] = case.case_id

        self._cases.insert_one(doc)
        logger.info(f"Created case: {case.case_id}", extra={"case_id": case.case_id})
        return case

    def get_case(self, case_id: str) -> Case:
        doc = self._cases.find_one({"case_id": case_id})
        if not doc:
            raise CaseNotFoundError(f"Case {case_id} not found", details={"case_id": case_id})
        doc.pop("_id", None)
        return Case.model_validate(doc)

    def load_snapshot(self, case_id: str) -> CaseSnapshot:
        doc = self._cases.find_one({"case_id": case_id}, {"audit_log": 0})
        if not doc:
            raise CaseNotFoundError(f"Case {case_id} not found", details={"case_id": case_id})
        doc.pop("_id", None)
        return Case.model_validate(doc).to_snapshot()

    def commit(
        self,
        case_id: str,
        expected_version: int,
        new_stage: str,
        audit_entry: AuditLogEntry
    ) -> int:
        return self._update(
            case_id,
            expected_version,
            audit_entry,
            sets={"current_stage": new_stage},
            pushes={}
        )

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
        sets: Dict[str, Any] = {}
        pushes: Dict[str, Any] = {}
        if clearance is not None:
            pushes["clearances"] = clearance.model_dump(mode="json")
        if review is not None:
            pushes["reviews"] = review.model_dump(mode="json")
        if attachments is not None:
            sets["attachments"] = [a.model_dump(mode="json") for a in attachments]
        if accounts_breakdown is not None:
            sets["accounts_breakdown"] = accounts_breakdown.model_dump(mode="json")
        if deed is not None:
            sets["deed"] = deed.model_dump(mode="json")
        return self._update(case_id, expected_version, audit_entry, sets=sets, pushes=pushes)

    def get_audit_log(self, case_id: str) -> List[AuditLogEntry]:
        doc = self._cases.find_one({"case_id": case_id}, {"audit_log": 1})
        if not doc:
            raise CaseNotFoundError(f"Case {case_id} not found", details={"case_id": case_id})
        return [AuditLogEntry.model_validate(e) for e in doc.get("audit_log", [])]

    def _update(
        self,
        case_id: str,
        expected_version: int,
        audit_entry: AuditLogEntry,
        sets: Dict[str, Any],
        pushes: Dict[str, Any]
    ) -> int:
        """Compare-and-swap on version"""
        entry = audit_entry.model_dump(mode="json")
        sets = dict(sets)
        sets["version"] = expected_version + 1
        sets["updated_at"] = entry["timestamp"]
        pushes = dict(pushes)
        pushes["audit_log"] = entry

        result = self._cases.find_one_and_update(
            {"case_id": case_id, "version": expected_version},
            {"$set": sets, "$push": pushes},
            projection={"version": 1},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            exists = self._cases.find_one({"case_id": case_id}, {"version": 1})
            if exists:
                raise ConcurrentModificationError(
                    f"Case {case_id} was modified. Please refresh and try again.",
                    details={
                        "case_id": case_id,
                        "expected_version": expected_version,
                        "current_version": exists.get("version"),
                    }
                )
            raise CaseNotFoundError(f"Case {case_id} not found", details={"case_id": case_id})

        logger.debug(
            f"Updated case: {case_id}",
            extra={"case_id": case_id, "version": result["version"]}
        )
        return result["version"]
