"""Deed Finalizer - Two-witness signature protocol for the transfer deed"""
import hashlib
import json
from datetime import datetime
from typing import Optional

from ..domain.models import TransferDeed
from ..domain.errors import (
    ValidationError, WitnessValidationError, DeedAlreadyFinalizedError, DeedAlreadyExistsError,
    DeedNotFoundError
)
from ..utils.idgen import generate_deed_id
from ..utils.time import format_iso
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DeedFinalizer:
    """
    Draft and finalize transfer deeds

    Rules:
    - Both witnesses must be given and must be different people
    - Finalization needs both signatures and happens at most once
    - A finalized deed accepts no further drafts or edits
    """

    def create_draft(
        self,
        case_id: str,
        witness1_id: str,
        witness2_id: str,
        now: datetime,
        content: Optional[str] = None,
        existing: Optional[TransferDeed] = None
    ) -> TransferDeed:
        """Create the case's deed draft"""
        if existing is not None:
            self._ensure_editable(existing)
            raise DeedAlreadyExistsError(
                f"Transfer deed already exists for case {case_id}",
                details={"deed_id": existing.deed_id}
            )

        self._validate_witnesses(witness1_id, witness2_id)
        return TransferDeed(
            deed_id=generate_deed_id(),
            case_id=case_id,
            witness1_id=witness1_id,
            witness2_id=witness2_id,
            content=content,
            created_at=now,
            updated_at=now,
        )

    def update_draft(
        self,
        deed: Optional[TransferDeed],
        now: datetime,
        witness1_id: Optional[str] = None,
        witness2_id: Optional[str] = None,
        content: Optional[str] = None
    ) -> TransferDeed:
        """Change witnesses or content of a draft"""
        deed = self._require(deed)
        self._ensure_editable(deed)

        new_witness1 = witness1_id if witness1_id is not None else deed.witness1_id
        new_witness2 = witness2_id if witness2_id is not None else deed.witness2_id
        self._validate_witnesses(new_witness1, new_witness2)

        return deed.model_copy(update={
            "witness1_id": new_witness1,
            "witness2_id": new_witness2,
            "content": content if content is not None else deed.content,
            "updated_at": now,
        })

    def finalize(
        self,
        deed: Optional[TransferDeed],
        witness1_signature: str,
        witness2_signature: str,
        now: datetime,
        document_ref: Optional[str] = None
    ) -> TransferDeed:
        """
        Finalize a draft with both witness signatures

        Raises:
            DeedNotFoundError: No draft exists
            DeedAlreadyFinalizedError: The deed was finalized before
            WitnessValidationError: Witnesses not distinct or a signature missing
        """
        deed = self._require(deed)
        self._ensure_editable(deed)
        self._validate_witnesses(deed.witness1_id, deed.witness2_id)

        missing = [
            label for label, signature in (
                ("witness1", witness1_signature),
                ("witness2", witness2_signature),
            )
            if not signature or not signature.strip()
        ]
        if missing:
            raise WitnessValidationError(
                f"Missing witness signatures: {', '.join(missing)}",
                details={"missing_signatures": missing}
            )

        finalized = deed.model_copy(update={
            "witness1_signature": witness1_signature,
            "witness2_signature": witness2_signature,
            "is_finalized": True,
            "finalized_document_ref": document_ref,
            "finalized_at": now,
            "updated_at": now,
        })
        finalized = finalized.model_copy(update={"hash_sha256": self.compute_hash(finalized)})

        logger.info(
            f"Transfer deed {deed.deed_id} finalized",
            extra={"case_id": deed.case_id}
        )
        return finalized

    def attach_document(self, deed: TransferDeed, document_ref: str) -> TransferDeed:
        """Set the signed document reference of a finalized deed and rehash it"""
        if not deed.is_finalized:
            raise ValidationError(
                f"Transfer deed {deed.deed_id} is not finalized",
                details={"deed_id": deed.deed_id}
            )
        updated = deed.model_copy(update={"finalized_document_ref": document_ref})
        return updated.model_copy(update={"hash_sha256": self.compute_hash(updated)})

    @staticmethod
    def compute_hash(deed: TransferDeed) -> str:
        """SHA-256 over the canonical JSON of the deed's identifying fields"""
        payload = {
            "deed_id": deed.deed_id,
            "case_id": deed.case_id,
            "witness1_id": deed.witness1_id,
            "witness2_id": deed.witness2_id,
            "content": deed.content,
            "witness1_signature": deed.witness1_signature,
            "witness2_signature": deed.witness2_signature,
            "finalized_document_ref": deed.finalized_document_ref,
            "finalized_at": format_iso(deed.finalized_at) if deed.finalized_at else None,
        }
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @staticmethod
    def _require(deed: Optional[TransferDeed]) -> TransferDeed:
        if deed is None:
            raise DeedNotFoundError("Transfer deed not created")
        return deed

    @staticmethod
    def _ensure_editable(deed: TransferDeed) -> None:
        if deed.is_finalized:
            raise DeedAlreadyFinalizedError(
                f"Transfer deed {deed.deed_id} is already finalized",
                details={"deed_id": deed.deed_id, "case_id": deed.case_id}
            )

    @staticmethod
    def _validate_witnesses(witness1_id: Optional[str], witness2_id: Optional[str]) -> None:
        w1 = (witness1_id or "").strip()
        w2 = (witness2_id or "").strip()
        if not w1 or not w2:
            raise WitnessValidationError(
                "Both witnesses are required",
                details={"witness1_id": witness1_id, "witness2_id": witness2_id}
            )
        if w1 == w2:
            raise WitnessValidationError(
                "Witnesses must be two different people",
                details={"witness_id": w1}
            )
