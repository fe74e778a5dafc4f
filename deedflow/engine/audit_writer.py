"""Audit Writer - Build append-only audit log entries"""
from typing import Any, Dict, Optional

from ..domain.models import (
    ActorContext, AuditLogEntry, Clearance, Review, Attachment, AccountsBreakdown, TransferDeed
)
from ..domain.enums import AuditAction
from ..utils.idgen import generate_audit_entry_id
from ..utils.time import utc_now
from ..utils.logger import get_correlation_id


class AuditWriter:
    """
    Build audit log entries

    Every state change and significant action produces an entry. Entries are
    handed to the case store together with the change they describe, so the
    change and its audit record are committed in one write.
    """

    def write_entry(
        self,
        case_id: str,
        action: AuditAction,
        actor: ActorContext,
        from_stage: Optional[str] = None,
        to_stage: Optional[str] = None,
        remarks: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """Build a single audit entry"""
        return AuditLogEntry(
            audit_entry_id=generate_audit_entry_id(),
            case_id=case_id,
            action=action,
            from_stage=from_stage,
            to_stage=to_stage,
            acting_user=actor.user_id,
            actor_role=actor.role,
            timestamp=utc_now(),
            remarks=remarks,
            details=details or {},
            correlation_id=correlation_id or get_correlation_id()
        )

    def write_case_created(
        self,
        case_id: str,
        actor: ActorContext,
        initial_stage: str,
        plot_id: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """Case creation entry"""
        return self.write_entry(
            case_id=case_id,
            action=AuditAction.CASE_CREATED,
            actor=actor,
            details={"initial_stage": initial_stage, "plot_id": plot_id},
            correlation_id=correlation_id
        )

    def write_transition(
        self,
        case_id: str,
        actor: ActorContext,
        from_stage: str,
        to_stage: str,
        guard_name: str,
        guard_reason: str,
        remarks: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """Stage transition entry"""
        return self.write_entry(
            case_id=case_id,
            action=AuditAction.STAGE_TRANSITION,
            actor=actor,
            from_stage=from_stage,
            to_stage=to_stage,
            remarks=remarks,
            details={"guard_name": guard_name, "guard_reason": guard_reason},
            correlation_id=correlation_id
        )

    def write_clearance(
        self,
        clearance: Clearance,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """Section clearance entry"""
        return self.write_entry(
            case_id=clearance.case_id,
            action=AuditAction.CLEARANCE_RECORDED,
            actor=actor,
            remarks=clearance.remarks,
            details={
                "clearance_id": clearance.clearance_id,
                "section": clearance.section.value,
                "status": clearance.status.value,
                "signed_document_ref": clearance.signed_document_ref,
            },
            correlation_id=correlation_id
        )

    def write_review(
        self,
        review: Review,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """OWO / approver review entry"""
        return self.write_entry(
            case_id=review.case_id,
            action=AuditAction.REVIEW_RECORDED,
            actor=actor,
            remarks=review.remarks,
            details={
                "review_id": review.review_id,
                "reviewer_role": review.reviewer_role.value,
                "stage": review.stage,
                "decision": review.decision.value,
            },
            correlation_id=correlation_id
        )

    def write_attachment(
        self,
        case_id: str,
        attachment: Attachment,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """Attachment upload or original-seen entry"""
        return self.write_entry(
            case_id=case_id,
            action=AuditAction.ATTACHMENT_RECORDED,
            actor=actor,
            details={
                "attachment_id": attachment.attachment_id,
                "doc_type": attachment.doc_type,
                "is_original_seen": attachment.is_original_seen,
            },
            correlation_id=correlation_id
        )

    def write_accounts_computed(
        self,
        breakdown: AccountsBreakdown,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """Fee computation entry"""
        return self.write_entry(
            case_id=breakdown.case_id,
            action=AuditAction.ACCOUNTS_COMPUTED,
            actor=actor,
            details={
                "breakdown_id": breakdown.breakdown_id,
                "fee_heads": {k: str(v) for k, v in breakdown.fee_heads.items()},
                "total_amount": str(breakdown.total_amount),
            },
            correlation_id=correlation_id
        )

    def write_payment(
        self,
        breakdown: AccountsBreakdown,
        actor: ActorContext,
        reason: str,
        clearance: Optional[Clearance] = None,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """Payment verification entry"""
        details = {
            "breakdown_id": breakdown.breakdown_id,
            "paid_amount": str(breakdown.paid_amount),
            "remaining_amount": str(breakdown.remaining_amount),
            "challan_ref": breakdown.challan_ref,
            "payment_verified": breakdown.payment_verified,
        }
        if clearance is not None:
            details["clearance_id"] = clearance.clearance_id
        return self.write_entry(
            case_id=breakdown.case_id,
            action=AuditAction.PAYMENT_RECORDED,
            actor=actor,
            remarks=reason,
            details=details,
            correlation_id=correlation_id
        )

    def write_deed(
        self,
        action: AuditAction,
        deed: TransferDeed,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> AuditLogEntry:
        """Deed draft / update / finalization entry"""
        details = {
            "deed_id": deed.deed_id,
            "witness1_id": deed.witness1_id,
            "witness2_id": deed.witness2_id,
        }
        if deed.is_finalized:
            details["hash_sha256"] = deed.hash_sha256
            details["finalized_document_ref"] = deed.finalized_document_ref
        return self.write_entry(
            case_id=deed.case_id,
            action=action,
            actor=actor,
            details=details,
            correlation_id=correlation_id
        )
