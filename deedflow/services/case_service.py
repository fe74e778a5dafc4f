"""Case Service - Operations on property-transfer cases"""
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Optional, Type, TypeVar, Union

from ..domain.models import (
    ActorContext, Attachment, AuditLogEntry, Case, CaseSnapshot, Clearance, ClearanceResult,
    FeeComputation, PaymentVerification, Review, TransferDeed, TransitionOption, TransitionResult
)
from ..domain.enums import AuditAction, ClearanceStatus, ReviewDecision, ReviewerRole, SectionCode
from ..domain.errors import (
    AccountsBreakdownNotFoundError, AttachmentNotFoundError, CaseClosedError,
    ConcurrentModificationError, StageNotAllowedError, ValidationError
)
from ..engine import (
    AccountsCalculator, AuditWriter, DeedFinalizer, GroupVerdict, TransitionExecutor,
    WorkflowConfig, build_workflow_config
)
from ..engine.stage_graph import StageKey
from ..repositories import CaseStore, InMemoryCaseStore, MongoCaseRepository
from ..config.settings import settings
from ..utils.idgen import generate_attachment_id, generate_case_id, generate_clearance_id, generate_review_id
from ..utils.logger import get_context_logger, get_logger
from ..utils.time import parse_iso, utc_now

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)
T = TypeVar("T")

PAYMENT_CLEARANCE_REMARKS = "Payment verified - Accounts cleared"


class DocumentIssuer(ABC):
    """Produces the signed document for a finalized deed"""

    @abstractmethod
    def issue(self, deed: TransferDeed) -> str:
        """Return the storage reference of the signed document"""


def get_case_store() -> CaseStore:
    """Case store selected by settings.store_backend"""
    if settings.uses_mongo:
        return MongoCaseRepository()
    return InMemoryCaseStore()


class CaseService:
    """
    Service for case operations

    Stage changes go through the TransitionExecutor and are never retried.
    Data writes (attachments, reviews, clearances, accounts, deed) reload the
    case and retry on a concurrent modification up to commit_max_retries times.
    """

    def __init__(
        self,
        config: Optional[WorkflowConfig] = None,
        store: Optional[CaseStore] = None,
        document_issuer: Optional[DocumentIssuer] = None,
        max_retries: Optional[int] = None,
        auto_progress: Optional[bool] = None
    ):
        self.config = config or build_workflow_config()
        self.store = store or get_case_store()
        self.document_issuer = document_issuer
        self.max_retries = max(1, max_retries if max_retries is not None else settings.commit_max_retries)
        self.auto_progress = settings.auto_progress if auto_progress is None else auto_progress

        self.audit_writer = AuditWriter()
        self.executor = TransitionExecutor(self.config, self.store, self.audit_writer)
        self.calculator = AccountsCalculator()
        self.finalizer = DeedFinalizer()

    # =========================================================================
    # Cases
    # =========================================================================

    def create_case(
        self,
        seller_id: str,
        buyer_id: str,
        plot_id: str,
        actor: ActorContext,
        attachments: Iterable[Mapping[str, Any]] = (),
        correlation_id: Optional[str] = None
    ) -> Case:
        """
        Open a new case at the initial stage

        Args:
            attachments: Optional initial attachments, each a mapping with
                doc_type, document_ref and is_original_seen
        """
        for field, value in (("seller_id", seller_id), ("buyer_id", buyer_id), ("plot_id", plot_id)):
            if not value or not str(value).strip():
                raise ValidationError(f"{field} is required", details={"field": field})

        now = utc_now()
        case_id = generate_case_id()
        initial = [
            self._new_attachment(
                doc_type=item.get("doc_type"),
                document_ref=item.get("document_ref"),
                is_original_seen=bool(item.get("is_original_seen", False)),
                actor=actor,
                now=now
            )
            for item in attachments
        ]

        case = Case(
            case_id=case_id,
            current_stage=self.config.initial_stage,
            seller_id=seller_id,
            buyer_id=buyer_id,
            plot_id=plot_id,
            attachments=initial,
            audit_log=[
                self.audit_writer.write_case_created(
                    case_id, actor, self.config.initial_stage, plot_id, correlation_id
                )
            ],
            created_at=now,
            updated_at=now,
        )
        self.store.create_case(case)

        logger.info(
            f"Case {case_id} opened for plot {plot_id}",
            extra={"case_id": case_id, "actor_id": actor.user_id, "action": AuditAction.CASE_CREATED.value}
        )
        return case

    def get_case(self, case_id: str) -> Case:
        return self.store.get_case(case_id)

    def get_snapshot(self, case_id: str) -> CaseSnapshot:
        return self.store.load_snapshot(case_id)

    def get_audit_log(
        self,
        case_id: str,
        since: Optional[Union[str, datetime]] = None,
        action: Optional[Union[str, AuditAction]] = None
    ) -> List[AuditLogEntry]:
        """Audit entries of a case, oldest first, optionally filtered"""
        entries = self.store.get_audit_log(case_id)
        if since is not None:
            cutoff = parse_iso(since) if isinstance(since, str) else since
            entries = [e for e in entries if e.timestamp >= cutoff]
        if action is not None:
            wanted = self._coerce(AuditAction, action, "action")
            entries = [e for e in entries if e.action == wanted]
        return entries

    # =========================================================================
    # Transitions
    # =========================================================================

    def list_transitions(
        self,
        from_stage: StageKey,
        case_id: Optional[str] = None,
        dry_run: bool = True
    ) -> List[TransitionOption]:
        return self.executor.list_transitions(from_stage, case_id=case_id, dry_run=dry_run)

    def available_transitions(self, case_id: str) -> List[TransitionOption]:
        return self.executor.available_transitions(case_id)

    def request_transition(
        self,
        case_id: str,
        to_stage: StageKey,
        actor: ActorContext,
        remarks: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> TransitionResult:
        return self.executor.request_transition(
            case_id, to_stage, actor, remarks=remarks, correlation_id=correlation_id
        )

    # =========================================================================
    # Attachments
    # =========================================================================

    def record_attachment(
        self,
        case_id: str,
        doc_type: str,
        document_ref: Optional[str],
        actor: ActorContext,
        is_original_seen: bool = False,
        correlation_id: Optional[str] = None
    ) -> Attachment:
        """Add attachment metadata to a case"""

        def write(snapshot: CaseSnapshot) -> Attachment:
            attachment = self._new_attachment(doc_type, document_ref, is_original_seen, actor, utc_now())
            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_attachment(case_id, attachment, actor, correlation_id),
                attachments=list(snapshot.attachments) + [attachment]
            )
            return attachment

        return self._write(case_id, "record attachment", write)

    def mark_original_seen(
        self,
        case_id: str,
        doc_type: str,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> Attachment:
        """Mark the latest upload of doc_type as sighted in original"""

        def write(snapshot: CaseSnapshot) -> Attachment:
            matches = [a for a in snapshot.attachments if a.doc_type == doc_type]
            if not matches:
                raise AttachmentNotFoundError(
                    f"No {doc_type} attachment on case {case_id}",
                    details={"case_id": case_id, "doc_type": doc_type}
                )
            target = matches[-1]
            seen = target.model_copy(update={"is_original_seen": True})
            attachments = [seen if a.attachment_id == target.attachment_id else a for a in snapshot.attachments]
            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_attachment(case_id, seen, actor, correlation_id),
                attachments=attachments
            )
            return seen

        return self._write(case_id, "mark original seen", write)

    # =========================================================================
    # Reviews and Clearances
    # =========================================================================

    def record_review(
        self,
        case_id: str,
        reviewer_role: Union[str, ReviewerRole],
        decision: Union[str, ReviewDecision],
        actor: ActorContext,
        remarks: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> Review:
        """Record an OWO or approver decision at the case's current stage"""
        role = self._coerce(ReviewerRole, reviewer_role, "reviewer_role")
        outcome = self._coerce(ReviewDecision, decision, "decision")

        def write(snapshot: CaseSnapshot) -> Review:
            review = Review(
                review_id=generate_review_id(),
                case_id=case_id,
                reviewer_role=role,
                stage=snapshot.current_stage,
                decision=outcome,
                remarks=remarks,
                sequence=max((r.sequence for r in snapshot.reviews), default=0) + 1,
                reviewed_by=actor.user_id,
                created_at=utc_now(),
            )
            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_review(review, actor, correlation_id),
                review=review
            )
            return review

        return self._write(case_id, "record review", write)

    def record_clearance(
        self,
        case_id: str,
        section: Union[str, SectionCode],
        status: Union[str, ClearanceStatus],
        actor: ActorContext,
        remarks: Optional[str] = None,
        signed_document_ref: Optional[str] = None,
        auto_progress: Optional[bool] = None,
        correlation_id: Optional[str] = None
    ) -> ClearanceResult:
        """
        Append a section clearance

        With auto_progress (or settings.auto_progress) the case then takes the
        first automatic edge out of its current stage whose guard allows it.
        """
        section_code = self._coerce(SectionCode, section, "section")
        clearance_status = self._coerce(ClearanceStatus, status, "status")

        def write(snapshot: CaseSnapshot) -> Clearance:
            clearance = self._new_clearance(
                snapshot, section_code, clearance_status, actor, remarks, signed_document_ref
            )
            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_clearance(clearance, actor, correlation_id),
                clearance=clearance
            )
            return clearance

        clearance = self._write(case_id, "record clearance", write)
        logger.info(
            f"{section_code.value} clearance recorded: {clearance_status.value}",
            extra={"case_id": case_id, "section": section_code.value, "actor_id": actor.user_id}
        )

        transition = self._auto_advance(case_id, "clearance", actor, auto_progress, correlation_id)
        return ClearanceResult(clearance=clearance, auto_transition=transition)

    def group_status(self, case_id: str, group_code: str) -> GroupVerdict:
        """Aggregated clearance verdict of a section group"""
        group = self.config.get_group(group_code)
        snapshot = self.store.load_snapshot(case_id)
        return self.config.aggregator.evaluate_group(snapshot.clearances, group)

    def clearance_history(self, case_id: str, section: Union[str, SectionCode]) -> List[Clearance]:
        """All clearances of a section, oldest first"""
        section_code = self._coerce(SectionCode, section, "section")
        snapshot = self.store.load_snapshot(case_id)
        return self.config.aggregator.history(snapshot.clearances, section_code)

    # =========================================================================
    # Accounts
    # =========================================================================

    def compute_accounts(
        self,
        case_id: str,
        fee_heads: Mapping[str, Any],
        actor: ActorContext,
        challan_ref: Optional[str] = None,
        auto_progress: Optional[bool] = None,
        correlation_id: Optional[str] = None
    ) -> FeeComputation:
        """
        Compute and store the fee breakdown

        Only allowed while the case is with Accounts. With auto_progress the
        case then moves on to AWAITING_PAYMENT.

        Raises:
            StageNotAllowedError: The case is not at an accounts stage
            InvalidFeeHeadError: A fee head is negative, not numeric or has
                fractions of a cent; nothing is stored
        """

        def write(snapshot: CaseSnapshot) -> FeeComputation:
            if snapshot.current_stage not in self.config.accounts_stages:
                raise StageNotAllowedError(
                    f"Accounts cannot be computed while the case is at {snapshot.current_stage}",
                    details={
                        "case_id": case_id,
                        "stage": snapshot.current_stage,
                        "allowed_stages": sorted(self.config.accounts_stages),
                    }
                )
            existing = snapshot.accounts_breakdown
            computation = self.calculator.compute(
                fee_heads, breakdown_id=existing.breakdown_id if existing else None
            )
            breakdown = self.calculator.build_breakdown(
                case_id, computation, utc_now(), existing=existing, challan_ref=challan_ref
            )
            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_accounts_computed(breakdown, actor, correlation_id),
                accounts_breakdown=breakdown
            )
            return computation

        computation = self._write(case_id, "compute accounts", write)
        logger.info(
            f"Accounts computed: total {computation.total}",
            extra={"case_id": case_id, "actor_id": actor.user_id}
        )
        transition = self._auto_advance(case_id, "accounts computation", actor, auto_progress, correlation_id)
        return computation.model_copy(update={"auto_transition": transition})

    def verify_payment(
        self,
        case_id: str,
        paid_amount: Any,
        actor: ActorContext,
        challan_ref: Optional[str] = None,
        auto_progress: Optional[bool] = None,
        correlation_id: Optional[str] = None
    ) -> PaymentVerification:
        """
        Record a payment against the computed total

        A sufficient payment also appends an ACCOUNTS CLEAR clearance in the
        same write, and with auto_progress the case then moves on from
        AWAITING_PAYMENT. A shortfall is recorded and reported in the reason;
        the case stays where it is.
        """

        def write(snapshot: CaseSnapshot) -> PaymentVerification:
            breakdown = snapshot.accounts_breakdown
            if breakdown is None:
                raise AccountsBreakdownNotFoundError(
                    "Accounts breakdown not found",
                    details={"case_id": case_id}
                )
            verification = self.calculator.verify_payment(breakdown, paid_amount, challan_ref)
            updated = self.calculator.apply_payment(breakdown, verification, utc_now())

            clearance = None
            if verification.sufficient:
                clearance = self._new_clearance(
                    snapshot, SectionCode.ACCOUNTS, ClearanceStatus.CLEAR, actor,
                    PAYMENT_CLEARANCE_REMARKS, None
                )

            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_payment(
                    updated, actor, verification.reason, clearance, correlation_id
                ),
                accounts_breakdown=updated,
                clearance=clearance
            )
            return verification

        verification = self._write(case_id, "verify payment", write)
        transition = self._auto_advance(case_id, "payment", actor, auto_progress, correlation_id)
        return verification.model_copy(update={"auto_transition": transition})

    # =========================================================================
    # Transfer Deed
    # =========================================================================

    def create_deed_draft(
        self,
        case_id: str,
        witness1_id: str,
        witness2_id: str,
        actor: ActorContext,
        content: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> TransferDeed:
        def write(snapshot: CaseSnapshot) -> TransferDeed:
            deed = self.finalizer.create_draft(
                case_id, witness1_id, witness2_id, utc_now(), content=content, existing=snapshot.deed
            )
            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_deed(AuditAction.DEED_DRAFTED, deed, actor, correlation_id),
                deed=deed
            )
            return deed

        return self._write(case_id, "create deed draft", write)

    def update_deed_draft(
        self,
        case_id: str,
        actor: ActorContext,
        witness1_id: Optional[str] = None,
        witness2_id: Optional[str] = None,
        content: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> TransferDeed:
        def write(snapshot: CaseSnapshot) -> TransferDeed:
            deed = self.finalizer.update_draft(
                snapshot.deed, utc_now(),
                witness1_id=witness1_id, witness2_id=witness2_id, content=content
            )
            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_deed(AuditAction.DEED_UPDATED, deed, actor, correlation_id),
                deed=deed
            )
            return deed

        return self._write(case_id, "update deed draft", write)

    def finalize_deed(
        self,
        case_id: str,
        witness1_signature: str,
        witness2_signature: str,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> TransferDeed:
        """
        Sign and finalize the case's deed

        Raises:
            DeedNotFoundError: No draft exists
            WitnessValidationError: Witnesses are not distinct or a signature is missing
            DeedAlreadyFinalizedError: Finalized before
        """
        now = utc_now()
        # Document refs by unsigned deed hash; a retry of the same deed reuses its document
        issued = {}

        def write(snapshot: CaseSnapshot) -> TransferDeed:
            deed = self.finalizer.finalize(snapshot.deed, witness1_signature, witness2_signature, now)
            if self.document_issuer is not None:
                if deed.hash_sha256 not in issued:
                    issued[deed.hash_sha256] = self.document_issuer.issue(deed)
                deed = self.finalizer.attach_document(deed, issued[deed.hash_sha256])
            self.store.apply(
                case_id,
                snapshot.version,
                self.audit_writer.write_deed(AuditAction.DEED_FINALIZED, deed, actor, correlation_id),
                deed=deed
            )
            return deed

        return self._write(case_id, "finalize deed", write)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _write(self, case_id: str, label: str, write: Callable[[CaseSnapshot], T]) -> T:
        """Run a data write against a fresh snapshot, retrying on version conflicts"""
        case_logger = get_context_logger(__name__, case_id=case_id)
        for attempt in range(self.max_retries):
            snapshot = self.store.load_snapshot(case_id)
            self._ensure_open(snapshot)
            try:
                return write(snapshot)
            except ConcurrentModificationError:
                if attempt == self.max_retries - 1:
                    case_logger.error(
                        f"Failed to {label} after {self.max_retries} attempts",
                        extra={"version": snapshot.version}
                    )
                    raise
                case_logger.warning(
                    f"Concurrency conflict on {label}, retrying (attempt {attempt + 1})",
                    extra={"version": snapshot.version}
                )

    def _auto_advance(
        self,
        case_id: str,
        trigger: str,
        actor: ActorContext,
        auto_progress: Optional[bool],
        correlation_id: Optional[str]
    ) -> Optional[TransitionResult]:
        """Take the first allowed automatic edge after a data write, if enabled"""
        should_advance = self.auto_progress if auto_progress is None else auto_progress
        if not should_advance:
            return None
        try:
            return self.executor.advance(case_id, actor, correlation_id)
        except ConcurrentModificationError:
            # The write is stored; another writer moved the case meanwhile
            get_context_logger(__name__, case_id=case_id, actor_id=actor.user_id).warning(
                f"Automatic transition lost a race after {trigger}"
            )
            return None

    def _ensure_open(self, snapshot: CaseSnapshot) -> None:
        if self.config.graph.is_terminal(snapshot.current_stage):
            raise CaseClosedError(
                f"Case {snapshot.case_id} is {snapshot.current_stage} and cannot change",
                details={"case_id": snapshot.case_id, "stage": snapshot.current_stage}
            )

    def _new_attachment(
        self,
        doc_type: Optional[str],
        document_ref: Optional[str],
        is_original_seen: bool,
        actor: ActorContext,
        now: datetime
    ) -> Attachment:
        if not doc_type or not doc_type.strip():
            raise ValidationError("doc_type is required", details={"field": "doc_type"})
        return Attachment(
            attachment_id=generate_attachment_id(),
            doc_type=doc_type.strip(),
            document_ref=document_ref,
            is_original_seen=is_original_seen,
            uploaded_by=actor.user_id,
            uploaded_at=now,
        )

    @staticmethod
    def _new_clearance(
        snapshot: CaseSnapshot,
        section: SectionCode,
        status: ClearanceStatus,
        actor: ActorContext,
        remarks: Optional[str],
        signed_document_ref: Optional[str]
    ) -> Clearance:
        return Clearance(
            clearance_id=generate_clearance_id(),
            case_id=snapshot.case_id,
            section=section,
            status=status,
            remarks=remarks,
            signed_document_ref=signed_document_ref,
            sequence=max((c.sequence for c in snapshot.clearances), default=0) + 1,
            recorded_by=actor.user_id,
            created_at=utc_now(),
        )

    @staticmethod
    def _coerce(enum_cls: Type[E], value: Union[str, E], field: str) -> E:
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(m.value for m in enum_cls)
            raise ValidationError(
                f"Invalid {field}: {value!r} (expected one of {allowed})",
                details={"field": field, "value": str(value)}
            ) from None
