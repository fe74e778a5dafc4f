"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field, ConfigDict

from .enums import (
    SectionCode, ClearanceStatus, ReviewerRole, ReviewDecision, AuditAction
)


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Caller identity supplied by the authentication layer"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str = Field(..., description="Authenticated user ID")
    display_name: Optional[str] = Field(None, description="User display name")
    role: Optional[str] = Field(None, description="Role at the time of the action (OWO, BCA, APPROVER, ...)")


# ============================================================================
# Workflow Definition (static, built once at bootstrap)
# ============================================================================

class Stage(BaseModel):
    """A named state in the case lifecycle"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str = Field(..., description="Unique stage code")
    name: str = Field(..., description="Display name")
    sort_order: int = Field(..., description="Display order")
    is_terminal: bool = Field(default=False, description="No outgoing transitions allowed")


class Transition(BaseModel):
    """A permitted directed edge between two stages, gated by a guard"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    from_stage: str = Field(..., description="Source stage code")
    to_stage: str = Field(..., description="Target stage code")
    guard_name: str = Field(..., description="Guard evaluated before the edge fires")
    sort_order: int = Field(default=0, description="Order among the source stage's edges")
    auto_progress: bool = Field(default=False, description="Eligible for automatic advance")


class SectionGroup(BaseModel):
    """Sections that must jointly clear before a group guard passes"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    name: str
    sections: Tuple[SectionCode, ...] = Field(..., min_length=1)


# ============================================================================
# Case Records
# ============================================================================

class Attachment(BaseModel):
    """Attachment metadata; file bytes live in external storage"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    attachment_id: str
    doc_type: str = Field(..., description="Document type, e.g. CNIC_Seller")
    document_ref: Optional[str] = Field(None, description="Storage reference of the uploaded file")
    is_original_seen: bool = Field(default=False, description="Original document sighted at the counter")
    uploaded_by: Optional[str] = None
    uploaded_at: datetime


class Clearance(BaseModel):
    """A section's recorded decision; newer records supersede older ones"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    clearance_id: str
    case_id: str
    section: SectionCode
    status: ClearanceStatus
    remarks: Optional[str] = None
    signed_document_ref: Optional[str] = Field(None, description="Reference of the signed clearance PDF")
    sequence: int = Field(..., description="Per-case append order")
    recorded_by: Optional[str] = None
    created_at: datetime


class Review(BaseModel):
    """OWO or approver decision taken at a stage"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    review_id: str
    case_id: str
    reviewer_role: ReviewerRole
    stage: str = Field(..., description="Stage the case was at when reviewed")
    decision: ReviewDecision
    remarks: Optional[str] = None
    sequence: int
    reviewed_by: Optional[str] = None
    created_at: datetime


class AccountsBreakdown(BaseModel):
    """Fee heads, total and payment state of a case"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    breakdown_id: str
    case_id: str
    fee_heads: Dict[str, Decimal] = Field(default_factory=dict)
    total_amount: Decimal
    paid_amount: Optional[Decimal] = Field(None, description="None until a payment is recorded")
    remaining_amount: Decimal
    challan_ref: Optional[str] = None
    payment_verified: bool = False
    verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TransferDeed(BaseModel):
    """Transfer deed draft; finalization is terminal"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    deed_id: str
    case_id: str
    witness1_id: str
    witness2_id: str
    content: Optional[str] = None
    witness1_signature: Optional[str] = None
    witness2_signature: Optional[str] = None
    is_finalized: bool = False
    finalized_document_ref: Optional[str] = None
    hash_sha256: Optional[str] = None
    finalized_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AuditLogEntry(BaseModel):
    """Audit log entry (append-only)"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    audit_entry_id: str
    case_id: str
    action: AuditAction
    from_stage: Optional[str] = None
    to_stage: Optional[str] = None
    acting_user: str
    actor_role: Optional[str] = None
    timestamp: datetime
    remarks: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    correlation_id: Optional[str] = None


class CaseSnapshot(BaseModel):
    """Immutable view of a case handed to guards"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    case_id: str
    current_stage: str
    version: int
    seller_id: Optional[str] = None
    buyer_id: Optional[str] = None
    plot_id: Optional[str] = None
    attachments: Tuple[Attachment, ...] = ()
    clearances: Tuple[Clearance, ...] = ()
    reviews: Tuple[Review, ...] = ()
    accounts_breakdown: Optional[AccountsBreakdown] = None
    deed: Optional[TransferDeed] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Case(BaseModel):
    """Property-transfer application aggregate as held by the store"""
    model_config = ConfigDict(extra="forbid")

    case_id: str
    current_stage: str
    version: int = Field(default=1, description="Optimistic concurrency counter")
    seller_id: Optional[str] = None
    buyer_id: Optional[str] = None
    plot_id: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    clearances: List[Clearance] = Field(default_factory=list)
    reviews: List[Review] = Field(default_factory=list)
    accounts_breakdown: Optional[AccountsBreakdown] = None
    deed: Optional[TransferDeed] = None
    audit_log: List[AuditLogEntry] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    def to_snapshot(self) -> CaseSnapshot:
        """Freeze the guard-relevant state of this case"""
        return CaseSnapshot(
            case_id=self.case_id,
            current_stage=self.current_stage,
            version=self.version,
            seller_id=self.seller_id,
            buyer_id=self.buyer_id,
            plot_id=self.plot_id,
            attachments=tuple(self.attachments),
            clearances=tuple(self.clearances),
            reviews=tuple(self.reviews),
            accounts_breakdown=self.accounts_breakdown,
            deed=self.deed,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


# ============================================================================
# Engine Results
# ============================================================================

class GuardDecision(BaseModel):
    """Outcome of a guard evaluation"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    allowed: bool
    reason: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def allow(cls, reason: str, **metadata: Any) -> "GuardDecision":
        return cls(allowed=True, reason=reason, metadata=metadata)

    @classmethod
    def deny(cls, reason: str, **metadata: Any) -> "GuardDecision":
        return cls(allowed=False, reason=reason, metadata=metadata)


class TransitionOption(BaseModel):
    """An outgoing edge, optionally evaluated in dry-run mode against a case"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    from_stage: str
    to_stage: str
    to_stage_name: str
    guard_name: str
    allowed: Optional[bool] = Field(None, description="None when no case was evaluated")
    reason: Optional[str] = None


class TransitionResult(BaseModel):
    """A committed transition"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    case_id: str
    from_stage: str
    new_stage: str
    version: int
    audit_entry: AuditLogEntry

    @property
    def audit_entry_id(self) -> str:
        return self.audit_entry.audit_entry_id


class FeeComputation(BaseModel):
    """Validated fee heads and their total"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    breakdown_id: str
    fee_heads: Dict[str, Decimal]
    total: Decimal
    auto_transition: Optional[TransitionResult] = None


class PaymentVerification(BaseModel):
    """Comparison of a payment against the computed total"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    total_amount: Decimal
    paid_amount: Decimal
    shortfall: Decimal
    sufficient: bool
    challan_ref: Optional[str] = None
    reason: str
    auto_transition: Optional[TransitionResult] = None


class ClearanceResult(BaseModel):
    """Recorded clearance plus the automatic transition it triggered, if any"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    clearance: Clearance
    auto_transition: Optional[TransitionResult] = None

    @property
    def clearance_id(self) -> str:
        return self.clearance.clearance_id
