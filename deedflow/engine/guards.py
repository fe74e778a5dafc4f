"""Workflow Guards - One object per named guard"""
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence, Tuple

from ..domain.models import CaseSnapshot, GuardDecision, Review, SectionGroup
from ..domain.enums import ClearanceStatus, ReviewDecision, ReviewerRole, SectionCode
from .guard_registry import Guard
from .clearance_aggregator import ClearanceAggregator
from .accounts_calculator import describe_shortfall


class IntakeCompleteGuard(Guard):
    """All mandatory documents uploaded and sighted in original"""

    def __init__(self, name: str, required_doc_types: Sequence[str]):
        self.name = name
        self.required_doc_types = tuple(required_doc_types)

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        uploaded = {a.doc_type for a in snapshot.attachments}
        missing = [d for d in self.required_doc_types if d not in uploaded]
        if missing:
            return GuardDecision.deny(
                f"Missing required documents: {', '.join(missing)}",
                missing_docs=missing
            )

        # A document counts as sighted if any upload of that type was sighted
        seen = {a.doc_type for a in snapshot.attachments if a.is_original_seen}
        not_seen = [d for d in self.required_doc_types if d not in seen]
        if not_seen:
            return GuardDecision.deny(
                f"Documents not marked as original seen: {', '.join(not_seen)}",
                not_seen_docs=not_seen
            )

        return GuardDecision.allow(
            "All required documents uploaded and verified",
            uploaded_docs=len(snapshot.attachments)
        )


class SectionObjectionGuard(Guard):
    """The section's latest clearance is an objection"""

    def __init__(self, name: str, section: SectionCode, aggregator: ClearanceAggregator):
        self.name = name
        self.section = section
        self.aggregator = aggregator

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        latest = self.aggregator.latest_by_section(snapshot.clearances).get(self.section)
        if latest is None or latest.status != ClearanceStatus.OBJECTION:
            return GuardDecision.deny(f"{self.section.value} objection not found")
        return GuardDecision.allow(
            f"{self.section.value} objection raised",
            clearance_id=latest.clearance_id,
            remarks=latest.remarks
        )


class SectionResolvedGuard(Guard):
    """The section's latest clearance supersedes its objection"""

    def __init__(self, name: str, section: SectionCode, aggregator: ClearanceAggregator):
        self.name = name
        self.section = section
        self.aggregator = aggregator

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        latest = self.aggregator.latest_by_section(snapshot.clearances).get(self.section)
        if latest is None:
            return GuardDecision.deny(f"No {self.section.value} clearance recorded")
        if latest.status == ClearanceStatus.OBJECTION:
            return GuardDecision.deny(
                f"{self.section.value} objection not resolved",
                clearance_id=latest.clearance_id
            )
        return GuardDecision.allow(
            f"{self.section.value} objection resolved",
            clearance_id=latest.clearance_id,
            status=latest.status.value
        )


class GroupClearGuard(Guard):
    """Every section of the group cleared and none objects"""

    def __init__(self, name: str, group: SectionGroup, aggregator: ClearanceAggregator):
        self.name = name
        self.group = group
        self.aggregator = aggregator

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        verdict = self.aggregator.evaluate_group(snapshot.clearances, self.group)
        metadata = {
            "group": self.group.code,
            "status": verdict.status.value,
        }
        if verdict.status != ClearanceStatus.CLEAR:
            return GuardDecision.deny(verdict.reason, **metadata)
        return GuardDecision.allow(verdict.reason, **metadata)


class ReviewDecisionGuard(Guard):
    """The latest review by a role at a stage carries the expected decision"""

    def __init__(
        self,
        name: str,
        reviewer_role: ReviewerRole,
        stage: str,
        decision: ReviewDecision,
        label: str,
        missing_reason: Optional[str] = None
    ):
        self.name = name
        self.reviewer_role = reviewer_role
        self.stage = stage
        self.decision = decision
        self.label = label
        self.missing_reason = missing_reason or f"{label} not completed"

    def _latest(self, reviews: Iterable[Review]) -> Optional[Review]:
        latest = None
        for review in reviews:
            if review.reviewer_role != self.reviewer_role or review.stage != self.stage:
                continue
            if latest is None or review.sequence > latest.sequence:
                latest = review
        return latest

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        latest = self._latest(snapshot.reviews)
        if latest is None:
            return GuardDecision.deny(self.missing_reason)
        if latest.decision != self.decision:
            return GuardDecision.deny(
                f"{self.label} decision is {latest.decision.value}",
                review_id=latest.review_id
            )
        return GuardDecision.allow(
            f"{self.label} {self.decision.value.lower()}",
            review_id=latest.review_id
        )


class AccountsCalculatedGuard(Guard):
    """A breakdown with a positive total exists"""

    def __init__(self, name: str):
        self.name = name

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        breakdown = snapshot.accounts_breakdown
        if breakdown is None:
            return GuardDecision.deny("Accounts breakdown not calculated")
        if breakdown.total_amount <= Decimal("0"):
            return GuardDecision.deny("Invalid total amount in accounts breakdown")
        return GuardDecision.allow(
            "Accounts breakdown calculated",
            breakdown_id=breakdown.breakdown_id,
            total_amount=str(breakdown.total_amount)
        )


class PaymentVerifiedGuard(Guard):
    """The recorded payment covers the computed total"""

    def __init__(self, name: str):
        self.name = name

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        breakdown = snapshot.accounts_breakdown
        if breakdown is None:
            return GuardDecision.deny("Accounts breakdown not found")
        if breakdown.paid_amount is None:
            return GuardDecision.deny("Payment not recorded")
        if breakdown.paid_amount < breakdown.total_amount:
            return GuardDecision.deny(
                describe_shortfall(breakdown.total_amount, breakdown.paid_amount),
                shortfall=str(breakdown.total_amount - breakdown.paid_amount)
            )
        return GuardDecision.allow(
            "Payment verified",
            paid_amount=str(breakdown.paid_amount),
            total_amount=str(breakdown.total_amount),
            challan_ref=breakdown.challan_ref
        )


class DeedFinalizedGuard(Guard):
    """The transfer deed is finalized and hashed"""

    def __init__(self, name: str):
        self.name = name

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        deed = snapshot.deed
        if deed is None:
            return GuardDecision.deny("Transfer deed not created")
        if not deed.is_finalized:
            return GuardDecision.deny("Transfer deed not finalized")
        if not deed.hash_sha256:
            return GuardDecision.deny("Transfer deed hash not generated")
        return GuardDecision.allow(
            "Transfer deed finalized",
            deed_id=deed.deed_id,
            hash_sha256=deed.hash_sha256
        )


class AllOfGuard(Guard):
    """Passes when every member passes; reports the first failure"""

    def __init__(self, name: str, guards: Sequence[Guard]):
        self.name = name
        self.guards: Tuple[Guard, ...] = tuple(guards)

    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        reasons = []
        for guard in self.guards:
            decision = guard.evaluate(snapshot)
            if not decision.allowed:
                return GuardDecision.deny(decision.reason, failed_guard=guard.name)
            reasons.append(decision.reason)
        return GuardDecision.allow("; ".join(reasons), checked=[g.name for g in self.guards])


def build_section_guards(
    aggregator: ClearanceAggregator,
    objection_names: Dict[SectionCode, str],
    resolved_names: Dict[SectionCode, str]
) -> Tuple[Guard, ...]:
    """Objection / resolution guard pair for each section"""
    guards = []
    for section, name in objection_names.items():
        guards.append(SectionObjectionGuard(name, section, aggregator))
    for section, name in resolved_names.items():
        guards.append(SectionResolvedGuard(name, section, aggregator))
    return tuple(guards)
