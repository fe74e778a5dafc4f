"""Workflow Definitions - Stages, transitions, section groups and guards of the transfer process"""
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from ..domain.models import Stage, Transition, SectionGroup
from ..domain.enums import (
    StageCode, SectionCode, SectionGroupCode, GuardName, ReviewerRole, ReviewDecision
)
from ..domain.errors import (
    ConfigurationError, UnknownStageError, UnknownGuardError, UnknownSectionGroupError
)
from .stage_graph import StageGraph
from .guard_registry import Guard, GuardRegistry
from .clearance_aggregator import ClearanceAggregator
from .guards import (
    IntakeCompleteGuard, ReviewDecisionGuard, GroupClearGuard, AccountsCalculatedGuard,
    PaymentVerifiedGuard, DeedFinalizedGuard, AllOfGuard, build_section_guards
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

S = StageCode
G = GuardName

INITIAL_STAGE = S.SUBMITTED.value

REQUIRED_INTAKE_DOCUMENTS: Tuple[str, ...] = (
    "AllotmentLetter",
    "PrevTransferDeed",
    "CNIC_Seller",
    "CNIC_Buyer",
    "UtilityBill_Latest",
    "Photo_Seller",
    "Photo_Buyer",
)

# Stages at which the fee breakdown may be computed or recomputed
ACCOUNTS_STAGES: Tuple[str, ...] = (
    S.SENT_TO_ACCOUNTS.value,
    S.AWAITING_PAYMENT.value,
    S.ON_HOLD_ACCOUNTS.value,
)

STAGES: Tuple[Stage, ...] = tuple(
    Stage(code=code.value, name=name, sort_order=order, is_terminal=terminal)
    for order, (code, name, terminal) in enumerate([
        (S.SUBMITTED, "Submitted", False),
        (S.UNDER_SCRUTINY, "Under Scrutiny", False),
        (S.SENT_TO_BCA_HOUSING, "Sent to BCA & Housing", False),
        (S.BCA_PENDING, "BCA Pending", False),
        (S.HOUSING_PENDING, "Housing Pending", False),
        (S.ON_HOLD_BCA, "On Hold - BCA", False),
        (S.ON_HOLD_HOUSING, "On Hold - Housing", False),
        (S.BCA_HOUSING_CLEAR, "BCA & Housing Clear", False),
        (S.OWO_REVIEW_BCA_HOUSING, "OWO Review - BCA & Housing", False),
        (S.SENT_TO_WATER, "Sent to Water", False),
        (S.ON_HOLD_WATER, "On Hold - Water", False),
        (S.WATER_CLEAR, "Water Clear", False),
        (S.SENT_TO_ACCOUNTS, "Sent to Accounts", False),
        (S.AWAITING_PAYMENT, "Awaiting Payment", False),
        (S.ON_HOLD_ACCOUNTS, "On Hold - Accounts", False),
        (S.ACCOUNTS_CLEAR, "Accounts Clear", False),
        (S.OWO_REVIEW_ACCOUNTS, "OWO Review - Accounts", False),
        (S.READY_FOR_APPROVAL, "Ready for Approval", False),
        (S.APPROVED, "Approved", False),
        (S.REJECTED, "Rejected", True),
        (S.POST_ENTRIES, "Post Entries", False),
        (S.CLOSED, "Closed", True),
    ], start=1)
)


def _edge(from_stage: StageCode, to_stage: StageCode, guard: GuardName,
          order: int = 0, auto: bool = False) -> Transition:
    return Transition(
        from_stage=from_stage.value,
        to_stage=to_stage.value,
        guard_name=guard.value,
        sort_order=order,
        auto_progress=auto,
    )


TRANSITIONS: Tuple[Transition, ...] = (
    _edge(S.SUBMITTED, S.UNDER_SCRUTINY, G.INTAKE_COMPLETE),
    _edge(S.UNDER_SCRUTINY, S.SENT_TO_BCA_HOUSING, G.SCRUTINY_COMPLETE),

    # BCA / Housing
    _edge(S.SENT_TO_BCA_HOUSING, S.BCA_HOUSING_CLEAR, G.CLEARANCES_COMPLETE, 1, auto=True),
    _edge(S.SENT_TO_BCA_HOUSING, S.ON_HOLD_BCA, G.BCA_OBJECTION, 2, auto=True),
    _edge(S.SENT_TO_BCA_HOUSING, S.ON_HOLD_HOUSING, G.HOUSING_OBJECTION, 3, auto=True),
    _edge(S.ON_HOLD_BCA, S.BCA_PENDING, G.BCA_RESOLVED),
    _edge(S.ON_HOLD_HOUSING, S.HOUSING_PENDING, G.HOUSING_RESOLVED),
    _edge(S.BCA_PENDING, S.BCA_HOUSING_CLEAR, G.CLEARANCES_COMPLETE, 1, auto=True),
    _edge(S.BCA_PENDING, S.ON_HOLD_BCA, G.BCA_OBJECTION, 2, auto=True),
    _edge(S.BCA_PENDING, S.ON_HOLD_HOUSING, G.HOUSING_OBJECTION, 3, auto=True),
    _edge(S.HOUSING_PENDING, S.BCA_HOUSING_CLEAR, G.CLEARANCES_COMPLETE, 1, auto=True),
    _edge(S.HOUSING_PENDING, S.ON_HOLD_HOUSING, G.HOUSING_OBJECTION, 2, auto=True),
    _edge(S.HOUSING_PENDING, S.ON_HOLD_BCA, G.BCA_OBJECTION, 3, auto=True),
    _edge(S.BCA_HOUSING_CLEAR, S.OWO_REVIEW_BCA_HOUSING, G.CLEARANCES_COMPLETE),

    # OWO review picks the next department
    _edge(S.OWO_REVIEW_BCA_HOUSING, S.SENT_TO_ACCOUNTS, G.OWO_REVIEW_COMPLETE, 1),
    _edge(S.OWO_REVIEW_BCA_HOUSING, S.SENT_TO_WATER, G.OWO_REVIEW_COMPLETE, 2),

    # Water
    _edge(S.SENT_TO_WATER, S.WATER_CLEAR, G.WATER_CLEAR, 1, auto=True),
    _edge(S.SENT_TO_WATER, S.ON_HOLD_WATER, G.WATER_OBJECTION, 2, auto=True),
    _edge(S.ON_HOLD_WATER, S.SENT_TO_WATER, G.WATER_RESOLVED),
    _edge(S.WATER_CLEAR, S.SENT_TO_ACCOUNTS, G.WATER_CLEAR),

    # Accounts
    _edge(S.SENT_TO_ACCOUNTS, S.AWAITING_PAYMENT, G.ACCOUNTS_CALCULATED, 1, auto=True),
    _edge(S.SENT_TO_ACCOUNTS, S.ON_HOLD_ACCOUNTS, G.ACCOUNTS_OBJECTION, 2, auto=True),
    _edge(S.AWAITING_PAYMENT, S.ACCOUNTS_CLEAR, G.PAYMENT_VERIFIED, 1, auto=True),
    _edge(S.AWAITING_PAYMENT, S.ON_HOLD_ACCOUNTS, G.ACCOUNTS_OBJECTION, 2, auto=True),
    _edge(S.ON_HOLD_ACCOUNTS, S.SENT_TO_ACCOUNTS, G.ACCOUNTS_RESOLVED),
    _edge(S.ACCOUNTS_CLEAR, S.OWO_REVIEW_ACCOUNTS, G.ACCOUNTS_CLEAR),

    # Approval, deed and closure
    _edge(S.OWO_REVIEW_ACCOUNTS, S.READY_FOR_APPROVAL, G.OWO_ACCOUNTS_REVIEW_COMPLETE),
    _edge(S.READY_FOR_APPROVAL, S.APPROVED, G.APPROVAL_COMPLETE, 1),
    _edge(S.READY_FOR_APPROVAL, S.REJECTED, G.APPROVAL_REJECTED, 2),
    _edge(S.APPROVED, S.POST_ENTRIES, G.DEED_FINALIZED),
    _edge(S.POST_ENTRIES, S.CLOSED, G.CLOSE_CASE),
)

SECTION_GROUPS: Tuple[SectionGroup, ...] = (
    SectionGroup(
        code=SectionGroupCode.BCA_HOUSING.value,
        name="BCA & Housing",
        sections=(SectionCode.BCA, SectionCode.HOUSING),
    ),
    SectionGroup(code=SectionGroupCode.WATER.value, name="Water", sections=(SectionCode.WATER,)),
    SectionGroup(code=SectionGroupCode.ACCOUNTS.value, name="Accounts", sections=(SectionCode.ACCOUNTS,)),
)


class WorkflowConfig:
    """
    Immutable workflow definition shared by the engine

    Built once at startup by build_workflow_config() and injected into the
    executor and the case service.
    """

    def __init__(
        self,
        graph: StageGraph,
        registry: GuardRegistry,
        section_groups: Iterable[SectionGroup],
        aggregator: ClearanceAggregator,
        required_documents: Sequence[str],
        initial_stage: str,
        accounts_stages: Iterable[str] = ()
    ):
        self.graph = graph
        self.registry = registry
        self.section_groups: Mapping[str, SectionGroup] = MappingProxyType(
            {group.code: group for group in section_groups}
        )
        self.aggregator = aggregator
        self.required_documents = tuple(required_documents)
        self.initial_stage = initial_stage
        self.accounts_stages = frozenset(accounts_stages)

    def get_group(self, group_code) -> SectionGroup:
        """Get a section group or raise UnknownSectionGroupError"""
        code = getattr(group_code, "value", group_code)
        try:
            return self.section_groups[code]
        except KeyError:
            raise UnknownSectionGroupError(
                f"Section group {code} is not configured",
                details={"group_code": code}
            ) from None


def default_guards(
    section_groups: Mapping[str, SectionGroup],
    required_documents: Sequence[str],
    aggregator: ClearanceAggregator
) -> Tuple[Guard, ...]:
    """The standard guard set for the transfer workflow"""

    def group(code: SectionGroupCode) -> SectionGroup:
        try:
            return section_groups[code.value]
        except KeyError:
            raise UnknownSectionGroupError(
                f"Section group {code.value} is required by the standard guards",
                details={"group_code": code.value}
            ) from None

    payment_verified = PaymentVerifiedGuard(G.PAYMENT_VERIFIED.value)
    deed_finalized = DeedFinalizedGuard(G.DEED_FINALIZED.value)

    guards = [
        IntakeCompleteGuard(G.INTAKE_COMPLETE.value, required_documents),
        ReviewDecisionGuard(
            G.SCRUTINY_COMPLETE.value, ReviewerRole.OWO, S.UNDER_SCRUTINY.value,
            ReviewDecision.APPROVED, "OWO scrutiny"
        ),
        ReviewDecisionGuard(
            G.OWO_REVIEW_COMPLETE.value, ReviewerRole.OWO, S.OWO_REVIEW_BCA_HOUSING.value,
            ReviewDecision.APPROVED, "OWO review"
        ),
        ReviewDecisionGuard(
            G.OWO_ACCOUNTS_REVIEW_COMPLETE.value, ReviewerRole.OWO, S.OWO_REVIEW_ACCOUNTS.value,
            ReviewDecision.APPROVED, "OWO accounts review"
        ),
        ReviewDecisionGuard(
            G.APPROVAL_COMPLETE.value, ReviewerRole.APPROVER, S.READY_FOR_APPROVAL.value,
            ReviewDecision.APPROVED, "Approver decision",
            missing_reason="Approver decision not recorded"
        ),
        ReviewDecisionGuard(
            G.APPROVAL_REJECTED.value, ReviewerRole.APPROVER, S.READY_FOR_APPROVAL.value,
            ReviewDecision.REJECTED, "Approver decision",
            missing_reason="Approver rejection not found"
        ),
        GroupClearGuard(G.CLEARANCES_COMPLETE.value, group(SectionGroupCode.BCA_HOUSING), aggregator),
        GroupClearGuard(G.WATER_CLEAR.value, group(SectionGroupCode.WATER), aggregator),
        GroupClearGuard(G.ACCOUNTS_CLEAR.value, group(SectionGroupCode.ACCOUNTS), aggregator),
        AccountsCalculatedGuard(G.ACCOUNTS_CALCULATED.value),
        payment_verified,
        deed_finalized,
        AllOfGuard(G.CLOSE_CASE.value, [deed_finalized, payment_verified]),
    ]
    guards.extend(build_section_guards(
        aggregator,
        objection_names={
            SectionCode.BCA: G.BCA_OBJECTION.value,
            SectionCode.HOUSING: G.HOUSING_OBJECTION.value,
            SectionCode.WATER: G.WATER_OBJECTION.value,
            SectionCode.ACCOUNTS: G.ACCOUNTS_OBJECTION.value,
        },
        resolved_names={
            SectionCode.BCA: G.BCA_RESOLVED.value,
            SectionCode.HOUSING: G.HOUSING_RESOLVED.value,
            SectionCode.WATER: G.WATER_RESOLVED.value,
            SectionCode.ACCOUNTS: G.ACCOUNTS_RESOLVED.value,
        },
    ))
    return tuple(guards)


def build_workflow_config(
    stages: Optional[Iterable[Stage]] = None,
    transitions: Optional[Iterable[Transition]] = None,
    section_groups: Optional[Iterable[SectionGroup]] = None,
    guards: Optional[Iterable[Guard]] = None,
    required_documents: Optional[Sequence[str]] = None,
    initial_stage: str = INITIAL_STAGE,
    accounts_stages: Optional[Iterable[str]] = None
) -> WorkflowConfig:
    """
    Build and validate the workflow definition

    Any inconsistency aborts startup with a ConfigurationError subclass:
    - UnknownStageError: an edge endpoint, the initial stage or an accounts
      stage is not registered
    - UnknownGuardError: an edge names a guard that is not registered
    - ConfigurationError: a terminal stage has outgoing edges
    """
    stages = tuple(stages if stages is not None else STAGES)
    transitions = tuple(transitions if transitions is not None else TRANSITIONS)
    groups = tuple(section_groups if section_groups is not None else SECTION_GROUPS)
    required_documents = tuple(
        required_documents if required_documents is not None else REQUIRED_INTAKE_DOCUMENTS
    )

    graph = StageGraph(stages, transitions)

    if not graph.has_stage(initial_stage):
        raise UnknownStageError(
            f"Initial stage {initial_stage} is not registered",
            details={"stage": initial_stage}
        )

    if accounts_stages is None:
        accounts_stages = tuple(code for code in ACCOUNTS_STAGES if graph.has_stage(code))
    accounts_stages = tuple(accounts_stages)
    for code in accounts_stages:
        if not graph.has_stage(code):
            raise UnknownStageError(
                f"Accounts stage {code} is not registered",
                details={"stage": code}
            )

    for stage in graph.stages:
        if stage.is_terminal and graph.edges(stage.code):
            raise ConfigurationError(
                f"Terminal stage {stage.code} has outgoing transitions",
                details={"stage": stage.code}
            )

    group_map = {}
    for group in groups:
        if group.code in group_map:
            raise ConfigurationError(
                f"Section group {group.code} defined twice",
                details={"group_code": group.code}
            )
        group_map[group.code] = group

    aggregator = ClearanceAggregator()
    if guards is None:
        guards = default_guards(group_map, required_documents, aggregator)
    registry = GuardRegistry(guards)

    for transition in graph.transitions:
        if transition.guard_name not in registry:
            raise UnknownGuardError(
                f"Transition {transition.from_stage} -> {transition.to_stage} "
                f"references unknown guard {transition.guard_name}",
                details={"guard_name": transition.guard_name}
            )

    logger.info(
        f"Workflow configured: {len(graph.stages)} stages, "
        f"{len(graph.transitions)} transitions, {len(registry)} guards"
    )

    return WorkflowConfig(
        graph=graph,
        registry=registry,
        section_groups=groups,
        aggregator=aggregator,
        required_documents=required_documents,
        initial_stage=initial_stage,
        accounts_stages=accounts_stages,
    )
