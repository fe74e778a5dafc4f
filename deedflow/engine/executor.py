"""Transition Executor - Guarded, serializable stage changes"""
from typing import List, Optional

from ..domain.models import (
    ActorContext, CaseSnapshot, GuardDecision, Transition, TransitionOption, TransitionResult
)
from ..domain.errors import (
    CaseClosedError, GuardRejectedError, ConcurrentModificationError
)
from ..repositories.base import CaseStore
from .definitions import WorkflowConfig
from .stage_graph import StageKey, stage_code
from .audit_writer import AuditWriter
from ..utils.logger import get_context_logger, get_logger

logger = get_logger(__name__)


class TransitionExecutor:
    """
    Apply stage transitions to cases

    A request is handled against one snapshot:
    1. Load the snapshot and its version
    2. Reject if the case is in a terminal stage
    3. Resolve the edge current_stage -> target
    4. Evaluate the edge's guard; a denial raises GuardRejectedError with the guard's reason
    5. Commit the new stage and the audit entry in one compare-and-swap on the version

    Two requests racing on the same case both read the same version; the
    store accepts only the first commit and the other raises
    ConcurrentModificationError. Transitions are never retried here, the
    caller re-reads the case and decides again.
    """

    def __init__(
        self,
        config: WorkflowConfig,
        store: CaseStore,
        audit_writer: Optional[AuditWriter] = None
    ):
        self.config = config
        self.store = store
        self.audit_writer = audit_writer or AuditWriter()

    @property
    def graph(self):
        return self.config.graph

    @property
    def registry(self):
        return self.config.registry

    # =========================================================================
    # Dry run
    # =========================================================================

    def list_transitions(
        self,
        from_stage: StageKey,
        case_id: Optional[str] = None,
        dry_run: bool = True
    ) -> List[TransitionOption]:
        """
        Enumerate outgoing edges of a stage

        With a case_id and dry_run, every edge's guard is evaluated against the
        case's current snapshot; nothing is written.
        """
        edges = self.graph.edges(from_stage)
        snapshot = self.store.load_snapshot(case_id) if case_id and dry_run else None

        options = []
        for transition in edges:
            decision = self._evaluate(transition, snapshot) if snapshot else None
            options.append(TransitionOption(
                from_stage=transition.from_stage,
                to_stage=transition.to_stage,
                to_stage_name=self.graph.get_stage(transition.to_stage).name,
                guard_name=transition.guard_name,
                allowed=decision.allowed if decision else None,
                reason=decision.reason if decision else None,
            ))
        return options

    def available_transitions(self, case_id: str) -> List[TransitionOption]:
        """Dry run of every edge out of the case's current stage"""
        snapshot = self.store.load_snapshot(case_id)
        return self.list_transitions(snapshot.current_stage, case_id=case_id, dry_run=True)

    def check(self, case_id: str, to_stage: StageKey) -> GuardDecision:
        """Dry run of a single edge out of the case's current stage"""
        snapshot = self.store.load_snapshot(case_id)
        self._ensure_open(snapshot)
        transition = self.graph.resolve(snapshot.current_stage, to_stage)
        return self._evaluate(transition, snapshot)

    # =========================================================================
    # Commit
    # =========================================================================

    def request_transition(
        self,
        case_id: str,
        to_stage: StageKey,
        actor: ActorContext,
        remarks: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> TransitionResult:
        """
        Move a case to to_stage

        Raises:
            CaseNotFoundError: Unknown case
            CaseClosedError: The case is in a terminal stage
            NoSuchTransitionError: No edge from the current stage to to_stage
            GuardRejectedError: The edge's guard denied; reason is the guard's
            ConcurrentModificationError: Another write committed first
        """
        snapshot = self.store.load_snapshot(case_id)
        self._ensure_open(snapshot)
        transition = self.graph.resolve(snapshot.current_stage, stage_code(to_stage))
        decision = self._evaluate(transition, snapshot)

        if not decision.allowed:
            logger.warning(
                f"Transition {transition.from_stage} -> {transition.to_stage} rejected: {decision.reason}",
                extra={
                    "case_id": case_id,
                    "from_stage": transition.from_stage,
                    "to_stage": transition.to_stage,
                    "guard_name": transition.guard_name,
                    "actor_id": actor.user_id,
                }
            )
            raise GuardRejectedError(
                decision.reason,
                details={
                    "case_id": case_id,
                    "from_stage": transition.from_stage,
                    "to_stage": transition.to_stage,
                    "guard_name": transition.guard_name,
                    **decision.metadata,
                }
            )

        return self._commit(snapshot, transition, decision, actor, remarks, correlation_id)

    def advance(
        self,
        case_id: str,
        actor: ActorContext,
        correlation_id: Optional[str] = None
    ) -> Optional[TransitionResult]:
        """
        Take the first auto edge out of the current stage whose guard allows it

        Returns None when the case is terminal or no auto edge is allowed.
        """
        snapshot = self.store.load_snapshot(case_id)
        if self.graph.is_terminal(snapshot.current_stage):
            return None

        for transition in self.graph.edges(snapshot.current_stage):
            if not transition.auto_progress:
                continue
            decision = self._evaluate(transition, snapshot)
            if decision.allowed:
                return self._commit(
                    snapshot, transition, decision, actor,
                    remarks="Auto-progressed", correlation_id=correlation_id
                )

        logger.debug(
            f"No automatic transition from {snapshot.current_stage}",
            extra={"case_id": case_id, "from_stage": snapshot.current_stage}
        )
        return None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _evaluate(self, transition: Transition, snapshot: CaseSnapshot) -> GuardDecision:
        return self.registry.evaluate(transition.guard_name, snapshot)

    def _ensure_open(self, snapshot: CaseSnapshot) -> None:
        if self.graph.is_terminal(snapshot.current_stage):
            raise CaseClosedError(
                f"Case {snapshot.case_id} is {snapshot.current_stage} and cannot change",
                details={"case_id": snapshot.case_id, "stage": snapshot.current_stage}
            )

    def _commit(
        self,
        snapshot: CaseSnapshot,
        transition: Transition,
        decision: GuardDecision,
        actor: ActorContext,
        remarks: Optional[str],
        correlation_id: Optional[str]
    ) -> TransitionResult:
        entry = self.audit_writer.write_transition(
            case_id=snapshot.case_id,
            actor=actor,
            from_stage=transition.from_stage,
            to_stage=transition.to_stage,
            guard_name=transition.guard_name,
            guard_reason=decision.reason,
            remarks=remarks,
            correlation_id=correlation_id
        )

        case_logger = get_context_logger(
            __name__,
            case_id=snapshot.case_id,
            from_stage=transition.from_stage,
            to_stage=transition.to_stage,
        )

        try:
            version = self.store.commit(
                snapshot.case_id,
                expected_version=snapshot.version,
                new_stage=transition.to_stage,
                audit_entry=entry
            )
        except ConcurrentModificationError:
            case_logger.warning(
                f"Lost race moving case to {transition.to_stage}",
                extra={"version": snapshot.version}
            )
            raise

        case_logger.info(
            f"Case moved {transition.from_stage} -> {transition.to_stage}",
            extra={
                "guard_name": transition.guard_name,
                "actor_id": actor.user_id,
                "version": version,
            }
        )

        return TransitionResult(
            case_id=snapshot.case_id,
            from_stage=transition.from_stage,
            new_stage=transition.to_stage,
            version=version,
            audit_entry=entry,
        )
