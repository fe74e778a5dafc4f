"""Stage Graph - Static directory of stages and the edges between them"""
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple, Union

from ..domain.models import Stage, Transition
from ..domain.errors import UnknownStageError, NoSuchTransitionError

StageKey = Union[str, Enum]


def stage_code(stage: StageKey) -> str:
    """Normalize a StageCode member or plain string to its code"""
    if isinstance(stage, Enum):
        return stage.value
    return stage


class StageGraph:
    """
    Multi-edge directed graph of stages

    Read-only after construction. Stages and outgoing edges are keyed by
    stage code. Construction fails with UnknownStageError when an edge
    references a stage that is not registered.
    """

    def __init__(self, stages: Iterable[Stage], transitions: Iterable[Transition]):
        stage_map: Dict[str, Stage] = {}
        for stage in stages:
            stage_map[stage.code] = stage

        edge_map: Dict[str, List[Transition]] = {code: [] for code in stage_map}
        for transition in transitions:
            for code in (transition.from_stage, transition.to_stage):
                if code not in stage_map:
                    raise UnknownStageError(
                        f"Transition {transition.from_stage} -> {transition.to_stage} "
                        f"references unknown stage {code}",
                        details={"stage": code, "guard_name": transition.guard_name}
                    )
            edge_map[transition.from_stage].append(transition)

        self._stages: Mapping[str, Stage] = MappingProxyType(stage_map)
        self._edges: Mapping[str, Tuple[Transition, ...]] = MappingProxyType({
            code: tuple(sorted(edges, key=lambda t: t.sort_order))
            for code, edges in edge_map.items()
        })

    @property
    def stages(self) -> Tuple[Stage, ...]:
        """All stages ordered by sort_order"""
        return tuple(sorted(self._stages.values(), key=lambda s: s.sort_order))

    @property
    def transitions(self) -> Tuple[Transition, ...]:
        """All transitions grouped by source stage"""
        return tuple(t for stage in self.stages for t in self._edges[stage.code])

    def get_stage(self, stage: StageKey) -> Stage:
        """Get a stage by code or raise UnknownStageError"""
        code = stage_code(stage)
        try:
            return self._stages[code]
        except KeyError:
            raise UnknownStageError(
                f"Stage {code} is not registered",
                details={"stage": code}
            ) from None

    def has_stage(self, stage: StageKey) -> bool:
        return stage_code(stage) in self._stages

    def edges(self, from_stage: StageKey) -> Tuple[Transition, ...]:
        """Outgoing transitions of a stage, in sort order"""
        code = self.get_stage(from_stage).code
        return self._edges[code]

    def exists(self, from_stage: StageKey, to_stage: StageKey) -> bool:
        """Check whether an edge from_stage -> to_stage is registered"""
        target = self.get_stage(to_stage).code
        return any(t.to_stage == target for t in self.edges(from_stage))

    def resolve(self, from_stage: StageKey, to_stage: StageKey) -> Transition:
        """
        Pick the edge matching the requested target stage

        Raises:
            UnknownStageError: If the source stage is not registered
            NoSuchTransitionError: If the edge does not exist
        """
        source = self.get_stage(from_stage).code
        target = stage_code(to_stage)
        for transition in self._edges[source]:
            if transition.to_stage == target:
                return transition
        raise NoSuchTransitionError(
            f"No transition from {source} to {target}",
            details={"from_stage": source, "to_stage": target}
        )

    def is_terminal(self, stage: StageKey) -> bool:
        """Terminal stages have no outgoing edges"""
        found = self.get_stage(stage)
        return found.is_terminal or not self._edges[found.code]

    def reachable_from(self, start: StageKey) -> Tuple[str, ...]:
        """Stage codes reachable from start, start included"""
        seen = [self.get_stage(start).code]
        queue = list(seen)
        while queue:
            current = queue.pop(0)
            for transition in self._edges[current]:
                if transition.to_stage not in seen:
                    seen.append(transition.to_stage)
                    queue.append(transition.to_stage)
        return tuple(seen)
