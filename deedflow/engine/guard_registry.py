"""Guard Registry - Named pure predicates gating transitions"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Tuple

from ..domain.models import CaseSnapshot, GuardDecision
from ..domain.errors import ConfigurationError, UnknownGuardError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class Guard(ABC):
    """
    A pure predicate over a case snapshot

    Implementations must not mutate the snapshot or perform I/O. When data
    the guard depends on is missing, the guard denies with a reason instead
    of raising.
    """

    name: str = ""

    @abstractmethod
    def evaluate(self, snapshot: CaseSnapshot) -> GuardDecision:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class GuardRegistry:
    """Lookup of guards by name"""

    def __init__(self, guards: Iterable[Guard] = ()):
        self._guards: Dict[str, Guard] = {}
        for guard in guards:
            self.register(guard)

    def register(self, guard: Guard) -> None:
        """Add a guard; names are unique"""
        if not guard.name:
            raise ConfigurationError(f"Guard {guard!r} has no name")
        if guard.name in self._guards:
            raise ConfigurationError(
                f"Guard {guard.name} registered twice",
                details={"guard_name": guard.name}
            )
        self._guards[guard.name] = guard

    def get(self, guard_name: str) -> Guard:
        """Get a guard or raise UnknownGuardError"""
        try:
            return self._guards[guard_name]
        except KeyError:
            raise UnknownGuardError(
                f"Guard {guard_name} is not registered",
                details={"guard_name": guard_name}
            ) from None

    def evaluate(self, guard_name: str, snapshot: CaseSnapshot) -> GuardDecision:
        """Run a guard against a snapshot"""
        decision = self.get(guard_name).evaluate(snapshot)
        logger.debug(
            f"Guard {guard_name} -> {'allowed' if decision.allowed else 'denied'}: {decision.reason}",
            extra={"case_id": snapshot.case_id, "guard_name": guard_name}
        )
        return decision

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._guards))

    def __contains__(self, guard_name: object) -> bool:
        return guard_name in self._guards

    def __len__(self) -> int:
        return len(self._guards)
