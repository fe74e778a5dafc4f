"""Clearance Aggregator - Combine section clearances into a group verdict"""
from typing import Dict, Iterable, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict

from ..domain.models import Clearance, SectionGroup
from ..domain.enums import ClearanceStatus, SectionCode


class GroupVerdict(BaseModel):
    """Aggregated status of a section group with the sections behind it"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    group_code: str
    status: ClearanceStatus
    objecting_sections: Tuple[SectionCode, ...] = ()
    pending_sections: Tuple[SectionCode, ...] = ()

    @property
    def reason(self) -> str:
        if self.status == ClearanceStatus.OBJECTION:
            names = ", ".join(s.value for s in self.objecting_sections)
            return f"Objection raised by: {names}"
        if self.status == ClearanceStatus.PENDING:
            names = ", ".join(s.value for s in self.pending_sections)
            return f"Awaiting clearance from: {names}"
        return f"All sections in {self.group_code} cleared"


class ClearanceAggregator:
    """
    Aggregate the latest clearance per section over a section group

    Clearances form an append-only log; the current decision of a section is
    the record with the highest sequence. Aggregation rule:

    1. Any member whose latest status is OBJECTION -> group OBJECTION
    2. Every member's latest status is CLEAR -> group CLEAR
    3. Otherwise (a member is PENDING or has no record) -> group PENDING

    Clearances for sections outside the group are ignored.
    """

    def latest_by_section(self, clearances: Iterable[Clearance]) -> Dict[SectionCode, Clearance]:
        """Project the clearance log to the current record per section"""
        latest: Dict[SectionCode, Clearance] = {}
        for clearance in clearances:
            current = latest.get(clearance.section)
            if current is None or clearance.sequence > current.sequence:
                latest[clearance.section] = clearance
        return latest

    def section_status(
        self,
        clearances: Iterable[Clearance],
        section: SectionCode
    ) -> Optional[ClearanceStatus]:
        """Latest status of one section, None if it never recorded one"""
        latest = self.latest_by_section(clearances).get(section)
        return latest.status if latest else None

    def evaluate_group(
        self,
        clearances: Iterable[Clearance],
        group: SectionGroup
    ) -> GroupVerdict:
        """Aggregate a group and report which sections decided the verdict"""
        latest = self.latest_by_section(clearances)

        objecting: List[SectionCode] = []
        pending: List[SectionCode] = []
        for section in group.sections:
            record = latest.get(section)
            if record is None or record.status == ClearanceStatus.PENDING:
                pending.append(section)
            elif record.status == ClearanceStatus.OBJECTION:
                objecting.append(section)

        if objecting:
            status = ClearanceStatus.OBJECTION
        elif pending:
            status = ClearanceStatus.PENDING
        else:
            status = ClearanceStatus.CLEAR

        return GroupVerdict(
            group_code=group.code,
            status=status,
            objecting_sections=tuple(objecting),
            pending_sections=tuple(pending),
        )

    def group_status(
        self,
        clearances: Iterable[Clearance],
        group: SectionGroup
    ) -> ClearanceStatus:
        """Aggregated status only"""
        return self.evaluate_group(clearances, group).status

    def history(
        self,
        clearances: Iterable[Clearance],
        section: SectionCode
    ) -> List[Clearance]:
        """All records of a section, oldest first"""
        return sorted(
            (c for c in clearances if c.section == section),
            key=lambda c: c.sequence
        )
