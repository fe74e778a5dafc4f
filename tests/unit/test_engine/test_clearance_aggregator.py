"""Tests for clearance aggregation"""
import itertools

import pytest

from deedflow.domain.enums import ClearanceStatus, SectionCode
from deedflow.domain.models import SectionGroup
from deedflow.engine.clearance_aggregator import ClearanceAggregator

from tests.conftest import make_clearance

BCA = SectionCode.BCA
HOUSING = SectionCode.HOUSING
CLEAR = ClearanceStatus.CLEAR
OBJECTION = ClearanceStatus.OBJECTION
PENDING = ClearanceStatus.PENDING

BCA_HOUSING = SectionGroup(code="BCA_HOUSING", name="BCA & Housing", sections=(BCA, HOUSING))


@pytest.fixture
def aggregator():
    return ClearanceAggregator()


class TestGroupStatus:

    def test_no_records_is_pending(self, aggregator):
        verdict = aggregator.evaluate_group([], BCA_HOUSING)
        assert verdict.status == PENDING
        assert verdict.pending_sections == (BCA, HOUSING)
        assert verdict.reason == "Awaiting clearance from: BCA, HOUSING"

    def test_all_clear(self, aggregator):
        clearances = [make_clearance(BCA, CLEAR, 1), make_clearance(HOUSING, CLEAR, 2)]
        verdict = aggregator.evaluate_group(clearances, BCA_HOUSING)
        assert verdict.status == CLEAR
        assert verdict.reason == "All sections in BCA_HOUSING cleared"

    def test_one_section_missing_is_pending(self, aggregator):
        verdict = aggregator.evaluate_group([make_clearance(BCA, CLEAR, 1)], BCA_HOUSING)
        assert verdict.status == PENDING
        assert verdict.pending_sections == (HOUSING,)

    def test_objection_dominates_pending(self, aggregator):
        verdict = aggregator.evaluate_group([make_clearance(HOUSING, OBJECTION, 1)], BCA_HOUSING)
        assert verdict.status == OBJECTION
        assert verdict.reason == "Objection raised by: HOUSING"

    def test_clear_and_objection_is_objection(self, aggregator):
        clearances = [make_clearance(BCA, CLEAR, 1), make_clearance(HOUSING, OBJECTION, 2)]
        assert aggregator.group_status(clearances, BCA_HOUSING) == OBJECTION

    def test_latest_record_supersedes(self, aggregator):
        clearances = [
            make_clearance(BCA, OBJECTION, 1),
            make_clearance(HOUSING, CLEAR, 2),
            make_clearance(BCA, CLEAR, 3),
        ]
        assert aggregator.group_status(clearances, BCA_HOUSING) == CLEAR

    def test_latest_is_by_sequence_not_position(self, aggregator):
        clearances = [
            make_clearance(BCA, CLEAR, 5),
            make_clearance(BCA, OBJECTION, 2),
            make_clearance(HOUSING, CLEAR, 3),
        ]
        assert aggregator.section_status(clearances, BCA) == CLEAR
        assert aggregator.group_status(clearances, BCA_HOUSING) == CLEAR

    def test_sections_outside_group_are_ignored(self, aggregator):
        clearances = [
            make_clearance(BCA, CLEAR, 1),
            make_clearance(HOUSING, CLEAR, 2),
            make_clearance(SectionCode.WATER, OBJECTION, 3),
        ]
        assert aggregator.group_status(clearances, BCA_HOUSING) == CLEAR

    @pytest.mark.parametrize("bca,housing,expected", [
        (CLEAR, CLEAR, CLEAR),
        (CLEAR, PENDING, PENDING),
        (PENDING, PENDING, PENDING),
        (OBJECTION, CLEAR, OBJECTION),
        (OBJECTION, PENDING, OBJECTION),
        (OBJECTION, OBJECTION, OBJECTION),
    ])
    def test_aggregation_is_order_independent(self, aggregator, bca, housing, expected):
        records = [make_clearance(BCA, bca, 1), make_clearance(HOUSING, housing, 2)]
        for ordering in itertools.permutations(records):
            assert aggregator.group_status(ordering, BCA_HOUSING) == expected
        swapped = [make_clearance(HOUSING, housing, 1), make_clearance(BCA, bca, 2)]
        assert aggregator.group_status(swapped, BCA_HOUSING) == expected


class TestHistory:

    def test_history_is_oldest_first_for_one_section(self, aggregator):
        clearances = [
            make_clearance(BCA, CLEAR, 3),
            make_clearance(HOUSING, CLEAR, 2),
            make_clearance(BCA, OBJECTION, 1),
        ]
        history = aggregator.history(clearances, BCA)
        assert [c.sequence for c in history] == [1, 3]

    def test_section_status_none_when_never_recorded(self, aggregator):
        assert aggregator.section_status([], SectionCode.WATER) is None
