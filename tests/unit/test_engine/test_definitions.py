"""Tests for workflow bootstrap and validation"""
import pytest

from deedflow.domain.enums import SectionCode
from deedflow.domain.errors import (
    ConfigurationError, UnknownGuardError, UnknownSectionGroupError, UnknownStageError
)
from deedflow.domain.models import SectionGroup, Stage, Transition
from deedflow.engine.definitions import (
    ACCOUNTS_STAGES, REQUIRED_INTAKE_DOCUMENTS, SECTION_GROUPS, STAGES, TRANSITIONS,
    build_workflow_config
)


class TestBuildWorkflowConfig:

    def test_standard_configuration(self, workflow_config):
        assert workflow_config.initial_stage == "SUBMITTED"
        assert workflow_config.required_documents == REQUIRED_INTAKE_DOCUMENTS
        assert set(workflow_config.section_groups) == {"BCA_HOUSING", "WATER", "ACCOUNTS"}
        assert workflow_config.get_group("BCA_HOUSING").sections == (SectionCode.BCA, SectionCode.HOUSING)

    def test_unknown_group(self, workflow_config):
        with pytest.raises(UnknownSectionGroupError):
            workflow_config.get_group("PARKS")

    def test_edge_with_unknown_guard_aborts(self):
        transitions = TRANSITIONS + (
            Transition(from_stage="SUBMITTED", to_stage="REJECTED", guard_name="GUARD_MISSING"),
        )
        with pytest.raises(UnknownGuardError) as exc_info:
            build_workflow_config(transitions=transitions)
        assert exc_info.value.details["guard_name"] == "GUARD_MISSING"

    def test_edge_with_unknown_stage_aborts(self):
        transitions = TRANSITIONS + (
            Transition(from_stage="SUBMITTED", to_stage="ARCHIVED", guard_name="GUARD_INTAKE_COMPLETE"),
        )
        with pytest.raises(UnknownStageError):
            build_workflow_config(transitions=transitions)

    def test_unknown_initial_stage_aborts(self):
        with pytest.raises(UnknownStageError):
            build_workflow_config(initial_stage="DRAFT")

    def test_terminal_stage_with_edges_aborts(self):
        transitions = TRANSITIONS + (
            Transition(from_stage="CLOSED", to_stage="SUBMITTED", guard_name="GUARD_INTAKE_COMPLETE"),
        )
        with pytest.raises(ConfigurationError, match="Terminal stage CLOSED"):
            build_workflow_config(transitions=transitions)

    def test_standard_guards_need_standard_groups(self):
        groups = [g for g in SECTION_GROUPS if g.code != "WATER"]
        with pytest.raises(UnknownSectionGroupError):
            build_workflow_config(section_groups=groups)

    def test_duplicate_group_aborts(self):
        with pytest.raises(ConfigurationError):
            build_workflow_config(section_groups=SECTION_GROUPS + SECTION_GROUPS[:1])

    def test_group_members_must_be_sections(self):
        with pytest.raises(ValueError):
            SectionGroup(code="BAD", name="Bad", sections=("PARKS",))

    def test_custom_required_documents(self):
        config = build_workflow_config(required_documents=["CNIC_Seller"])
        assert config.required_documents == ("CNIC_Seller",)

    def test_accounts_stages(self, workflow_config):
        assert workflow_config.accounts_stages == frozenset(ACCOUNTS_STAGES)
        assert "ACCOUNTS_CLEAR" not in workflow_config.accounts_stages

    def test_unknown_accounts_stage_aborts(self):
        with pytest.raises(UnknownStageError, match="Accounts stage BILLING"):
            build_workflow_config(accounts_stages=["SENT_TO_ACCOUNTS", "BILLING"])

    def test_stage_table(self):
        terminal = [s.code for s in STAGES if s.is_terminal]
        assert terminal == ["REJECTED", "CLOSED"]
        assert all(isinstance(s, Stage) for s in STAGES)
