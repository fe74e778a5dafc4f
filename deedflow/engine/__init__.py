"""Workflow Engine - Stage graph, guards and the transition executor"""
from .stage_graph import StageGraph
from .guard_registry import Guard, GuardRegistry
from .clearance_aggregator import ClearanceAggregator, GroupVerdict
from .accounts_calculator import AccountsCalculator
from .deed_finalizer import DeedFinalizer
from .audit_writer import AuditWriter
from .definitions import WorkflowConfig, build_workflow_config
from .executor import TransitionExecutor

__all__ = [
    "StageGraph",
    "Guard",
    "GuardRegistry",
    "ClearanceAggregator",
    "GroupVerdict",
    "AccountsCalculator",
    "DeedFinalizer",
    "AuditWriter",
    "WorkflowConfig",
    "build_workflow_config",
    "TransitionExecutor",
]
