"""
Pytest Configuration and Fixtures

This file contains shared fixtures and configuration for all tests.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from deedflow.domain.models import (
    ActorContext, AccountsBreakdown, Attachment, Case, CaseSnapshot, Clearance, Review, TransferDeed
)
from deedflow.domain.enums import ClearanceStatus, ReviewDecision, ReviewerRole, SectionCode
from deedflow.engine.definitions import REQUIRED_INTAKE_DOCUMENTS, build_workflow_config
from deedflow.repositories.memory_store import InMemoryCaseStore
from deedflow.services.case_service import CaseService

FIXED_NOW = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


def make_clearance(
    section: SectionCode,
    status: ClearanceStatus,
    sequence: int,
    case_id: str = "APP-test",
    remarks: Optional[str] = None
) -> Clearance:
    return Clearance(
        clearance_id=f"CLR-{sequence}",
        case_id=case_id,
        section=section,
        status=status,
        remarks=remarks,
        sequence=sequence,
        recorded_by="section-officer",
        created_at=FIXED_NOW,
    )


def make_review(
    role: ReviewerRole,
    stage: str,
    decision: ReviewDecision,
    sequence: int = 1,
    case_id: str = "APP-test"
) -> Review:
    return Review(
        review_id=f"REV-{sequence}",
        case_id=case_id,
        reviewer_role=role,
        stage=stage,
        decision=decision,
        sequence=sequence,
        reviewed_by="reviewer",
        created_at=FIXED_NOW,
    )


def make_attachments(doc_types: Iterable[str] = REQUIRED_INTAKE_DOCUMENTS, seen: bool = True):
    return [
        Attachment(
            attachment_id=f"ATT-{i}",
            doc_type=doc_type,
            document_ref=f"blob://{doc_type}",
            is_original_seen=seen,
            uploaded_at=FIXED_NOW,
        )
        for i, doc_type in enumerate(doc_types)
    ]


def make_breakdown(
    total: str,
    paid: Optional[str] = None,
    case_id: str = "APP-test"
) -> AccountsBreakdown:
    total_amount = Decimal(total)
    paid_amount = Decimal(paid) if paid is not None else None
    return AccountsBreakdown(
        breakdown_id="ACB-test",
        case_id=case_id,
        fee_heads={"transferFee": total_amount},
        total_amount=total_amount,
        paid_amount=paid_amount,
        remaining_amount=max(total_amount - (paid_amount or Decimal("0")), Decimal("0")),
        payment_verified=paid_amount is not None and paid_amount >= total_amount,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def make_deed(
    witness1_id: str = "witness-a",
    witness2_id: str = "witness-b",
    case_id: str = "APP-test"
) -> TransferDeed:
    return TransferDeed(
        deed_id="DEED-test",
        case_id=case_id,
        witness1_id=witness1_id,
        witness2_id=witness2_id,
        content="Transfer of plot 42",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def make_snapshot(stage: str = "SUBMITTED", **fields: Any) -> CaseSnapshot:
    data: Dict[str, Any] = {"case_id": "APP-test", "current_stage": stage, "version": 1}
    for key in ("attachments", "clearances", "reviews"):
        if key in fields:
            fields[key] = tuple(fields[key])
    data.update(fields)
    return CaseSnapshot(**data)


@pytest.fixture(scope="session")
def workflow_config():
    """The standard transfer workflow"""
    return build_workflow_config()


@pytest.fixture
def store():
    return InMemoryCaseStore()


@pytest.fixture
def service(workflow_config, store):
    return CaseService(config=workflow_config, store=store, max_retries=3, auto_progress=False)


@pytest.fixture
def actor():
    return ActorContext(user_id="owo-1", display_name="OWO Clerk", role="OWO")


@pytest.fixture
def seed_case(store):
    """Put a case directly into the store at any stage"""

    def _seed(stage: str = "SUBMITTED", case_id: str = "APP-test", **fields: Any) -> Case:
        case = Case(
            case_id=case_id,
            current_stage=stage,
            seller_id="seller-1",
            buyer_id="buyer-1",
            plot_id="plot-42",
            created_at=FIXED_NOW,
            updated_at=FIXED_NOW,
            **fields,
        )
        store.create_case(case)
        return case

    return _seed
