"""Tests for the domain error hierarchy"""
import pytest

from deedflow.domain.errors import (
    CaseClosedError, ConcurrentModificationError, DeedAlreadyFinalizedError, DomainError,
    GuardRejectedError, InvalidFeeHeadError, NoSuchTransitionError, NotFoundError,
    TerminalStateViolationError, UnknownGuardError, ValidationError, ConfigurationError,
    CaseNotFoundError
)


def test_to_dict():
    error = ConcurrentModificationError("Case APP-1 was modified", details={"case_id": "APP-1"})
    assert error.to_dict() == {
        "error": {
            "code": "CONCURRENT_MODIFICATION",
            "message": "Case APP-1 was modified",
            "retryable": True,
            "details": {"case_id": "APP-1"},
        }
    }


def test_only_concurrency_conflicts_are_retryable():
    assert ConcurrentModificationError("x").retryable
    assert not GuardRejectedError("x").retryable
    assert not CaseClosedError("x").retryable


def test_guard_rejection_keeps_reason_verbatim():
    error = GuardRejectedError("Objection raised by: HOUSING", details={"guard_name": "GUARD_CLEARANCES_COMPLETE"})
    assert error.reason == "Objection raised by: HOUSING"
    assert str(error) == error.reason
    assert error.error_code == "GUARD_REJECTED"


def test_error_code_override():
    assert DomainError("x", error_code="CUSTOM").error_code == "CUSTOM"


@pytest.mark.parametrize("error_cls,base", [
    (UnknownGuardError, ConfigurationError),
    (InvalidFeeHeadError, ValidationError),
    (NoSuchTransitionError, ValidationError),
    (CaseNotFoundError, NotFoundError),
    (DeedAlreadyFinalizedError, TerminalStateViolationError),
    (CaseClosedError, TerminalStateViolationError),
])
def test_hierarchy(error_cls, base):
    assert issubclass(error_cls, base)
    assert issubclass(error_cls, DomainError)
