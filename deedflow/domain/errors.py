"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "retryable": self.retryable,
                "details": self.details
            }
        }


# Configuration Errors (fatal at bootstrap)
class ConfigurationError(DomainError):
    """Workflow definition is inconsistent"""
    error_code = "CONFIGURATION_ERROR"


class UnknownStageError(ConfigurationError):
    """Stage code not registered in the stage graph"""
    error_code = "UNKNOWN_STAGE"


class UnknownGuardError(ConfigurationError):
    """Guard name not registered"""
    error_code = "UNKNOWN_GUARD"


class UnknownSectionGroupError(ConfigurationError):
    """Section group not configured"""
    error_code = "UNKNOWN_SECTION_GROUP"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"


class InvalidFeeHeadError(ValidationError):
    """Fee head amount is negative, not numeric or has fractions of a cent"""
    error_code = "INVALID_FEE_HEAD"


class InvalidPaymentError(ValidationError):
    """Paid amount is negative, not numeric or has fractions of a cent"""
    error_code = "INVALID_PAYMENT"


class WitnessValidationError(ValidationError):
    """Witness identities or signatures are missing or not distinct"""
    error_code = "WITNESS_VALIDATION_ERROR"


class NoSuchTransitionError(ValidationError):
    """No edge between the current stage and the requested stage"""
    error_code = "NO_SUCH_TRANSITION"


class StageNotAllowedError(ValidationError):
    """Operation is not allowed at the case's current stage"""
    error_code = "STAGE_NOT_ALLOWED"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"


class CaseNotFoundError(NotFoundError):
    """Case not found"""
    error_code = "CASE_NOT_FOUND"


class AccountsBreakdownNotFoundError(NotFoundError):
    """Accounts breakdown not computed yet"""
    error_code = "ACCOUNTS_BREAKDOWN_NOT_FOUND"


class DeedNotFoundError(NotFoundError):
    """Transfer deed not drafted yet"""
    error_code = "DEED_NOT_FOUND"


class AttachmentNotFoundError(NotFoundError):
    """Attachment not found"""
    error_code = "ATTACHMENT_NOT_FOUND"


# Business rule rejection
class GuardRejectedError(DomainError):
    """Guard did not allow the transition; reason is shown to the caller as is"""
    error_code = "GUARD_REJECTED"

    def __init__(
        self,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(reason, details=details, error_code=error_code)
        self.reason = reason


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict"""
    error_code = "CONFLICT"


class ConcurrentModificationError(ConflictError):
    """Optimistic concurrency conflict - re-fetch and retry"""
    error_code = "CONCURRENT_MODIFICATION"
    retryable = True


class DeedAlreadyExistsError(ConflictError):
    """A deed draft already exists for this case"""
    error_code = "DEED_ALREADY_EXISTS"


# Terminal State Errors (permanent)
class TerminalStateViolationError(DomainError):
    """Attempt to mutate something that can no longer change"""
    error_code = "TERMINAL_STATE_VIOLATION"


class DeedAlreadyFinalizedError(TerminalStateViolationError):
    """Transfer deed is finalized"""
    error_code = "DEED_ALREADY_FINALIZED"


class CaseClosedError(TerminalStateViolationError):
    """Case is in a terminal stage"""
    error_code = "CASE_CLOSED"
