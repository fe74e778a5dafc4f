"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class StageCode(str, Enum):
    """Stages of the property-transfer case lifecycle"""
    SUBMITTED = "SUBMITTED"
    UNDER_SCRUTINY = "UNDER_SCRUTINY"
    SENT_TO_BCA_HOUSING = "SENT_TO_BCA_HOUSING"
    BCA_PENDING = "BCA_PENDING"
    HOUSING_PENDING = "HOUSING_PENDING"
    ON_HOLD_BCA = "ON_HOLD_BCA"
    ON_HOLD_HOUSING = "ON_HOLD_HOUSING"
    BCA_HOUSING_CLEAR = "BCA_HOUSING_CLEAR"
    OWO_REVIEW_BCA_HOUSING = "OWO_REVIEW_BCA_HOUSING"
    SENT_TO_WATER = "SENT_TO_WATER"
    ON_HOLD_WATER = "ON_HOLD_WATER"
    WATER_CLEAR = "WATER_CLEAR"
    SENT_TO_ACCOUNTS = "SENT_TO_ACCOUNTS"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    ON_HOLD_ACCOUNTS = "ON_HOLD_ACCOUNTS"
    ACCOUNTS_CLEAR = "ACCOUNTS_CLEAR"
    OWO_REVIEW_ACCOUNTS = "OWO_REVIEW_ACCOUNTS"
    READY_FOR_APPROVAL = "READY_FOR_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"  # Terminal
    POST_ENTRIES = "POST_ENTRIES"
    CLOSED = "CLOSED"  # Terminal


class SectionCode(str, Enum):
    """Departments that record clearances"""
    BCA = "BCA"  # Building Control Authority
    HOUSING = "HOUSING"
    ACCOUNTS = "ACCOUNTS"
    WATER = "WATER"
    OWO = "OWO"  # One Window Operator


class SectionGroupCode(str, Enum):
    """Configured groups of sections aggregated into one verdict"""
    BCA_HOUSING = "BCA_HOUSING"
    WATER = "WATER"
    ACCOUNTS = "ACCOUNTS"


class ClearanceStatus(str, Enum):
    """Section decision, also used for the aggregated group verdict"""
    PENDING = "PENDING"
    CLEAR = "CLEAR"
    OBJECTION = "OBJECTION"


class ReviewerRole(str, Enum):
    """Roles that record review decisions"""
    OWO = "OWO"
    APPROVER = "APPROVER"


class ReviewDecision(str, Enum):
    """Review outcomes"""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class GuardName(str, Enum):
    """Names of the guards registered at bootstrap"""
    INTAKE_COMPLETE = "GUARD_INTAKE_COMPLETE"
    SCRUTINY_COMPLETE = "GUARD_SCRUTINY_COMPLETE"
    BCA_OBJECTION = "GUARD_BCA_OBJECTION"
    HOUSING_OBJECTION = "GUARD_HOUSING_OBJECTION"
    WATER_OBJECTION = "GUARD_WATER_OBJECTION"
    ACCOUNTS_OBJECTION = "GUARD_ACCOUNTS_OBJECTION"
    BCA_RESOLVED = "GUARD_BCA_RESOLVED"
    HOUSING_RESOLVED = "GUARD_HOUSING_RESOLVED"
    WATER_RESOLVED = "GUARD_WATER_RESOLVED"
    ACCOUNTS_RESOLVED = "GUARD_ACCOUNTS_RESOLVED"
    CLEARANCES_COMPLETE = "GUARD_CLEARANCES_COMPLETE"
    WATER_CLEAR = "GUARD_WATER_CLEAR"
    ACCOUNTS_CLEAR = "GUARD_ACCOUNTS_CLEAR"
    OWO_REVIEW_COMPLETE = "GUARD_OWO_REVIEW_COMPLETE"
    OWO_ACCOUNTS_REVIEW_COMPLETE = "GUARD_OWO_ACCOUNTS_REVIEW_COMPLETE"
    ACCOUNTS_CALCULATED = "GUARD_ACCOUNTS_CALCULATED"
    PAYMENT_VERIFIED = "GUARD_PAYMENT_VERIFIED"
    APPROVAL_COMPLETE = "GUARD_APPROVAL_COMPLETE"
    APPROVAL_REJECTED = "GUARD_APPROVAL_REJECTED"
    DEED_FINALIZED = "GUARD_DEED_FINALIZED"
    CLOSE_CASE = "GUARD_CLOSE_CASE"


class AuditAction(str, Enum):
    """Audit log entry types"""
    CASE_CREATED = "CASE_CREATED"
    STAGE_TRANSITION = "STAGE_TRANSITION"
    CLEARANCE_RECORDED = "CLEARANCE_RECORDED"
    REVIEW_RECORDED = "REVIEW_RECORDED"
    ATTACHMENT_RECORDED = "ATTACHMENT_RECORDED"
    ACCOUNTS_COMPUTED = "ACCOUNTS_COMPUTED"
    PAYMENT_RECORDED = "PAYMENT_RECORDED"
    DEED_DRAFTED = "DEED_DRAFTED"
    DEED_UPDATED = "DEED_UPDATED"
    DEED_FINALIZED = "DEED_FINALIZED"
