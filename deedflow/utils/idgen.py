"""ID Generation Utilities"""
import uuid
from datetime import datetime
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'APP', 'CLR', 'AUD')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('APP')
        'APP-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_case_id() -> str:
    """Generate case (application) ID"""
    return generate_id("APP")


def generate_clearance_id() -> str:
    """Generate clearance ID"""
    return generate_id("CLR")


def generate_review_id() -> str:
    """Generate review ID"""
    return generate_id("REV")


def generate_attachment_id() -> str:
    """Generate attachment ID"""
    return generate_id("ATT")


def generate_breakdown_id() -> str:
    """Generate accounts breakdown ID"""
    return generate_id("ACB")


def generate_deed_id() -> str:
    """Generate transfer deed ID"""
    return generate_id("DEED")


def generate_audit_entry_id() -> str:
    """Generate audit log entry ID"""
    return generate_id("AUD")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
