"""Service modules - Business logic layer"""
from .case_service import CaseService, DocumentIssuer, get_case_store

__all__ = [
    "CaseService",
    "DocumentIssuer",
    "get_case_store",
]
