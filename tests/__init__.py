"""
Test Suite

This module contains all tests for the deedflow workflow engine.

Structure:
    tests/
    ├── __init__.py             # This file
    ├── conftest.py             # Pytest fixtures and record builders
    └── unit/                   # Unit tests
        ├── __init__.py
        ├── test_domain/        # Error hierarchy
        ├── test_engine/        # Stage graph, guards, calculators, executor
        ├── test_services/      # Case service tests
        ├── test_repositories/  # Case store tests
        ├── test_scripts/       # Maintenance script tests
        └── test_utils/         # Utility tests

To run tests:
    pytest tests/
    pytest tests/unit/test_engine/
"""
