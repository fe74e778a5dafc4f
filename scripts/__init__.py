"""
Maintenance Scripts Module

Available scripts:
    - validate_workflow.py: Prints the stage graph and checks it for dead ends

Usage:
    python -m scripts.validate_workflow
    python -m scripts.validate_workflow --json
"""
