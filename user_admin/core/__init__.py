"""Core Business Logic Module

This module provides the user administration logic, independent of the
HTTP framework.

Module Structure:
    - auth0/                  : Auth0 Management API client and services
    - validators.py           : Per-record and payload validation
    - batch.py                : Bulk executor, pacing, CSV input
    - criteria.py             : Deletion/import criteria and resolution
    - reporting.py            : Elapsed-time formatting
    - audit.py                : Signed JSONL audit trail
    - provisioning_service.py : High-level operations used by API and CLI

Usage Pattern:
    These modules are NOT auto-imported. Import explicitly when needed:
        from user_admin.core.provisioning_service import create_user, ServiceError
        from user_admin.core.batch import BatchExecutor, PacingPolicy
        from user_admin.core.criteria import parse_deletion_criterion
"""
