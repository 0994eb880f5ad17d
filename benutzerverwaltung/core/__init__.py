"""Core Business Logic Module

Provisioning logic independent of the command-line entry point.

Module Structure:
    - models.py              : Cell, user, plan and role value types
    - table_decoder.py       : Schema-driven decoding of raw table rows
    - user_extractor.py      : Decoded rows -> canonical users (merging duplicates)
    - reconciliation.py      : Desired vs. actual diff and ordered apply
    - role_sync.py           : Two-phase role catalog synchronization
    - backend.py             : Backend adapter interface
    - keycloak/              : Keycloak Admin API client and backend
    - authentik.py           : authentik backend (groups as roles)
    - gitlab.py              : GitLab group membership backend
    - nextcloud.py           : Nextcloud Tables source
    - user_source.py         : Desired state from a JSON file or a table
    - provisioning_service.py: One convergence pass over all backends
    - audit.py               : Signed JSONL audit trail
    - errors.py              : Error taxonomy

Usage Pattern:
    Modules are NOT auto-imported; import explicitly when needed:
        from benutzerverwaltung.core.provisioning_service import run_provisioning
        from benutzerverwaltung.core.table_decoder import decode
"""
