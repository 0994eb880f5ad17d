"""Audit logging utilities for provisioning operations."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_NAME = "provisioning-events.jsonl"

EventType = Literal[
    "user_create", "user_update", "user_delete",
    "role_create", "role_assign",
    "backend_failure",
]


def _get_signing_key() -> bytes:
    """Get the audit signing key from a key file or the environment."""
    key_file = os.environ.get("AUDIT_LOG_SIGNING_KEY_FILE")
    if key_file:
        try:
            return Path(key_file).read_text(encoding="utf-8").strip().encode("utf-8")
        except OSError:
            logger.warning("[audit] Signing key file %s unreadable", key_file)
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


def _log_file(log_dir: Optional[Path]) -> Path:
    return Path(log_dir or AUDIT_LOG_DIR) / AUDIT_LOG_NAME


def _ensure_audit_dir(log_dir: Path) -> None:
    """Create audit directory with restricted permissions."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_dir.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_provisioning_event(
    event_type: EventType,
    identifier: str,
    *,
    backend: str,
    operator: str = "automation",
    details: dict[str, Any] | None = None,
    success: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """Append a provisioning event to the audit trail with timestamp and signature.

    Args:
        event_type: Type of operation (user_create, role_assign, ...)
        identifier: Canonical user identifier or role name affected
        backend: Backend the operation ran against
        operator: Who performed the operation
        details: Additional context
        success: Whether the operation succeeded
        log_dir: Directory overriding AUDIT_LOG_DIR
    """
    directory = Path(log_dir or AUDIT_LOG_DIR)
    _ensure_audit_dir(directory)
    log_file = _log_file(directory)

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "backend": backend,
        "identifier": identifier,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    # One JSON object per line
    with log_file.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    log_file.chmod(0o600)


def safe_log_provisioning_event(event_type: EventType, identifier: str, **kwargs: Any) -> bool:
    """Log a provisioning event, never raising.

    Audit failures must not abort a provisioning run, so errors are reported
    through the logger instead.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_provisioning_event(event_type, identifier, **kwargs)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning("[audit] Failed to log %s event for %s: %s", event_type, identifier, e)
        return False


def verify_audit_log(log_dir: Optional[Path] = None) -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    log_file = _log_file(log_dir)
    if not log_file.exists():
        return 0, 0

    total = 0
    valid = 0

    with log_file.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            stored_sig = event.pop("signature", "")
            if stored_sig and hmac.compare_digest(stored_sig, _sign_event(event)):
                valid += 1

    return total, valid


if __name__ == "__main__":
    import sys
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
