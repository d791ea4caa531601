"""Insert-only audit trail for commissioner actions.

No update or delete operations exist for the audit_logs collection.
"""

import logging
from typing import Optional

from fastapi import Request

import app.database as _db
from app.models.audit import AuditLog
from app.utils import utcnow

logger = logging.getLogger("parlay.audit")


def _truncate_ip(ip: str) -> str:
    """Anonymize an IP address by replacing the last segment.

    IPv4: 192.168.1.42  -> 192.168.1.xxx
    IPv6: 2001:db8::1   -> 2001:db8::xxx
    """
    if not ip:
        return ""

    if "." in ip:
        parts = ip.split(".")
        if len(parts) == 4:
            parts[-1] = "xxx"
            return ".".join(parts)
        return ip

    if ":" in ip:
        head, _, _ = ip.rpartition(":")
        return f"{head}:xxx" if head else ip

    return ip


def _get_client_ip(request: Optional[Request]) -> str:
    """Client IP, preferring X-Forwarded-For when behind a proxy."""
    if request is None:
        return ""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return ""


async def log_audit(
    *,
    actor_id: str,
    target_id: str,
    action: str,
    metadata: Optional[dict] = None,
    request: Optional[Request] = None,
) -> None:
    """Write one audit record.

    Args:
        actor_id: Commissioner user_id, or "SYSTEM".
        target_id: Leg id, week id or user id.
        action: e.g. "LEG_STATUS_CHANGED", "LEG_BATCH_STATUS", "WEEK_STATUS_CHANGED".
        metadata: from/to values and any notes.
        request: Optional request for IP extraction.
    """
    entry = AuditLog(
        timestamp=utcnow(),
        actor_id=actor_id,
        target_id=target_id,
        action=action,
        metadata=metadata or {},
        ip_truncated=_truncate_ip(_get_client_ip(request)),
    )

    try:
        await _db.db.audit_logs.insert_one(entry.model_dump())
    except Exception:
        # The action itself already succeeded; a lost audit line must not fail it
        logger.exception("Failed to write audit log: action=%s actor=%s", action, actor_id)
