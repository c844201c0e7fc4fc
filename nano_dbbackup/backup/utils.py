"""Utility functions for backup operations."""

import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import unquote, urlsplit

from .models import TimeoutBudget

BYTES_PER_MB = 1024 * 1024
MB_PER_EXTRA_MINUTE = 100
ARTIFACT_SUFFIX = ".dump"

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def compute_timeout_budget(
    size_bytes: int,
    min_minutes: int = 20,
    max_minutes: int = 45,
) -> TimeoutBudget:
    """Derive the per-stage timeout from the estimated database size.

    One extra minute per 100 MB on top of the base, clamped to
    [min_minutes, max_minutes].

    Args:
        size_bytes: Estimated database size in bytes
        min_minutes: Lower bound (and base) of the budget
        max_minutes: Upper bound of the budget

    Returns:
        TimeoutBudget in whole minutes
    """
    size_mb = max(size_bytes, 0) / BYTES_PER_MB
    minutes = min_minutes + int(size_mb // MB_PER_EXTRA_MINUTE)
    return TimeoutBudget(minutes=min(max_minutes, max(min_minutes, minutes)))


def sanitize_name(name: str) -> str:
    """Collapse path separators and unsafe characters into dashes."""
    cleaned = _UNSAFE_NAME_CHARS.sub("-", name.strip())
    return cleaned.strip("-.") or "backup"


def generate_backup_name(connection_url: str) -> str:
    """Derive a stable backup name from a connection string.

    Uses host and database name, e.g. ``db.example.com-orders``. The same
    connection string always yields the same name.
    """
    try:
        parts = urlsplit(connection_url)
        host = parts.hostname or "localhost"
        database = unquote(parts.path.lstrip("/")) or parts.username or "postgres"
    except ValueError:
        return "postgres-backup"
    return sanitize_name(f"{host}-{database}").lower()


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC timestamp in ``YYYYMMDDTHHMMSS`` form."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y%m%dT%H%M%S")


def build_artifact_name(backup_name: str, moment: Optional[datetime] = None) -> str:
    """Artifact filename: ``backup-<timestamp>-<sanitized-name>.dump``."""
    clean = sanitize_name(backup_name)
    if not clean.endswith(ARTIFACT_SUFFIX):
        clean = f"{clean}{ARTIFACT_SUFFIX}"
    return f"backup-{format_timestamp(moment)}-{clean}"
