"""Decide whether cached repository state must be revalidated."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from bundlesupport.modules.bundleinstall.domain.constants import (
    UPDATE_POLICY_ALWAYS,
    UPDATE_POLICY_DAILY,
    UPDATE_POLICY_INTERVAL,
    UPDATE_POLICY_NEVER,
)

log = logging.getLogger(__name__)


def is_update_required(
    policy: Optional[str],
    last_updated: Optional[datetime],
    now: Optional[datetime] = None,
) -> bool:
    """Return True when a check made at ``last_updated`` is stale under ``policy``."""
    if last_updated is None:
        return True
    now = now or datetime.now()
    policy = (policy or UPDATE_POLICY_DAILY).strip().lower()

    if policy == UPDATE_POLICY_ALWAYS:
        return True
    if policy == UPDATE_POLICY_NEVER:
        return False
    if policy.startswith(UPDATE_POLICY_INTERVAL + ":"):
        minutes = _interval_minutes(policy)
        return now - last_updated >= timedelta(minutes=minutes)
    if policy != UPDATE_POLICY_DAILY:
        log.warning("Unknown update policy '%s', assuming '%s'", policy, UPDATE_POLICY_DAILY)
    return last_updated.date() < now.date()


def _interval_minutes(policy: str) -> int:
    _, _, value = policy.partition(":")
    try:
        return max(0, int(value))
    except ValueError:
        log.warning("Invalid update policy interval '%s', using 1440 minutes", policy)
        return 24 * 60
