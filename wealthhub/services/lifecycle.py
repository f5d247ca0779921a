"""
Status lifecycles for KYC submissions, deposits and withdrawals.

Admins move records between statuses; this module declares which moves are
legal so a record cannot jump from 'pending' straight to 'completed' or go
back to an earlier status after a decision.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping

from wealthhub.utils.constants import DEPOSITS, KYC_DOCUMENTS, WITHDRAWALS

logger = logging.getLogger(__name__)


class InvalidTransition(ValueError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, kind: str, current: str, target: str):
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(f"Cannot change {kind} status from '{current}' to '{target}'")


class ConcurrentModification(Exception):
    """Raised when a record changed status between read and conditional update."""

    def __init__(self, kind: str, record_id: str, expected_status: str):
        self.kind = kind
        self.record_id = record_id
        self.expected_status = expected_status
        super().__init__(
            f"{kind} {record_id} is no longer '{expected_status}'; "
            "it was modified by another request"
        )


DEPOSIT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"under_review", "approved", "rejected"}),
    "under_review": frozenset({"approved", "rejected"}),
    "approved": frozenset({"completed"}),
    "rejected": frozenset(),
    "completed": frozenset(),
}

WITHDRAWAL_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"approved", "rejected"}),
    "approved": frozenset({"processing", "rejected"}),
    "processing": frozenset({"completed", "failed"}),
    "rejected": frozenset(),
    "completed": frozenset(),
    "failed": frozenset(),
}

KYC_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"under_review", "approved", "rejected"}),
    "under_review": frozenset({"approved", "rejected"}),
    # Owner resubmits corrected documents
    "rejected": frozenset({"pending"}),
    "approved": frozenset(),
}

TRANSITIONS: Dict[str, Mapping[str, FrozenSet[str]]] = {
    DEPOSITS: DEPOSIT_TRANSITIONS,
    WITHDRAWALS: WITHDRAWAL_TRANSITIONS,
    KYC_DOCUMENTS: KYC_TRANSITIONS,
}

# Statuses that represent an admin decision and carry reviewed_by/reviewed_at
DECISION_STATUSES: FrozenSet[str] = frozenset(
    {"under_review", "approved", "rejected", "processing", "completed", "failed"}
)

# Statuses that require a rejection_reason
REJECTION_STATUSES: FrozenSet[str] = frozenset({"rejected", "failed"})


def allowed_targets(kind: str, current: str) -> FrozenSet[str]:
    try:
        table = TRANSITIONS[kind]
    except KeyError:
        raise ValueError(f"No lifecycle defined for '{kind}'")
    return table.get(current, frozenset())


def can_transition(kind: str, current: str, target: str) -> bool:
    return target in allowed_targets(kind, current)


def ensure_transition(kind: str, current: str, target: str) -> None:
    """
    Raise InvalidTransition unless `current -> target` is a legal move.
    """
    if not can_transition(kind, current, target):
        logger.warning(f"Rejected {kind} transition {current} -> {target}")
        raise InvalidTransition(kind, current, target)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_decision_update(
    kind: str,
    target: str,
    reviewer_id: str,
    admin_notes: Any = None,
    rejection_reason: Any = None,
) -> Dict[str, Any]:
    """
    Build the column updates for an admin status decision.

    Stamps reviewer and timestamps; withdrawals also get approved_at and
    completed_at when they reach those statuses.
    """
    if target in REJECTION_STATUSES and not rejection_reason:
        raise ValueError(f"A rejection_reason is required when setting status '{target}'")

    now = utc_now_iso()
    update: Dict[str, Any] = {"status": target, "updated_at": now}

    if target in DECISION_STATUSES:
        update["reviewed_by"] = reviewer_id
        update["reviewed_at"] = now

    if admin_notes is not None:
        update["admin_notes"] = admin_notes
    if rejection_reason is not None:
        update["rejection_reason"] = rejection_reason

    if kind == WITHDRAWALS:
        if target == "approved":
            update["approved_at"] = now
        elif target == "completed":
            update["completed_at"] = now

    return update


def apply_conditional_update(
    supabase_client: Any,
    kind: str,
    record_id: str,
    expected_status: str,
    update: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Update a record only if it still has `expected_status`.

    Two admins acting on the same pending record race on this filter; the
    loser updates zero rows and gets ConcurrentModification.
    """
    result = (
        supabase_client.table(kind)
        .update(update)
        .eq("id", record_id)
        .eq("status", expected_status)
        .execute()
    )

    if not result.data:
        raise ConcurrentModification(kind, record_id, expected_status)

    return dict(result.data[0])
