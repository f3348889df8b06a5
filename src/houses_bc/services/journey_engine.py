"""Journey progress engine: milestone unlock chain and progress summaries.

A milestone's displayed status is either taken from the stored record
(``completed`` / ``in_progress`` are authoritative) or derived from the
unlock chain (the previous milestone must be ``completed``). Everything in
this module is pure; callers re-evaluate it on every request.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from houses_bc.domain.enums import (
    MilestoneId,
    MilestoneStatus,
    ResolvedStatus,
    StatusSource,
)

MILESTONE_ORDER: list[str] = [m.value for m in MilestoneId]

# Stored statuses that are never overridden by the unlock chain
AUTHORITATIVE_STATUSES = {
    MilestoneStatus.COMPLETED.value,
    MilestoneStatus.IN_PROGRESS.value,
}


@dataclass(frozen=True)
class ResolvedMilestone:
    """Resolved status tagged with where it came from."""

    status: ResolvedStatus
    source: StatusSource

    @classmethod
    def stored(cls, status: str) -> "ResolvedMilestone":
        return cls(status=ResolvedStatus(status), source=StatusSource.STORED)

    @classmethod
    def derived(cls, status: ResolvedStatus) -> "ResolvedMilestone":
        return cls(status=status, source=StatusSource.DERIVED)


def _milestone_map(progress: Any) -> Optional[Mapping[str, Any]]:
    """Accept a UserProgress row, a plain milestone dict, or None."""
    if progress is None:
        return None
    if isinstance(progress, Mapping):
        return progress.get("milestones", progress)
    return getattr(progress, "milestones", None) or {}


def stored_status(milestones: Mapping[str, Any], milestone_id: str) -> str:
    """Stored status for a milestone; an absent entry counts as ``pending``."""
    entry = milestones.get(milestone_id) or {}
    return entry.get("status") or MilestoneStatus.PENDING.value


def resolve_milestone(
    progress: Any,
    milestone_id: str,
    ordered_ids: Sequence[str] = MILESTONE_ORDER,
) -> ResolvedMilestone:
    """Resolve one milestone against the unlock chain.

    Raises:
        ValueError: if ``milestone_id`` is not in ``ordered_ids``.
    """
    if milestone_id not in ordered_ids:
        raise ValueError(f"Unknown milestone id: {milestone_id}")

    index = list(ordered_ids).index(milestone_id)
    milestones = _milestone_map(progress)

    if milestones is None:
        if index == 0:
            return ResolvedMilestone.derived(ResolvedStatus.AVAILABLE)
        return ResolvedMilestone.derived(ResolvedStatus.LOCKED)

    current = stored_status(milestones, milestone_id)
    if current in AUTHORITATIVE_STATUSES:
        return ResolvedMilestone.stored(current)

    if index == 0:
        return ResolvedMilestone.derived(ResolvedStatus.AVAILABLE)

    previous = stored_status(milestones, ordered_ids[index - 1])
    if previous == MilestoneStatus.COMPLETED.value:
        return ResolvedMilestone.derived(ResolvedStatus.AVAILABLE)
    return ResolvedMilestone.derived(ResolvedStatus.LOCKED)


def resolve_milestone_status(
    progress: Any,
    milestone_id: str,
    ordered_ids: Sequence[str] = MILESTONE_ORDER,
) -> ResolvedStatus:
    return resolve_milestone(progress, milestone_id, ordered_ids).status


def resolve_all(
    progress: Any, ordered_ids: Sequence[str] = MILESTONE_ORDER
) -> dict[str, str]:
    """Resolved status for every milestone, keyed by id."""
    return {
        milestone_id: resolve_milestone_status(progress, milestone_id, ordered_ids).value
        for milestone_id in ordered_ids
    }


def initial_milestones(ordered_ids: Sequence[str] = MILESTONE_ORDER) -> dict[str, dict]:
    """Milestone map for a brand-new client: first available, rest pending."""
    milestones = {}
    for index, milestone_id in enumerate(ordered_ids):
        status = MilestoneStatus.AVAILABLE if index == 0 else MilestoneStatus.PENDING
        milestones[milestone_id] = {"status": status.value, "data": {}}
    return milestones


def apply_milestone_update(
    milestones: Mapping[str, Any],
    milestone_id: str,
    status: str,
    data: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> dict[str, dict]:
    """Return a new milestone map with one entry upserted.

    ``data`` is merged over the existing entry data. ``completedAt`` is
    stamped when the status becomes ``completed``.
    """
    if milestone_id not in MILESTONE_ORDER:
        raise ValueError(f"Unknown milestone id: {milestone_id}")
    status = MilestoneStatus(status).value

    updated = {key: dict(value or {}) for key, value in milestones.items()}
    entry = updated.get(milestone_id, {})
    merged_data = dict(entry.get("data") or {})
    merged_data.update(data or {})

    entry["status"] = status
    entry["data"] = merged_data
    if status == MilestoneStatus.COMPLETED.value:
        entry["completedAt"] = (now or datetime.now(timezone.utc)).isoformat()
    updated[milestone_id] = entry
    return updated


def calculate_overall_progress(milestones: Mapping[str, Any]) -> float:
    """Percentage of the 8 milestones whose stored status is completed."""
    completed = sum(
        1
        for milestone_id in MILESTONE_ORDER
        if stored_status(milestones, milestone_id) == MilestoneStatus.COMPLETED.value
    )
    return round(completed / len(MILESTONE_ORDER) * 100, 2)


def progress_stats(progress: Any) -> dict:
    """Counts by stored status plus the next milestone the client can act on."""
    milestones = _milestone_map(progress) or {}
    counts = {"completed": 0, "inProgress": 0, "pending": 0}
    for milestone_id in MILESTONE_ORDER:
        current = stored_status(milestones, milestone_id)
        if current == MilestoneStatus.COMPLETED.value:
            counts["completed"] += 1
        elif current == MilestoneStatus.IN_PROGRESS.value:
            counts["inProgress"] += 1
        else:
            counts["pending"] += 1

    next_milestone = None
    for milestone_id in MILESTONE_ORDER:
        if resolve_milestone_status(progress, milestone_id) == ResolvedStatus.AVAILABLE:
            next_milestone = milestone_id
            break

    return {
        "totalMilestones": len(MILESTONE_ORDER),
        "completedMilestones": counts["completed"],
        "inProgressMilestones": counts["inProgress"],
        "pendingMilestones": counts["pending"],
        "overallProgress": calculate_overall_progress(milestones),
        "nextMilestone": next_milestone,
    }
