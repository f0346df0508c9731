from __future__ import annotations

from typing import Iterable


# Canonical booking statuses.
PENDING = "pending"
ACCEPTED = "accepted"
CONFIRMED = "confirmed"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no-show"


ALL_STATUSES: tuple[str, ...] = (
    PENDING,
    ACCEPTED,
    CONFIRMED,
    IN_PROGRESS,
    COMPLETED,
    CANCELLED,
    NO_SHOW,
)


TERMINAL_STATUSES: frozenset[str] = frozenset({COMPLETED, CANCELLED, NO_SHOW})

# Statuses that hold an interviewer's time and take part in overlap checks.
ACTIVE_STATUSES: frozenset[str] = frozenset({PENDING, ACCEPTED, CONFIRMED})

# Targets only the interviewer on the booking may move it to.
INTERVIEWER_ONLY_TARGETS: frozenset[str] = frozenset({ACCEPTED, CONFIRMED})

BOOKING_TYPE_AI = "ai"
BOOKING_TYPE_LIVE = "live"
BOOKING_TYPES: tuple[str, ...] = (BOOKING_TYPE_AI, BOOKING_TYPE_LIVE)


_ALIASES = {
    "in_progress": IN_PROGRESS,
    "inprogress": IN_PROGRESS,
    "no_show": NO_SHOW,
    "noshow": NO_SHOW,
    "canceled": CANCELLED,
}


STATUS_GRAPH: dict[str, frozenset[str]] = {
    PENDING: frozenset({ACCEPTED, CANCELLED}),
    ACCEPTED: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({IN_PROGRESS, CANCELLED, NO_SHOW}),
    IN_PROGRESS: frozenset({COMPLETED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
    NO_SHOW: frozenset(),
}


def normalize_status(raw: str | None) -> str | None:
    if raw is None:
        return None
    normalized = raw.strip().lower().replace(" ", "-")
    if not normalized:
        return None
    return _ALIASES.get(normalized, normalized)


def is_known_status(value: str | None) -> bool:
    return normalize_status(value) in STATUS_GRAPH


def is_terminal_status(value: str | None) -> bool:
    return normalize_status(value) in TERMINAL_STATUSES


def is_active_status(value: str | None) -> bool:
    return normalize_status(value) in ACTIVE_STATUSES


def initial_status(booking_type: str) -> str:
    # AI sessions have no interviewer to accept them.
    return CONFIRMED if booking_type == BOOKING_TYPE_AI else PENDING


def allowed_next_statuses(value: str | None) -> frozenset[str]:
    normalized = normalize_status(value)
    if normalized is None:
        return frozenset()
    return STATUS_GRAPH.get(normalized, frozenset())


def can_transition(from_status: str | None, to_status: str | None) -> bool:
    from_normalized = normalize_status(from_status)
    to_normalized = normalize_status(to_status)

    if to_normalized is None or to_normalized not in STATUS_GRAPH:
        return False
    if from_normalized is None or from_normalized not in STATUS_GRAPH:
        return False
    if from_normalized == to_normalized:
        return False
    return to_normalized in STATUS_GRAPH[from_normalized]


def requires_interviewer(to_status: str | None) -> bool:
    return normalize_status(to_status) in INTERVIEWER_ONLY_TARGETS


def path_is_valid(path: Iterable[str]) -> bool:
    items = [normalize_status(item) for item in path]
    if len(items) < 2:
        return False
    for index in range(len(items) - 1):
        if not can_transition(items[index], items[index + 1]):
            return False
    return True
