"""
Status transition tables for intakes and projects.

The tables are the single source of truth for which status changes are legal.
Services call ``check_*_transition`` against the persisted status before
writing anything.
"""

from clientdesk.core.errors import InvalidTransitionError, ValidationError
from clientdesk.models.enums import IntakeStatus, ProjectStatus

# Transitions reachable through the generic status update. APPROVED and
# REJECTED are set only by the approve/reject operations.
INTAKE_TRANSITIONS: dict[IntakeStatus, frozenset[IntakeStatus]] = {
    IntakeStatus.DRAFT: frozenset({IntakeStatus.SUBMITTED}),
    IntakeStatus.SUBMITTED: frozenset({IntakeStatus.UNDER_REVIEW, IntakeStatus.DRAFT}),
    IntakeStatus.UNDER_REVIEW: frozenset({IntakeStatus.SUBMITTED}),
    IntakeStatus.APPROVED: frozenset(),
    IntakeStatus.REJECTED: frozenset(),
}

# Statuses from which an intake can be approved or rejected
REVIEWABLE_INTAKE_STATUSES = frozenset(
    {IntakeStatus.SUBMITTED, IntakeStatus.UNDER_REVIEW}
)

DECISION_ONLY_INTAKE_STATUSES = frozenset(
    {IntakeStatus.APPROVED, IntakeStatus.REJECTED}
)

PROJECT_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.AWAITING_APPROVAL: frozenset(
        {ProjectStatus.ACTIVE, ProjectStatus.CANCELLED}
    ),
    ProjectStatus.ACTIVE: frozenset(
        {ProjectStatus.PAUSED, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED}
    ),
    ProjectStatus.PAUSED: frozenset({ProjectStatus.ACTIVE, ProjectStatus.CANCELLED}),
    ProjectStatus.COMPLETED: frozenset({ProjectStatus.ARCHIVED}),
    ProjectStatus.CANCELLED: frozenset(),
    ProjectStatus.ARCHIVED: frozenset(),
}


def parse_intake_status(value: str | IntakeStatus) -> IntakeStatus:
    try:
        return IntakeStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown intake status: {value}")


def parse_project_status(value: str | ProjectStatus) -> ProjectStatus:
    try:
        return ProjectStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown project status: {value}")


def check_intake_transition(
    current: str | IntakeStatus, target: str | IntakeStatus
) -> IntakeStatus:
    """
    Validate a generic intake status change.

    Raises:
        InvalidTransitionError: if the change is not in INTAKE_TRANSITIONS, or
            targets APPROVED/REJECTED (only reachable via approve/reject).
    """
    current_status = parse_intake_status(current)
    target_status = parse_intake_status(target)

    if target_status in DECISION_ONLY_INTAKE_STATUSES:
        raise InvalidTransitionError(
            current_status.value,
            target_status.value,
            message=(
                f"Invalid status transition: {current_status.value} -> "
                f"{target_status.value} (use the approve or reject operation)"
            ),
        )

    if target_status not in INTAKE_TRANSITIONS[current_status]:
        raise InvalidTransitionError(current_status.value, target_status.value)
    return target_status


def check_intake_reviewable(
    current: str | IntakeStatus, decision: IntakeStatus
) -> None:
    """Approve/reject is only possible from SUBMITTED or UNDER_REVIEW."""
    current_status = parse_intake_status(current)
    if current_status not in REVIEWABLE_INTAKE_STATUSES:
        raise InvalidTransitionError(current_status.value, decision.value)


def check_project_transition(
    current: str | ProjectStatus, target: str | ProjectStatus
) -> ProjectStatus:
    current_status = parse_project_status(current)
    target_status = parse_project_status(target)
    if target_status not in PROJECT_TRANSITIONS[current_status]:
        raise InvalidTransitionError(current_status.value, target_status.value)
    return target_status
