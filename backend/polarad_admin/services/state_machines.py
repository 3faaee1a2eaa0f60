"""Status lifecycles: pure logic, no DB dependency.

One explicit transition table per entity. Services call
``validate_transition`` before writing a new status; the UI uses
``get_allowed_transitions`` to render the available buttons.
"""

from enum import StrEnum


class EntityType(StrEnum):
    SUBMISSION = "submission"
    WORKFLOW = "workflow"
    DESIGN = "design"
    CONTRACT = "contract"
    THREAD = "thread"


class SubmissionStatus(StrEnum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class WorkflowStatus(StrEnum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    DESIGN_UPLOADED = "DESIGN_UPLOADED"
    ORDER_REQUESTED = "ORDER_REQUESTED"
    ORDER_APPROVED = "ORDER_APPROVED"
    COMPLETED = "COMPLETED"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"


class WorkflowType(StrEnum):
    NAMECARD = "NAMECARD"
    NAMETAG = "NAMETAG"
    CONTRACT = "CONTRACT"
    ENVELOPE = "ENVELOPE"
    WEBSITE = "WEBSITE"
    BLOG = "BLOG"
    META_ADS = "META_ADS"
    NAVER_ADS = "NAVER_ADS"


class DesignStatus(StrEnum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    APPROVED = "APPROVED"


class ContractStatus(StrEnum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class ThreadStatus(StrEnum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"


# Deliverables created for every approved submission
DEFAULT_WORKFLOW_TYPES: tuple[WorkflowType, ...] = (
    WorkflowType.NAMECARD,
    WorkflowType.NAMETAG,
    WorkflowType.CONTRACT,
    WorkflowType.ENVELOPE,
    WorkflowType.WEBSITE,
)


class InvalidTransitionError(Exception):
    """Raised when a status change is not an edge of the entity's table."""

    def __init__(self, entity: str, current: str | None, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Invalid {entity} transition: {current} -> {target}")


SUBMISSION_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.DRAFT: frozenset({SubmissionStatus.SUBMITTED}),
    SubmissionStatus.SUBMITTED: frozenset({
        SubmissionStatus.IN_REVIEW,
        SubmissionStatus.APPROVED,
        SubmissionStatus.REJECTED,
    }),
    SubmissionStatus.IN_REVIEW: frozenset({
        SubmissionStatus.APPROVED,
        SubmissionStatus.REJECTED,
    }),
    SubmissionStatus.APPROVED: frozenset(),
    SubmissionStatus.REJECTED: frozenset(),
}

# Production order; admins may step forward or back one stage.
WORKFLOW_SEQUENCE: tuple[WorkflowStatus, ...] = (
    WorkflowStatus.PENDING,
    WorkflowStatus.SUBMITTED,
    WorkflowStatus.IN_PROGRESS,
    WorkflowStatus.DESIGN_UPLOADED,
    WorkflowStatus.ORDER_REQUESTED,
    WorkflowStatus.ORDER_APPROVED,
    WorkflowStatus.COMPLETED,
    WorkflowStatus.SHIPPED,
)


def _build_workflow_transitions() -> dict[WorkflowStatus, frozenset[WorkflowStatus]]:
    table: dict[WorkflowStatus, frozenset[WorkflowStatus]] = {}
    last = len(WORKFLOW_SEQUENCE) - 1
    for i, current in enumerate(WORKFLOW_SEQUENCE):
        if i == last:
            table[current] = frozenset()
            continue
        allowed = {WORKFLOW_SEQUENCE[i + 1], WorkflowStatus.CANCELLED}
        if i > 0:
            allowed.add(WORKFLOW_SEQUENCE[i - 1])
        table[current] = frozenset(allowed)
    table[WorkflowStatus.CANCELLED] = frozenset()
    return table


WORKFLOW_TRANSITIONS = _build_workflow_transitions()

DESIGN_TRANSITIONS: dict[DesignStatus, frozenset[DesignStatus]] = {
    DesignStatus.DRAFT: frozenset({
        DesignStatus.PENDING_REVIEW,
        DesignStatus.APPROVED,
    }),
    DesignStatus.PENDING_REVIEW: frozenset({
        DesignStatus.REVISION_REQUESTED,
        DesignStatus.APPROVED,
        DesignStatus.DRAFT,
    }),
    DesignStatus.REVISION_REQUESTED: frozenset({
        DesignStatus.PENDING_REVIEW,
        DesignStatus.APPROVED,
        DesignStatus.DRAFT,
    }),
    DesignStatus.APPROVED: frozenset(),
}

CONTRACT_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.PENDING: frozenset({ContractStatus.SUBMITTED, ContractStatus.CANCELLED}),
    ContractStatus.SUBMITTED: frozenset({ContractStatus.APPROVED, ContractStatus.REJECTED}),
    ContractStatus.APPROVED: frozenset({ContractStatus.ACTIVE, ContractStatus.CANCELLED}),
    ContractStatus.ACTIVE: frozenset({ContractStatus.EXPIRED, ContractStatus.CANCELLED}),
    ContractStatus.REJECTED: frozenset(),
    ContractStatus.EXPIRED: frozenset(),
    ContractStatus.CANCELLED: frozenset(),
}

THREAD_TRANSITIONS: dict[ThreadStatus, frozenset[ThreadStatus]] = {
    ThreadStatus.OPEN: frozenset({ThreadStatus.IN_PROGRESS, ThreadStatus.RESOLVED}),
    ThreadStatus.IN_PROGRESS: frozenset({ThreadStatus.OPEN, ThreadStatus.RESOLVED}),
    ThreadStatus.RESOLVED: frozenset({ThreadStatus.OPEN}),
}

_TABLES: dict[EntityType, tuple[type[StrEnum], dict]] = {
    EntityType.SUBMISSION: (SubmissionStatus, SUBMISSION_TRANSITIONS),
    EntityType.WORKFLOW: (WorkflowStatus, WORKFLOW_TRANSITIONS),
    EntityType.DESIGN: (DesignStatus, DESIGN_TRANSITIONS),
    EntityType.CONTRACT: (ContractStatus, CONTRACT_TRANSITIONS),
    EntityType.THREAD: (ThreadStatus, THREAD_TRANSITIONS),
}


def is_terminal(entity: str, current: str) -> bool:
    enum_cls, table = _TABLES[EntityType(entity)]
    try:
        return not table[enum_cls(current)]
    except ValueError:
        return False


def validate_transition(entity: str, current: str, target: str) -> StrEnum:
    """Validate and return the target status for a transition.

    Raises InvalidTransitionError if ``target`` is not reachable from
    ``current`` in one step, or either value is not a known status.
    """
    enum_cls, table = _TABLES[EntityType(entity)]
    try:
        current_status = enum_cls(current)
        target_status = enum_cls(target)
    except ValueError:
        raise InvalidTransitionError(entity, current, target)

    if target_status not in table[current_status]:
        raise InvalidTransitionError(entity, current, target)
    return target_status


def get_allowed_transitions(entity: str, current: str) -> list[str]:
    """Return the statuses reachable from ``current`` in table order."""
    enum_cls, table = _TABLES[EntityType(entity)]
    try:
        current_status = enum_cls(current)
    except ValueError:
        return []
    allowed = table[current_status]
    return [s.value for s in enum_cls if s in allowed]
