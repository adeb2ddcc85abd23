"""Job-application lifecycle — the whole transition table in one place.

Learn: The state machine is data, not scattered if-statements:

    (none)                        --submit-------------> pending      candidate
    pending | reviewing           --mark_reviewed------> reviewing    admin
    reviewing                     --schedule_interview-> interview    admin
    pending | reviewing | interview --reject-----------> rejected     admin
    interview                     --accept-------------> accepted     admin
    pending | reviewing           --withdraw-----------> (deleted)    candidate, owner only

accepted and rejected are terminal. decide() is a pure function of
(current status, event, caller role, ownership) so every row of the table
is testable without a database; the service layer only persists what
decide() allows.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from talentflow.auth.roles import Role
from talentflow.errors import Forbidden, InvalidTransition


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    INTERVIEW = "interview"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


class ApplicationEvent(str, Enum):
    SUBMIT = "submit"
    MARK_REVIEWED = "mark_reviewed"
    SCHEDULE_INTERVIEW = "schedule_interview"
    REJECT = "reject"
    ACCEPT = "accept"
    WITHDRAW = "withdraw"


TERMINAL_STATES = frozenset({ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED})


@dataclass(frozen=True)
class TransitionRule:
    sources: frozenset[Optional[ApplicationStatus]]
    role: Role
    target: Optional[ApplicationStatus]  # None = record is deleted
    owner_only: bool = False


TRANSITIONS: dict[ApplicationEvent, TransitionRule] = {
    ApplicationEvent.SUBMIT: TransitionRule(
        sources=frozenset({None}),
        role=Role.CANDIDATE,
        target=ApplicationStatus.PENDING,
    ),
    ApplicationEvent.MARK_REVIEWED: TransitionRule(
        sources=frozenset({ApplicationStatus.PENDING, ApplicationStatus.REVIEWING}),
        role=Role.ADMIN,
        target=ApplicationStatus.REVIEWING,
    ),
    ApplicationEvent.SCHEDULE_INTERVIEW: TransitionRule(
        sources=frozenset({ApplicationStatus.REVIEWING}),
        role=Role.ADMIN,
        target=ApplicationStatus.INTERVIEW,
    ),
    ApplicationEvent.REJECT: TransitionRule(
        sources=frozenset({
            ApplicationStatus.PENDING,
            ApplicationStatus.REVIEWING,
            ApplicationStatus.INTERVIEW,
        }),
        role=Role.ADMIN,
        target=ApplicationStatus.REJECTED,
    ),
    ApplicationEvent.ACCEPT: TransitionRule(
        sources=frozenset({ApplicationStatus.INTERVIEW}),
        role=Role.ADMIN,
        target=ApplicationStatus.ACCEPTED,
    ),
    ApplicationEvent.WITHDRAW: TransitionRule(
        sources=frozenset({ApplicationStatus.PENDING, ApplicationStatus.REVIEWING}),
        role=Role.CANDIDATE,
        target=None,
        owner_only=True,
    ),
}


def decide(
    current: Optional[ApplicationStatus | str],
    event: ApplicationEvent,
    role: Role | str,
    is_owner: bool = False,
) -> Optional[ApplicationStatus]:
    """Return the status an event leads to, or raise.

    Checks run role → ownership → state, failing on the first rejection:
    Forbidden if the caller's role (or ownership) doesn't allow the event,
    InvalidTransition if the current status isn't a legal source.
    A None result means the event deletes the record.
    """
    rule = TRANSITIONS[event]
    if Role(role) != rule.role:
        raise Forbidden(f"Role '{Role(role).value}' may not {event.value.replace('_', ' ')}")
    if rule.owner_only and not is_owner:
        raise Forbidden("Only the owner of this application may do that")

    status = ApplicationStatus(current) if current is not None else None
    if status not in rule.sources:
        raise InvalidTransition(status.value if status else None, event.value)
    return rule.target


def allows(event: ApplicationEvent, current: ApplicationStatus | str) -> bool:
    """True if `event` is legal from `current`, ignoring who is asking."""
    return ApplicationStatus(current) in TRANSITIONS[event].sources


def can_be_reviewed(status: ApplicationStatus | str) -> bool:
    return allows(ApplicationEvent.MARK_REVIEWED, status)


def can_schedule_interview(status: ApplicationStatus | str) -> bool:
    return allows(ApplicationEvent.SCHEDULE_INTERVIEW, status)


def can_be_rejected(status: ApplicationStatus | str) -> bool:
    return allows(ApplicationEvent.REJECT, status)


def can_be_accepted(status: ApplicationStatus | str) -> bool:
    return allows(ApplicationEvent.ACCEPT, status)


def can_be_withdrawn(status: ApplicationStatus | str) -> bool:
    return allows(ApplicationEvent.WITHDRAW, status)
