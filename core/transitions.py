"""Allowed status transitions for jobs and applications."""

from enum import Enum

from core.exceptions import InvalidTransitionError
from database.models.applications import ApplicationStatus
from database.models.jobs import JobStatus


APPLICATION_STATUS_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.NEW: frozenset(
        {ApplicationStatus.SCREENING, ApplicationStatus.INTERVIEW, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.SCREENING: frozenset(
        {ApplicationStatus.INTERVIEW, ApplicationStatus.OFFER, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.INTERVIEW: frozenset({ApplicationStatus.OFFER, ApplicationStatus.REJECTED}),
    ApplicationStatus.OFFER: frozenset({ApplicationStatus.HIRED, ApplicationStatus.REJECTED}),
    ApplicationStatus.HIRED: frozenset(),
    ApplicationStatus.REJECTED: frozenset({ApplicationStatus.NEW}),
}

JOB_STATUS_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.DRAFT: frozenset({JobStatus.OPEN, JobStatus.ARCHIVED}),
    JobStatus.OPEN: frozenset({JobStatus.CLOSED, JobStatus.ARCHIVED}),
    JobStatus.CLOSED: frozenset({JobStatus.OPEN, JobStatus.ARCHIVED}),
    JobStatus.ARCHIVED: frozenset(),
}


def can_transition(transitions: dict, current: Enum, requested: Enum) -> bool:
    return requested in transitions.get(current, frozenset())


def ensure_transition(transitions: dict, current: Enum, requested: Enum) -> None:
    """
    Raise InvalidTransitionError unless ``current -> requested`` is allowed.

    Setting the status it already has is a no-op and always allowed.
    """
    if current == requested:
        return
    if not can_transition(transitions, current, requested):
        raise InvalidTransitionError(current.value, requested.value)
