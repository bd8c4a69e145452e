"""Status transition tables for invitations and feature requests.

Every status change goes through one of the ``check_*`` functions below
rather than ad-hoc comparisons at the call sites.
"""
from filmnight.models.invitation import InvitationStatus
from filmnight.models.feature_request import FeatureRequestStatus
from filmnight.services.exceptions import ValidationError

_RESPONSES = frozenset({InvitationStatus.ACCEPTED, InvitationStatus.DECLINED, InvitationStatus.MAYBE})

# Guests may change their mind freely; PENDING is only ever the initial state.
INVITATION_TRANSITIONS: dict[InvitationStatus, frozenset[InvitationStatus]] = {
    InvitationStatus.PENDING: _RESPONSES,
    InvitationStatus.ACCEPTED: _RESPONSES,
    InvitationStatus.DECLINED: _RESPONSES,
    InvitationStatus.MAYBE: _RESPONSES,
}

FEATURE_REQUEST_TRANSITIONS: dict[FeatureRequestStatus, frozenset[FeatureRequestStatus]] = {
    FeatureRequestStatus.PENDING: frozenset({FeatureRequestStatus.APPROVED, FeatureRequestStatus.REJECTED}),
    FeatureRequestStatus.APPROVED: frozenset({FeatureRequestStatus.ARCHIVED}),
    FeatureRequestStatus.REJECTED: frozenset({FeatureRequestStatus.ARCHIVED}),
    FeatureRequestStatus.ARCHIVED: frozenset(),
}


def parse_invitation_status(value) -> InvitationStatus:
    try:
        return InvitationStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid RSVP status: {value}", field="status")


def parse_feature_request_status(value) -> FeatureRequestStatus:
    try:
        return FeatureRequestStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid feature request status: {value}", field="status")


def check_invitation_transition(current: InvitationStatus, target: InvitationStatus) -> None:
    if target not in INVITATION_TRANSITIONS[current]:
        raise ValidationError(
            f"invalid status transition: {current.value} -> {target.value}", field="status"
        )


def check_feature_request_transition(current: FeatureRequestStatus, target: FeatureRequestStatus) -> None:
    if target not in FEATURE_REQUEST_TRANSITIONS[current]:
        raise ValidationError(
            f"invalid status transition: {current.value} -> {target.value}", field="status"
        )
