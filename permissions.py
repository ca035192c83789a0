"""
Who may see, answer, accept and move a help request.

Every predicate branches over every Role member. A value outside the
enum is a programming error and raises instead of silently denying.
"""

from dataclasses import dataclass

from models import HelpRequest, RequestStatus, Role

ALLOWED_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.CANCELLED}),
    RequestStatus.ASSIGNED: frozenset(
        {RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED}
    ),
    RequestStatus.IN_PROGRESS: frozenset(
        {RequestStatus.COMPLETED, RequestStatus.CANCELLED}
    ),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class Identity:
    """The signed-in caller, passed explicitly into every lifecycle call."""

    user_id: str
    email: str
    role: Role


def _unknown_role(role) -> None:
    raise ValueError(f"Unknown role: {role!r}")


def is_helper(role: Role) -> bool:
    if role == Role.NGO or role == Role.DONOR:
        return True
    if role == Role.FARMER or role == Role.ADMIN:
        return False
    _unknown_role(role)


def can_view(request: HelpRequest, identity: Identity) -> bool:
    role = identity.role
    if role == Role.FARMER:
        return request.farmer_id == identity.user_id
    if role == Role.NGO or role == Role.DONOR:
        return True
    if role == Role.ADMIN:
        return True
    _unknown_role(role)


def can_respond(request: HelpRequest, identity: Identity) -> bool:
    return is_helper(identity.role) and request.status == RequestStatus.PENDING


def can_accept(request: HelpRequest, identity: Identity) -> bool:
    return (
        request.farmer_id == identity.user_id
        and request.status == RequestStatus.PENDING
    )


def can_edit(request: HelpRequest, identity: Identity) -> bool:
    return can_accept(request, identity)


def can_advance(request: HelpRequest, identity: Identity) -> bool:
    return identity.user_id in (request.farmer_id, request.assigned_to)


def allowed_transition(current: RequestStatus, new: RequestStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]
