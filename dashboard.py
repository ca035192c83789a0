"""
Aggregates behind the role dashboards.
"""

from typing import Any, Dict, List

from sqlalchemy import func
from sqlmodel import Session, col, select

from lifecycle import list_requests
from models import HelpRequest, HelpResponse, RequestStatus, Role, Urgency, User
from permissions import Identity, is_helper

URGENT_LIMIT = 5
RECENT_LIMIT = 8
ASSIGNED_LIMIT = 5
FARMER_RECENT_LIMIT = 5


def _count(session: Session, model, *conditions) -> int:
    query = select(func.count()).select_from(model)
    for condition in conditions:
        query = query.where(condition)
    return session.exec(query).one()


def _status_counts(session: Session, *conditions) -> Dict[str, int]:
    return {
        status.value: _count(
            session, HelpRequest, HelpRequest.status == status, *conditions
        )
        for status in RequestStatus
    }


def _with_farmer(session: Session, query, limit: int) -> List[tuple]:
    query = (
        query.join(User, User.id == HelpRequest.farmer_id)
        .order_by(col(HelpRequest.created_at).desc())
        .limit(limit)
    )
    return list(session.exec(query).all())


def farmer_dashboard(session: Session, identity: Identity) -> Dict[str, Any]:
    return {
        "role": identity.role.value,
        "status_counts": _status_counts(
            session, HelpRequest.farmer_id == identity.user_id
        ),
        "recent_requests": list_requests(
            session, identity, limit=FARMER_RECENT_LIMIT
        ),
    }


def helper_dashboard(session: Session, identity: Identity) -> Dict[str, Any]:
    stats = {
        "pending_requests": _count(
            session, HelpRequest, HelpRequest.status == RequestStatus.PENDING
        ),
        "assigned_requests": _count(
            session, HelpRequest, HelpRequest.assigned_to == identity.user_id
        ),
        "completed_requests": _count(
            session,
            HelpRequest,
            HelpRequest.assigned_to == identity.user_id,
            HelpRequest.status == RequestStatus.COMPLETED,
        ),
        "total_responses": _count(
            session, HelpResponse, HelpResponse.helper_id == identity.user_id
        ),
    }

    pending = select(HelpRequest, User).where(
        HelpRequest.status == RequestStatus.PENDING
    )
    urgent = _with_farmer(
        session,
        pending.where(
            col(HelpRequest.urgency).in_([Urgency.HIGH, Urgency.CRITICAL])
        ),
        URGENT_LIMIT,
    )
    recent = _with_farmer(session, pending, RECENT_LIMIT)
    my_assigned = _with_farmer(
        session,
        select(HelpRequest, User)
        .where(
            HelpRequest.assigned_to == identity.user_id,
            col(HelpRequest.status).in_(
                [RequestStatus.ASSIGNED, RequestStatus.IN_PROGRESS]
            ),
        ),
        ASSIGNED_LIMIT,
    )

    return {
        "role": identity.role.value,
        "stats": stats,
        "urgent_requests": urgent,
        "recent_requests": recent,
        "my_assigned_requests": my_assigned,
    }


def admin_dashboard(session: Session, identity: Identity) -> Dict[str, Any]:
    return {
        "role": identity.role.value,
        "status_counts": _status_counts(session),
        "total_users": _count(session, User),
        "total_responses": _count(session, HelpResponse),
    }


def build_dashboard(session: Session, identity: Identity) -> Dict[str, Any]:
    if identity.role == Role.FARMER:
        return farmer_dashboard(session, identity)
    if is_helper(identity.role):
        return helper_dashboard(session, identity)
    if identity.role == Role.ADMIN:
        return admin_dashboard(session, identity)
    raise ValueError(f"Unknown role: {identity.role!r}")
