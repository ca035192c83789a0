"""
Help-request lifecycle.

A farmer opens a request (pending), helpers attach responses, the farmer
accepts exactly one of them (assigned), and the farmer or the assignee
moves it on to in_progress, completed or cancelled.

Every function takes an open Session and the caller's Identity and checks
authorization itself; nothing here trusts a check made by the caller.
Status changes are issued as conditional UPDATEs on the status that was
read, so a concurrent writer makes the second one fail with StateError
instead of overwriting the first.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, col, select

from errors import (
    AuthorizationError,
    LifecycleError,
    NotFoundError,
    StateError,
    TransportError,
    ValidationError,
)
from models import (
    Category,
    HelpRequest,
    HelpResponse,
    RequestStatus,
    Role,
    Urgency,
    User,
    utcnow,
)
from permissions import (
    Identity,
    allowed_transition,
    can_accept,
    can_advance,
    can_edit,
    can_respond,
    can_view,
    is_helper,
)
from schemas import HelpRequestCreate, HelpRequestUpdate, HelpResponseCreate

logger = logging.getLogger(__name__)


def _commit(session: Session) -> None:
    try:
        session.commit()
    except OperationalError as exc:
        session.rollback()
        raise TransportError("Database unavailable, please try again") from exc


def _clean_items(items: Optional[List[str]]) -> List[str]:
    return [item.strip() for item in items or [] if item and item.strip()]


def _required_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


def _category(value: Optional[str]) -> Category:
    raw = _required_text(value, "category")
    try:
        return Category(raw)
    except ValueError:
        raise ValidationError(f"Unknown category: {raw}", field="category")


def _urgency(value) -> Urgency:
    try:
        return Urgency(value)
    except ValueError:
        raise ValidationError(f"Unknown urgency: {value}", field="urgency")


def _non_negative(value: Optional[float], field: str) -> Optional[float]:
    if value is not None and value < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return value


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _load_request(session: Session, request_id: str) -> HelpRequest:
    request = session.get(HelpRequest, request_id)
    if request is None:
        raise NotFoundError("Help request not found")
    return request


def _load_user(session: Session, user_id: str) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _deny(identity: Identity, action: str, detail: str) -> AuthorizationError:
    logger.warning(
        "Denied %s for user %s (role=%s)",
        action,
        identity.user_id,
        identity.role.value,
    )
    return AuthorizationError(detail)


def create_request(
    session: Session, identity: Identity, data: HelpRequestCreate
) -> HelpRequest:
    if identity.role != Role.FARMER:
        raise _deny(identity, "create", "Only farmers can create help requests")

    title = _required_text(data.title, "title")
    description = _required_text(data.description, "description")
    category = _category(data.category)
    urgency = _urgency(data.urgency)
    estimated_cost = _non_negative(data.estimated_cost, "estimated_cost")

    farmer = _load_user(session, identity.user_id)
    request = HelpRequest(
        farmer_id=farmer.id,
        title=title,
        description=description,
        category=category,
        urgency=urgency,
        location={
            "state": farmer.state,
            "district": farmer.district,
            "village": farmer.village,
        },
        required_items=_clean_items(data.required_items),
        estimated_cost=estimated_cost,
        status=RequestStatus.PENDING,
    )
    session.add(request)
    _commit(session)
    session.refresh(request)
    logger.info("Help request %s created by farmer %s", request.id, farmer.id)
    return request


def edit_request(
    session: Session,
    identity: Identity,
    request_id: str,
    patch: HelpRequestUpdate,
) -> HelpRequest:
    """
    Change the descriptive fields of a request.

    Only the owning farmer may do it, and only while no response has been
    accepted.
    """
    request = _load_request(session, request_id)
    if request.farmer_id != identity.user_id:
        raise _deny(identity, "edit", "You can only edit your own requests")
    if not can_edit(request, identity):
        raise StateError("Only pending requests can be edited")

    fields = patch.model_dump(exclude_unset=True)
    values = {}
    if "title" in fields:
        values["title"] = _required_text(fields["title"], "title")
    if "description" in fields:
        values["description"] = _required_text(fields["description"], "description")
    if "category" in fields:
        values["category"] = _category(fields["category"])
    if "urgency" in fields:
        values["urgency"] = _urgency(fields["urgency"])
    if "required_items" in fields:
        values["required_items"] = _clean_items(fields["required_items"])
    if "estimated_cost" in fields:
        values["estimated_cost"] = _non_negative(
            fields["estimated_cost"], "estimated_cost"
        )
    if not values:
        return request
    values["updated_at"] = utcnow()

    try:
        result = session.connection().execute(
            update(HelpRequest)
            .where(
                HelpRequest.id == request.id,
                HelpRequest.status == RequestStatus.PENDING,
            )
            .values(**values)
        )
        if result.rowcount != 1:
            raise StateError("Only pending requests can be edited")
    except LifecycleError:
        session.rollback()
        raise
    except OperationalError as exc:
        session.rollback()
        raise TransportError("Database unavailable, please try again") from exc

    _commit(session)
    session.refresh(request)
    logger.info("Help request %s edited", request.id)
    return request


def submit_response(
    session: Session,
    identity: Identity,
    request_id: str,
    data: HelpResponseCreate,
) -> HelpResponse:
    if not is_helper(identity.role):
        raise _deny(identity, "respond", "Only NGOs and donors can respond to requests")

    request = _load_request(session, request_id)
    if not can_respond(request, identity):
        raise StateError("This request is no longer accepting offers")

    message = _required_text(data.message, "message")
    offered_amount = _non_negative(data.offered_amount, "offered_amount")

    helper = _load_user(session, identity.user_id)
    if data.contact_info is not None:
        contact_info = data.contact_info.model_dump()
    else:
        contact_info = {
            "phone": helper.phone,
            "email": helper.email,
            "organization": helper.organization_name,
        }

    response = HelpResponse(
        request_id=request.id,
        helper_id=helper.id,
        message=message,
        offered_items=_clean_items(data.offered_items),
        offered_amount=offered_amount,
        contact_info=contact_info,
        is_accepted=False,
    )
    try:
        # no-op write: locks the row and confirms it is still pending
        result = session.connection().execute(
            update(HelpRequest)
            .where(
                HelpRequest.id == request.id,
                HelpRequest.status == RequestStatus.PENDING,
            )
            .values(status=HelpRequest.status)
        )
        if result.rowcount != 1:
            raise StateError("This request is no longer accepting offers")
        session.add(response)
    except LifecycleError:
        session.rollback()
        raise
    except OperationalError as exc:
        session.rollback()
        raise TransportError("Database unavailable, please try again") from exc

    _commit(session)
    session.refresh(response)
    logger.info(
        "Response %s submitted to request %s by %s", response.id, request.id, helper.id
    )
    return response


def accept_response(
    session: Session,
    identity: Identity,
    request_id: str,
    response_id: str,
) -> Tuple[HelpRequest, HelpResponse]:
    """
    Assign the request to the helper behind `response_id`.

    The request update and the response flag are committed together. The
    request row is only touched if it is still pending, so of two
    concurrent acceptances exactly one wins; the other gets StateError.
    """
    request = _load_request(session, request_id)
    if request.farmer_id != identity.user_id:
        raise _deny(identity, "accept", "Only the farmer who made the request can accept offers")
    if not can_accept(request, identity):
        raise StateError("A helper has already been assigned to this request")

    response = session.get(HelpResponse, response_id)
    if response is None or response.request_id != request.id:
        raise StateError("That response does not belong to this request")

    now = utcnow()
    try:
        connection = session.connection()
        result = connection.execute(
            update(HelpRequest)
            .where(
                HelpRequest.id == request.id,
                HelpRequest.status == RequestStatus.PENDING,
            )
            .values(
                status=RequestStatus.ASSIGNED,
                assigned_to=response.helper_id,
                assigned_at=now,
                updated_at=now,
            )
        )
        if result.rowcount != 1:
            logger.info(
                "Lost acceptance race on request %s (response %s)",
                request.id,
                response.id,
            )
            raise StateError("A helper has already been assigned to this request")
        connection.execute(
            update(HelpResponse)
            .where(
                HelpResponse.id == response.id,
                HelpResponse.request_id == request.id,
            )
            .values(is_accepted=True)
        )
    except LifecycleError:
        session.rollback()
        raise
    except OperationalError as exc:
        session.rollback()
        raise TransportError("Database unavailable, please try again") from exc

    _commit(session)
    session.refresh(request)
    session.refresh(response)
    logger.info(
        "Request %s assigned to %s via response %s",
        request.id,
        response.helper_id,
        response.id,
    )
    return request, response


def advance_status(
    session: Session,
    identity: Identity,
    request_id: str,
    new_status: RequestStatus,
) -> HelpRequest:
    request = _load_request(session, request_id)
    if not can_advance(request, identity):
        raise _deny(
            identity,
            "advance",
            "Only the farmer or the assigned helper can update this request",
        )

    try:
        new_status = RequestStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown status: {new_status}", field="status")

    current = request.status
    if not allowed_transition(current, new_status):
        raise StateError(
            f"Cannot move a request from {current.value} to {new_status.value}"
        )

    try:
        result = session.connection().execute(
            update(HelpRequest)
            .where(HelpRequest.id == request.id, HelpRequest.status == current)
            .values(status=new_status, updated_at=utcnow())
        )
        if result.rowcount != 1:
            raise StateError("The request changed while you were updating it")
    except LifecycleError:
        session.rollback()
        raise
    except OperationalError as exc:
        session.rollback()
        raise TransportError("Database unavailable, please try again") from exc

    _commit(session)
    session.refresh(request)
    logger.info(
        "Request %s moved %s -> %s by %s",
        request.id,
        current.value,
        new_status.value,
        identity.user_id,
    )
    return request


def get_request(
    session: Session, identity: Identity, request_id: str
) -> HelpRequest:
    request = _load_request(session, request_id)
    if not can_view(request, identity):
        raise _deny(identity, "view", "You cannot view this request")
    return request


def list_requests(
    session: Session,
    identity: Identity,
    status: Optional[RequestStatus] = None,
    urgency: Optional[Urgency] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Tuple[HelpRequest, User]]:
    """Visible requests with their farmer's profile, newest first."""
    query = select(HelpRequest, User).join(User, User.id == HelpRequest.farmer_id)

    if identity.role == Role.FARMER:
        query = query.where(HelpRequest.farmer_id == identity.user_id)
    elif not (is_helper(identity.role) or identity.role == Role.ADMIN):
        return []

    if status is not None:
        query = query.where(HelpRequest.status == status)
    if urgency is not None:
        query = query.where(HelpRequest.urgency == urgency)
    if search:
        pattern = f"%{_escape_like(search.strip())}%"
        query = query.where(
            or_(
                col(HelpRequest.title).ilike(pattern, escape="\\"),
                col(HelpRequest.description).ilike(pattern, escape="\\"),
            )
        )

    query = query.order_by(col(HelpRequest.created_at).desc())
    if limit is not None:
        query = query.limit(limit)
    return list(session.exec(query).all())


def list_responses(
    session: Session, identity: Identity, request_id: str
) -> List[Tuple[HelpResponse, User]]:
    """All responses to a visible request with the helper's profile, newest first."""
    get_request(session, identity, request_id)
    query = (
        select(HelpResponse, User)
        .join(User, User.id == HelpResponse.helper_id)
        .where(HelpResponse.request_id == request_id)
        .order_by(col(HelpResponse.created_at).desc())
    )
    return list(session.exec(query).all())
