from typing import List, Optional

from fastapi import APIRouter, Query
from sqlmodel import Session

import lifecycle
from db import SessionDep
from models import HelpRequest, HelpResponse, RequestStatus, Urgency, User
from schemas import (
    AcceptResponse,
    FarmerSummary,
    HelpRequestCreate,
    HelpRequestRead,
    HelpRequestUpdate,
    HelpResponseCreate,
    HelpResponseRead,
    HelperSummary,
    StatusUpdate,
)
from .auth import IdentityDep

router = APIRouter(tags=["help-requests"])


def request_read(request: HelpRequest, farmer: Optional[User]) -> HelpRequestRead:
    data = HelpRequestRead.model_validate(request)
    if farmer is not None:
        data.farmer = FarmerSummary.model_validate(farmer)
    return data


def response_read(response: HelpResponse, helper: Optional[User]) -> HelpResponseRead:
    data = HelpResponseRead.model_validate(response)
    if helper is not None:
        data.helper = HelperSummary.model_validate(helper)
    return data


def _with_farmer(session: Session, request: HelpRequest) -> HelpRequestRead:
    return request_read(request, session.get(User, request.farmer_id))


@router.post("/", response_model=HelpRequestRead, status_code=201)
def create_help_request(data: HelpRequestCreate, session: SessionDep, identity: IdentityDep):
    request = lifecycle.create_request(session, identity, data)
    return _with_farmer(session, request)


@router.get("/", response_model=List[HelpRequestRead])
def list_help_requests(
    session: SessionDep,
    identity: IdentityDep,
    status: Optional[RequestStatus] = None,
    urgency: Optional[Urgency] = None,
    search: Optional[str] = None,
    limit: Optional[int] = Query(default=None, gt=0, le=200),
):
    """
    Farmers get their own requests, helpers and admins get all of them.
    """
    rows = lifecycle.list_requests(
        session, identity, status=status, urgency=urgency, search=search, limit=limit
    )
    return [request_read(request, farmer) for request, farmer in rows]


@router.get("/{request_id}", response_model=HelpRequestRead)
def get_help_request(request_id: str, session: SessionDep, identity: IdentityDep):
    request = lifecycle.get_request(session, identity, request_id)
    return _with_farmer(session, request)


@router.patch("/{request_id}", response_model=HelpRequestRead)
def edit_help_request(
    request_id: str,
    patch: HelpRequestUpdate,
    session: SessionDep,
    identity: IdentityDep,
):
    request = lifecycle.edit_request(session, identity, request_id, patch)
    return _with_farmer(session, request)


@router.post(
    "/{request_id}/responses", response_model=HelpResponseRead, status_code=201
)
def submit_help_response(
    request_id: str,
    data: HelpResponseCreate,
    session: SessionDep,
    identity: IdentityDep,
):
    response = lifecycle.submit_response(session, identity, request_id, data)
    return response_read(response, session.get(User, response.helper_id))


@router.get("/{request_id}/responses", response_model=List[HelpResponseRead])
def list_help_responses(request_id: str, session: SessionDep, identity: IdentityDep):
    rows = lifecycle.list_responses(session, identity, request_id)
    return [response_read(response, helper) for response, helper in rows]


@router.post("/{request_id}/accept", response_model=HelpRequestRead)
def accept_help_response(
    request_id: str,
    body: AcceptResponse,
    session: SessionDep,
    identity: IdentityDep,
):
    request, _ = lifecycle.accept_response(
        session, identity, request_id, body.response_id
    )
    return _with_farmer(session, request)


@router.post("/{request_id}/status", response_model=HelpRequestRead)
def update_help_request_status(
    request_id: str,
    body: StatusUpdate,
    session: SessionDep,
    identity: IdentityDep,
):
    request = lifecycle.advance_status(session, identity, request_id, body.status)
    return _with_farmer(session, request)
