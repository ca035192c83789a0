from fastapi import APIRouter

from dashboard import build_dashboard
from db import SessionDep
from .auth import IdentityDep
from .help_requests import request_read

router = APIRouter(tags=["dashboard"])

REQUEST_LISTS = (
    "recent_requests",
    "urgent_requests",
    "my_assigned_requests",
)


@router.get("/")
def read_dashboard(session: SessionDep, identity: IdentityDep):
    """
    Counts and short request lists for the caller's role.
    """
    data = build_dashboard(session, identity)
    for key in REQUEST_LISTS:
        if key in data:
            data[key] = [
                request_read(request, farmer).model_dump(mode="json")
                for request, farmer in data[key]
            ]
    return data
