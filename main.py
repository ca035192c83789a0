import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import OperationalError

from db import create_db_and_tables
from errors import LifecycleError, TransportError, ValidationError
from log import setup_logging
from routers import auth, dashboard, help_requests, users
from routers.auth import OptionalIdentityDep

logger = logging.getLogger(__name__)

app = FastAPI(title="AgriAid")


@app.on_event("startup")
def on_startup() -> None:
    setup_logging()
    create_db_and_tables()


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    body = {"detail": exc.detail}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(OperationalError)
async def database_error_handler(request: Request, exc: OperationalError):
    logger.error("Database unavailable: %s", exc)
    error = TransportError("Database unavailable, please try again")
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.get("/")
def read_root(current: OptionalIdentityDep):
    # Logged-in users go straight to their dashboard
    if current is not None:
        return RedirectResponse(url="/dashboard/", status_code=303)
    return {"app": "AgriAid", "login": "/auth/login", "signup": "/auth/signup"}


app.include_router(auth.router)
app.include_router(users.router, prefix="/users")
app.include_router(help_requests.router, prefix="/help-requests")
app.include_router(dashboard.router, prefix="/dashboard")
