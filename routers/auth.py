import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from itsdangerous import BadSignature, URLSafeTimedSerializer
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import select

from config import COOKIE_SECURE, SECRET_KEY, SESSION_MAX_AGE
from db import SessionDep
from models import Role, User
from permissions import Identity
from schemas import LoginData, UserCreate, UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_COOKIE = "session"

serializer = URLSafeTimedSerializer(SECRET_KEY)


pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_session_token(user_id: str) -> str:
    """
    Only the user id goes in the signed token. The role is always read
    back from the stored profile so a client cannot choose it.
    """
    return serializer.dumps({"user_id": user_id})


def verify_session_token(token: str, max_age_seconds: int = SESSION_MAX_AGE):
    """
    Returns {'user_id': ...} if valid, or None if the token is invalid/expired.
    """
    try:
        return serializer.loads(token, max_age=max_age_seconds)
    except BadSignature:
        return None


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, email=user.email, role=Role(user.role))


def _load_session_user(session: SessionDep, token: Optional[str]) -> Optional[User]:
    if token is None:
        return None
    data = verify_session_token(token)
    if not data:
        return None
    return session.get(User, data["user_id"])


def get_current_user(
    session: SessionDep,
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
) -> User:
    """
    Reads the 'session' cookie, verifies the token and looks up the user.
    Raises 401 if not logged in / invalid.
    """
    if session_token is None:
        raise HTTPException(status_code=401, detail="Not logged in")

    user = _load_session_user(session, session_token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_current_identity(user: CurrentUserDep) -> Identity:
    return identity_for(user)


IdentityDep = Annotated[Identity, Depends(get_current_identity)]


def get_optional_identity(
    session: SessionDep,
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
) -> Optional[Identity]:
    """
    Like get_current_identity, but returns None instead of raising 401.
    """
    user = _load_session_user(session, session_token)
    return identity_for(user) if user is not None else None


OptionalIdentityDep = Annotated[Optional[Identity], Depends(get_optional_identity)]


def _set_session_cookie(response: Response, user: User) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=create_session_token(user.id),
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=SESSION_MAX_AGE,
    )


async def _read_payload(request: Request) -> dict:
    """Accepts either JSON or form-data."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        return await request.json()
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


@router.post("/signup", status_code=201)
async def signup(request: Request, session: SessionDep):
    """
    Register a new user with a hashed password and sign them in.
    """
    data = await _read_payload(request)
    try:
        user_in = UserCreate(**data)
    except PydanticValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        )

    existing = session.exec(select(User).where(User.email == user_in.email)).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        email=user_in.email,
        password_hash=hash_password(user_in.password),
        full_name=user_in.full_name,
        phone=user_in.phone,
        role=Role(user_in.role),
        state=user_in.state,
        district=user_in.district,
        village=user_in.village,
        organization_name=(
            user_in.organization_name if user_in.role != Role.FARMER.value else None
        ),
        preferred_language=user_in.preferred_language,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Registered %s user %s", user.role.value, user.id)

    resp = JSONResponse(
        {"message": "Registration successful", "user": UserRead.model_validate(user).model_dump(mode="json")},
        status_code=201,
    )
    _set_session_cookie(resp, user)
    return resp


@router.post("/login")
async def login(request: Request, session: SessionDep):
    """
    Log in with email + password and set a signed cookie.
    """
    data = await _read_payload(request)
    try:
        payload = LoginData(**data)
    except PydanticValidationError:
        raise HTTPException(status_code=400, detail="All fields are required")

    user = session.exec(select(User).where(User.email == payload.email)).first()
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for %s", payload.email)
        raise HTTPException(status_code=400, detail="Invalid email or password")

    resp = JSONResponse({"message": "Login successful", "role": user.role.value})
    _set_session_cookie(resp, user)
    return resp


@router.post("/logout")
def logout():
    """
    Clear the session cookie.
    """
    response = JSONResponse({"message": "Logged out"})
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/me", response_model=UserRead)
def read_me(user: CurrentUserDep):
    """
    Get the currently logged-in user.
    """
    return user
