import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Role(str, Enum):
    FARMER = "farmer"
    NGO = "ngo"
    DONOR = "donor"
    ADMIN = "admin"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Category(str, Enum):
    SEEDS = "seeds"
    FERTILIZERS = "fertilizers"
    TOOLS = "tools"
    IRRIGATION = "irrigation"
    PEST_CONTROL = "pest_control"
    FINANCIAL = "financial"
    EMERGENCY = "emergency"
    OTHER = "other"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str

    full_name: str
    phone: Optional[str] = None
    role: Role = Role.FARMER
    state: Optional[str] = None
    district: Optional[str] = None
    village: Optional[str] = None
    organization_name: Optional[str] = None
    preferred_language: str = "en"
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class HelpRequest(SQLModel, table=True):
    __tablename__ = "help_requests"

    id: str = Field(default_factory=new_id, primary_key=True)
    farmer_id: str = Field(foreign_key="users.id", index=True)

    title: str
    description: str
    category: Category
    urgency: Urgency = Urgency.MEDIUM
    # snapshot of the farmer's profile at creation: {state, district, village}
    location: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    required_items: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    estimated_cost: Optional[float] = None

    status: RequestStatus = Field(default=RequestStatus.PENDING, index=True)
    assigned_to: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    assigned_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class HelpResponse(SQLModel, table=True):
    __tablename__ = "help_responses"

    id: str = Field(default_factory=new_id, primary_key=True)
    request_id: str = Field(foreign_key="help_requests.id", index=True)
    helper_id: str = Field(foreign_key="users.id", index=True)

    message: str
    offered_items: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    offered_amount: Optional[float] = None
    # snapshot at submission: {phone, email, organization}
    contact_info: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    is_accepted: bool = False

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
