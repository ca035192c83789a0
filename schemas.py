from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models import Category, RequestStatus, Role, Urgency


class Location(BaseModel):
    state: Optional[str] = None
    district: Optional[str] = None
    village: Optional[str] = None


class ContactInfo(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    organization: Optional[str] = None


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)
    role: Literal["farmer", "ngo", "donor"] = "farmer"
    phone: Optional[str] = None
    state: Optional[str] = None
    district: Optional[str] = None
    village: Optional[str] = None
    organization_name: Optional[str] = None
    preferred_language: str = "en"


class LoginData(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    state: Optional[str] = None
    district: Optional[str] = None
    village: Optional[str] = None
    organization_name: Optional[str] = None
    preferred_language: Optional[str] = None


class UserRead(BaseModel):
    id: str
    email: EmailStr
    full_name: str
    phone: Optional[str]
    role: Role
    state: Optional[str]
    district: Optional[str]
    village: Optional[str]
    organization_name: Optional[str]
    preferred_language: str

    model_config = ConfigDict(from_attributes=True)


class FarmerSummary(BaseModel):
    full_name: str
    phone: Optional[str] = None
    village: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class HelperSummary(BaseModel):
    full_name: str
    organization_name: Optional[str] = None
    role: Role

    model_config = ConfigDict(from_attributes=True)


class HelpRequestCreate(BaseModel):
    title: str
    description: str
    category: str
    urgency: Urgency = Urgency.MEDIUM
    required_items: List[str] = []
    estimated_cost: Optional[float] = None


class HelpRequestUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    urgency: Optional[Urgency] = None
    required_items: Optional[List[str]] = None
    estimated_cost: Optional[float] = None


class HelpRequestRead(BaseModel):
    id: str
    farmer_id: str
    title: str
    description: str
    category: Category
    urgency: Urgency
    location: Location
    required_items: List[str]
    estimated_cost: Optional[float]
    status: RequestStatus
    assigned_to: Optional[str]
    assigned_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    farmer: Optional[FarmerSummary] = None

    model_config = ConfigDict(from_attributes=True)


class HelpResponseCreate(BaseModel):
    message: str
    offered_items: List[str] = []
    offered_amount: Optional[float] = None
    contact_info: Optional[ContactInfo] = None


class HelpResponseRead(BaseModel):
    id: str
    request_id: str
    helper_id: str
    message: str
    offered_items: List[str]
    offered_amount: Optional[float]
    contact_info: ContactInfo
    is_accepted: bool
    created_at: datetime
    helper: Optional[HelperSummary] = None

    model_config = ConfigDict(from_attributes=True)


class AcceptResponse(BaseModel):
    response_id: str


class StatusUpdate(BaseModel):
    status: RequestStatus
