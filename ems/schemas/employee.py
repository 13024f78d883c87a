from pydantic import BaseModel, EmailStr, ConfigDict, Field, AliasChoices
from datetime import date, datetime
from typing import List, Optional
from ems.models.employee import EmployeeStatus


class EmergencyContactBase(BaseModel):
    name: str
    phone: str = ""
    # ORM attribute is relationship_type; the column and the API field are "relationship"
    relationship: str = Field(default="", validation_alias=AliasChoices("relationship", "relationship_type"))


class EmergencyContactResponse(EmergencyContactBase):
    model_config = ConfigDict(from_attributes=True)

    id: int


class EmploymentHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    department: str
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False


class EmployeeBase(BaseModel):
    full_name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    department: str = Field(min_length=1)
    position: str = Field(min_length=1)
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    join_date: date
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    manager: Optional[str] = None
    base_salary: float = Field(default=0.0, ge=0)


class EmployeeCreate(EmployeeBase):
    user_id: Optional[int] = None
    emergency_contact: Optional[EmergencyContactBase] = None


class EmployeeUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    status: Optional[EmployeeStatus] = None
    join_date: Optional[date] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    manager: Optional[str] = None
    base_salary: Optional[float] = Field(default=None, ge=0)
    profile_picture_url: Optional[str] = None


class EmployeeSelfUpdate(BaseModel):
    """Fields an employee may change on their own record."""
    phone: Optional[str] = None
    address: Optional[str] = None
    profile_picture_url: Optional[str] = None
    emergency_contact: Optional[EmergencyContactBase] = None


class EmployeeResponse(EmployeeBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    # Stored rows are not re-validated against EmailStr
    email: str
    user_id: Optional[int] = None
    profile_picture_url: Optional[str] = None
    created_at: Optional[datetime] = None
    emergency_contacts: List[EmergencyContactResponse] = []
    employment_history: List[EmploymentHistoryResponse] = []


class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(min_length=1)


class BulkUpdateRequest(BaseModel):
    ids: List[int] = Field(min_length=1)
    # Raw JSON object typed into the bulk edit dialog; parsed server-side
    updates: str


class BulkSelectionState(BaseModel):
    selected_ids: List[int]
    dialog_open: bool
    is_processing: bool
    affected: int = 0


class EmployeeProfile(BaseModel):
    """The signed-in employee as held by the session provider."""
    id: int
    name: str
    email: str
    department: str
    role: str
    status: str
    phone: str = ""
    address: str = ""
    date_of_birth: Optional[date] = None
    join_date: date
    manager: str = ""
    base_salary: float = 0.0
    profile_picture: Optional[str] = None
    emergency_contact: EmergencyContactBase = EmergencyContactBase(name="")
