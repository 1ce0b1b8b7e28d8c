# qrinspect/schemas/user.py
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, conint, constr

UserRole = Literal["SUPER_ADMIN", "ADMIN", "MINI_ADMIN", "INSPECTOR"]


class UserCreate(BaseModel):
    email: EmailStr
    password: constr(min_length=8, max_length=128)
    name: Optional[constr(strip_whitespace=True, max_length=255)] = None
    role: UserRole = "INSPECTOR"
    organization_id: Optional[conint(ge=1)] = None
    area_id: Optional[conint(ge=1)] = None
    department_id: Optional[conint(ge=1)] = None


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[constr(min_length=8, max_length=128)] = None
    name: Optional[constr(strip_whitespace=True, max_length=255)] = None
    role: Optional[UserRole] = None
    area_id: Optional[conint(ge=1)] = None
    department_id: Optional[conint(ge=1)] = None
    is_active: Optional[bool] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    name: Optional[str] = None
    role: UserRole
    organization_id: Optional[int] = None
    area_id: Optional[int] = None
    department_id: Optional[int] = None
    is_active: bool = True


class ProfileUpdate(BaseModel):
    """Self-service profile edit; both fields are required."""

    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    email: EmailStr


class ProfileOut(UserOut):
    # Set only when the email changed, since tokens are bound to the email
    access_token: Optional[str] = None
    token_type: Optional[str] = None
