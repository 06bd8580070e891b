# grm/models/user.py
from pydantic import BaseModel, Field, EmailStr
from datetime import datetime, timezone
from typing import Optional
import uuid
from grm.models.common import Department, UserRole

class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    department: Department
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

class UserInDB(UserOut):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    password_hash: Optional[str] = None

class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: UserRole = "Staff"
    department: Department = "Front Desk"
    password: str = Field(min_length=6)
    confirm_password: str

class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    department: Optional[Department] = None
    password: Optional[str] = None

class UserLogin(BaseModel):
    email: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
