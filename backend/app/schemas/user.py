from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


# Schema for registration. Shape checks (required, email, password length)
# run in the route so they surface as VALIDATION_ERROR with field-level messages.
class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


# Schema for login (JSON body)
class UserLogin(BaseModel):
    email: str
    password: str


# Schema for returning user (without password)
class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime


class UserRegisterResponse(BaseModel):
    message: str
    user_id: int


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
