from pydantic import BaseModel
from typing import Literal, Optional

Gender = Literal["male", "female"]


class LoginRequest(BaseModel):
    email: str
    password: str
    next: Optional[str] = None


class SignupRequest(BaseModel):
    email: str
    password: str
    full_name: str
    role: Literal["student", "teacher"] = "student"  # admins are provisioned, not self-registered
    gender: Optional[Gender] = None


class LoginResponse(BaseModel):
    user_id: str
    role: str
    access_token: str
    refresh_token: Optional[str] = None
    redirect_to: str


class SignupResponse(BaseModel):
    user_id: str
    role: str
    redirect_to: str


class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    role: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    gender: Optional[Gender] = None
    initials: str
