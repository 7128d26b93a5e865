from pydantic import BaseModel
from typing import Literal, Optional
from tutorhub.schemas.auth import Gender

Role = Literal["student", "teacher", "admin"]


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    gender: Optional[Gender] = None


class AdminProfileUpdate(ProfileUpdate):
    role: Optional[Role] = None


class ProfileResponse(BaseModel):
    id: str
    role: Role
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    gender: Optional[Gender] = None
