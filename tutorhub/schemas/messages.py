from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime


class MessageCreate(BaseModel):
    receiver_id: str
    body: str

    @field_validator("body")
    @classmethod
    def body_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message cannot be empty")
        return value


class MessageResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    teacher_id: Optional[str] = None
    student_id: Optional[str] = None
    body: str
    created_at: datetime
