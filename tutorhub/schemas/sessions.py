from pydantic import AwareDatetime, BaseModel, model_validator
from typing import Literal, Optional
from datetime import datetime

SessionStatus = Literal["scheduled", "live", "completed", "cancelled", "no_show"]


class SessionCreate(BaseModel):
    teacher_id: str
    student_id: str
    course_id: Optional[str] = None
    start_utc: AwareDatetime
    end_utc: AwareDatetime
    zoom_url: Optional[str] = None

    @model_validator(mode="after")
    def check_time_range(self):
        if self.start_utc >= self.end_utc:
            raise ValueError("start_utc must be before end_utc")
        return self


class SessionResponse(BaseModel):
    id: str
    teacher_id: str
    student_id: str
    course_id: Optional[str] = None
    start_utc: datetime
    end_utc: datetime
    status: SessionStatus
    zoom_url: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None


class TransitionResponse(BaseModel):
    session: SessionResponse
    previous_status: SessionStatus
    open_url: Optional[str] = None
    prompt_assessment: bool = False
