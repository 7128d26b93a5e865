from pydantic import BaseModel, Field, model_validator
from typing import Annotated, Optional
from datetime import datetime

# All assessment scores use a 1-5 scale
Score = Annotated[int, Field(ge=1, le=5)]

SCORE_FIELDS = ("tajweed_score", "recitation_score", "hifz_score", "behaviour_score")


class AssessmentCreate(BaseModel):
    class_session_id: str
    rating: Optional[Score] = None
    tajweed_score: Optional[Score] = None
    recitation_score: Optional[Score] = None
    hifz_score: Optional[Score] = None
    behaviour_score: Optional[Score] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_scores(self):
        scores = [getattr(self, name) for name in SCORE_FIELDS]
        if any(s is not None for s in scores) and any(s is None for s in scores):
            raise ValueError("Please fill all scores.")
        if self.rating is None and all(s is None for s in scores):
            raise ValueError("Please give a rating or fill all scores.")
        return self


class AssessmentResponse(BaseModel):
    id: str
    class_session_id: str
    teacher_id: str
    student_id: str
    rating: Optional[int] = None
    tajweed_score: Optional[int] = None
    recitation_score: Optional[int] = None
    hifz_score: Optional[int] = None
    behaviour_score: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

