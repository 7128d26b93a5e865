from pydantic import BaseModel, Field, model_validator
from typing import List
from datetime import time

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class DaySlot(BaseModel):
    weekday: int = Field(..., ge=0, le=6, description="0 = Monday ... 6 = Sunday")
    start_time: time
    end_time: time
    is_active: bool = True

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError(f"{WEEKDAYS[self.weekday]}: end time must be after start time")
        return self


class AvailabilityUpdate(BaseModel):
    slots: List[DaySlot]

    @model_validator(mode="after")
    def one_slot_per_day(self):
        weekdays = [slot.weekday for slot in self.slots]
        if len(weekdays) != len(set(weekdays)):
            raise ValueError("Only one slot per weekday is allowed")
        return self


class DaySlotResponse(BaseModel):
    weekday: int
    day: str
    start_time: str
    end_time: str
    is_active: bool
