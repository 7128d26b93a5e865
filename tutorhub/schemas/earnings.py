from pydantic import BaseModel
from typing import List, Literal, Optional
from datetime import datetime

PayoutStatus = Literal["unpaid", "paid"]


class Payout(BaseModel):
    id: str
    amount: float
    currency: Optional[str] = None
    status: PayoutStatus
    created_at: datetime
    paid_at: Optional[datetime] = None
    class_session_id: str


class EarningsSummary(BaseModel):
    month_label: str
    month_start: datetime
    next_month_start: datetime
    currency: str
    total: float
    unpaid: float
    paid: float
    class_count: int
    recent: List[Payout]
    empty_message: Optional[str] = None
