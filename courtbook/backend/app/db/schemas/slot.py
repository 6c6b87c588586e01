from datetime import datetime
from pydantic import BaseModel


class AvailableSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    available: bool = True

    class Config:
        from_attributes = True
