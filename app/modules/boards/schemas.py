from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

DEFAULT_TIME_LIMIT_MINUTES = 15


class QuestionInput(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)


class BoardInput(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    time_limit: int = Field(DEFAULT_TIME_LIMIT_MINUTES, ge=1, le=480)  # minutes
    color_index: Optional[int] = Field(None, ge=0)
    questions: List[QuestionInput] = []


class QuestionResponse(BaseModel):
    id: str
    board_id: str
    title: str
    order_index: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BoardResponse(BaseModel):
    id: str
    workshop_id: str
    title: str
    time_limit: int
    order_index: int
    color_index: int = 0
    questions: List[QuestionResponse] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
