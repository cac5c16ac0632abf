from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal, Dict, Any
from datetime import datetime
import datetime as dt
from app.modules.boards.schemas import BoardInput, BoardResponse

WorkshopStatus = Literal["draft", "active"]


class WorkshopSave(BaseModel):
    """Create-or-update payload. Boards and questions are replaced wholesale on every save."""
    name: str = Field(..., max_length=200)
    date: Optional[dt.date] = None
    status: WorkshopStatus = "draft"
    boards: List[BoardInput] = []
    # Join code picked on the client; only read on create, codes never change afterwards
    code: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Workshop name is required")
        return v

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip().upper()
        return v or None


class WorkshopUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    date: Optional[dt.date] = None


class AdvanceBoardRequest(BaseModel):
    board_id: str
    # Board the facilitator was looking at; a mismatch means another tab or click already switched
    expected_active_board_id: Optional[str] = None


class TimerRequest(BaseModel):
    running: bool


class WorkshopResponse(BaseModel):
    id: str
    name: str
    date: Optional[dt.date] = None
    code: str
    facilitator_id: Optional[str] = None
    status: str
    active_board_id: Optional[str] = None
    timer_running: bool = False
    timer_started_at: Optional[datetime] = None
    time_remaining: Optional[int] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkshopDetailResponse(WorkshopResponse):
    boards: List[BoardResponse] = []
    has_responses: bool = False


class WorkshopSaveResponse(BaseModel):
    id: str
    code: str
    status: str
    active_board_id: Optional[str] = None


class WorkshopExport(BaseModel):
    """Structured results document, input for PDF rendering on the client"""
    workshop: WorkshopResponse
    participant_count: int
    boards: List[Dict[str, Any]]
    exported_at: datetime
