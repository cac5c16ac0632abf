from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from app.modules.boards.schemas import BoardResponse, QuestionResponse
from app.modules.notes.schemas import NoteResponse


class WorkshopStatusResponse(BaseModel):
    """What a participant polls. Only stored fields, so repeated polls of an unchanged workshop are identical."""
    workshop_id: str
    status: str
    active_board_id: Optional[str] = None
    new_board_title: Optional[str] = None
    time_limit: Optional[int] = None  # minutes, of the active board
    timer_running: bool = False
    timer_started_at: Optional[datetime] = None
    remaining_seconds: Optional[int] = None
    poll_interval_seconds: int


class WorkshopSummary(BaseModel):
    id: str
    name: str
    code: str
    status: str
    active_board_id: Optional[str] = None


class InitialBoardData(BaseModel):
    workshop: WorkshopSummary
    board: BoardResponse
    questions: List[QuestionResponse]
    notes: List[NoteResponse]
    participant_count: int


class ParticipantCountResponse(BaseModel):
    workshop_id: str
    participant_count: int
