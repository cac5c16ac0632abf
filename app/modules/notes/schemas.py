from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime

MAX_NOTE_LENGTH = 2000


class NoteCreate(BaseModel):
    question_id: str
    content: str


class NoteMoveRequest(BaseModel):
    target_question_id: str


class NoteResponse(BaseModel):
    id: str
    question_id: str
    content: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    color_index: int = 0
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkshopNotesResponse(BaseModel):
    """Facilitator view: every note of a workshop keyed by board id"""
    workshop_id: str
    boards: Dict[str, List[NoteResponse]]
