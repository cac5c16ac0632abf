from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime


class ParticipantSession(BaseModel):
    """Anonymous, device-scoped participant resolved from the X-Participant-Token header.

    The token is a bearer capability: whoever holds it acts as this participant.
    It is never interchangeable with a FacilitatorIdentity.
    """
    id: str
    workshop_id: str
    name: str
    color_index: int = 0


class JoinRequest(BaseModel):
    workshop_code: str
    participant_name: str

    @field_validator("workshop_code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return (v or "").strip().upper()

    @field_validator("participant_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return (v or "").strip()


class ParticipantResponse(BaseModel):
    id: str
    workshop_id: str
    name: str
    color_index: int
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JoinedWorkshop(BaseModel):
    id: str
    name: str
    code: str


class JoinResponse(BaseModel):
    participant: ParticipantResponse
    workshop: JoinedWorkshop
    first_board_id: str
    participant_token: str


class ParticipantDeleteResponse(BaseModel):
    participant_id: str
    deleted_notes: int
