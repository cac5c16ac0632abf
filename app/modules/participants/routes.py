from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.participants.schemas import (
    JoinRequest, JoinResponse, ParticipantResponse, ParticipantDeleteResponse
)
from app.modules.participants.service import ParticipantService
from app.modules.auth.schemas import FacilitatorIdentity
from app.core.dependencies import get_current_facilitator, check_workshop_owner, check_participant_owner
from supabase import Client
from typing import List

router = APIRouter(tags=["participants"])


def get_participant_service(supabase: Client = Depends(get_supabase)) -> ParticipantService:
    return ParticipantService(supabase)


@router.post("/join", response_model=JoinResponse, status_code=201)
async def join_workshop(
    join_data: JoinRequest,
    service: ParticipantService = Depends(get_participant_service)
):
    """Join an active workshop by code. No authentication; returns the participant token."""
    return service.join(join_data)


@router.get("/workshops/{workshop_id}/participants", response_model=List[ParticipantResponse])
async def list_participants(
    workshop_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: ParticipantService = Depends(get_participant_service),
    supabase: Client = Depends(get_supabase)
):
    check_workshop_owner(workshop_id, facilitator, supabase)
    return service.list_participants(workshop_id)


@router.delete("/participants/{participant_id}", response_model=ParticipantDeleteResponse)
async def delete_participant(
    participant_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: ParticipantService = Depends(get_participant_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a participant and all of their notes"""
    participant, _ = check_participant_owner(participant_id, facilitator, supabase)
    return service.delete_participant(participant)
