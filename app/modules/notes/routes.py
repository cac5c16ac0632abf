from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.notes.schemas import NoteCreate, NoteMoveRequest, NoteResponse, WorkshopNotesResponse
from app.modules.notes.service import NoteService
from app.modules.auth.schemas import FacilitatorIdentity
from app.modules.participants.schemas import ParticipantSession
from app.core.dependencies import (
    get_current_facilitator, get_participant_session, check_workshop_owner,
    check_note_owner, check_question_owner, check_note_author
)
from supabase import Client

router = APIRouter(tags=["notes"])


def get_note_service(supabase: Client = Depends(get_supabase)) -> NoteService:
    return NoteService(supabase)


# Participant side

@router.post("/participant/notes", response_model=NoteResponse, status_code=201)
async def create_note(
    note_data: NoteCreate,
    session: ParticipantSession = Depends(get_participant_session),
    service: NoteService = Depends(get_note_service)
):
    """Post a note to a question of the participant's own workshop"""
    return service.create_note(session, note_data.question_id, note_data.content)


@router.delete("/participant/notes/{note_id}", status_code=204)
async def delete_own_note(
    note_id: str,
    session: ParticipantSession = Depends(get_participant_session),
    service: NoteService = Depends(get_note_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete a note the participant wrote"""
    note = check_note_author(note_id, session, supabase)
    service.delete_note(note, session.workshop_id)
    return None


# Facilitator side

@router.get("/workshops/{workshop_id}/notes", response_model=WorkshopNotesResponse)
async def list_workshop_notes(
    workshop_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: NoteService = Depends(get_note_service),
    supabase: Client = Depends(get_supabase)
):
    check_workshop_owner(workshop_id, facilitator, supabase)
    return service.list_notes_for_workshop(workshop_id)


@router.post("/notes/{note_id}/move", response_model=NoteResponse)
async def move_note(
    note_id: str,
    request: NoteMoveRequest,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: NoteService = Depends(get_note_service),
    supabase: Client = Depends(get_supabase)
):
    """Move a note to another question of a workshop the facilitator owns"""
    target_question, _, workshop = check_question_owner(request.target_question_id, facilitator, supabase)
    return service.move_note(note_id, target_question, workshop)


@router.delete("/notes/{note_id}", status_code=204)
async def delete_note(
    note_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: NoteService = Depends(get_note_service),
    supabase: Client = Depends(get_supabase)
):
    note, workshop = check_note_owner(note_id, facilitator, supabase)
    service.delete_note(note, workshop["id"])
    return None
