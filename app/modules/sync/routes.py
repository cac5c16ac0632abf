from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from app.database.supabase_client import get_supabase
from app.modules.sync.schemas import WorkshopStatusResponse, InitialBoardData, ParticipantCountResponse
from app.modules.sync.service import SyncService
from app.modules.sync.change_feed import ChangeFeed, get_change_feed
from app.modules.notes.schemas import NoteResponse
from app.modules.auth.schemas import FacilitatorIdentity
from app.modules.participants.schemas import ParticipantSession
from app.core.dependencies import get_current_facilitator, get_participant_session, check_workshop_owner
from app.config import settings
from supabase import Client
from typing import AsyncGenerator, List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


def get_sync_service(supabase: Client = Depends(get_supabase)) -> SyncService:
    return SyncService(supabase)


# Participant pull model

@router.get("/participant/workshops/{workshop_id}/status", response_model=WorkshopStatusResponse)
async def workshop_status(
    workshop_id: str,
    session: ParticipantSession = Depends(get_participant_session),
    service: SyncService = Depends(get_sync_service)
):
    """Active board and timer state, polled every few seconds"""
    return service.get_status(session, workshop_id)


@router.get("/participant/workshops/{workshop_id}/boards/{board_id}", response_model=InitialBoardData)
async def initial_board_data(
    workshop_id: str,
    board_id: str,
    session: ParticipantSession = Depends(get_participant_session),
    service: SyncService = Depends(get_sync_service)
):
    return service.get_initial_data(session, workshop_id, board_id)


@router.get("/participant/notes", response_model=List[NoteResponse])
async def participant_notes(
    question_ids: List[str] = Query(default=[]),
    session: ParticipantSession = Depends(get_participant_session),
    service: SyncService = Depends(get_sync_service)
):
    return service.get_notes(session, question_ids)


@router.get("/participant/workshops/{workshop_id}/participant-count", response_model=ParticipantCountResponse)
async def participant_count(
    workshop_id: str,
    session: ParticipantSession = Depends(get_participant_session),
    service: SyncService = Depends(get_sync_service)
):
    return service.get_participant_count(session, workshop_id)


# Facilitator push model

@router.get("/facilitator/workshops/{workshop_id}/events")
async def workshop_events(
    workshop_id: str,
    request: Request,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    supabase: Client = Depends(get_supabase),
    feed: ChangeFeed = Depends(get_change_feed)
):
    """Server-sent events for notes, participants, ai_analyses and workshops changes"""
    check_workshop_owner(workshop_id, facilitator, supabase)

    async def event_generator() -> AsyncGenerator[str, None]:
        yield "event: ready\ndata: {}\n\n"
        async for event in feed.subscribe(workshop_id, timeout=settings.change_feed_keepalive_seconds):
            if await request.is_disconnected():
                break
            if event is None:
                yield ": keep-alive\n\n"
                continue
            yield f"event: {event.table}\n"
            yield f"data: {event.to_json()}\n\n"
        logger.debug(f"Event stream for workshop {workshop_id} closed")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
