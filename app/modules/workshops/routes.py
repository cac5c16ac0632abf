from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.workshops.schemas import (
    WorkshopSave, WorkshopUpdate, WorkshopResponse, WorkshopDetailResponse,
    WorkshopSaveResponse, WorkshopExport, AdvanceBoardRequest, TimerRequest
)
from app.modules.workshops.service import WorkshopService
from app.modules.auth.schemas import FacilitatorIdentity
from app.core.dependencies import get_current_facilitator, check_workshop_owner
from supabase import Client
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workshops", tags=["workshops"])


def get_workshop_service(supabase: Client = Depends(get_supabase)) -> WorkshopService:
    return WorkshopService(supabase)


@router.post("", response_model=WorkshopSaveResponse, status_code=201)
async def create_workshop(
    workshop_data: WorkshopSave,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service)
):
    """Create a workshop as draft (or active) with its boards and questions"""
    return service.create_workshop(workshop_data, facilitator.id)


@router.get("", response_model=List[WorkshopResponse])
async def list_workshops(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service)
):
    """List the facilitator's workshops, newest first"""
    return service.list_workshops(facilitator.id, limit=limit, offset=offset)


@router.get("/{workshop_id}", response_model=WorkshopDetailResponse)
async def get_workshop(
    workshop_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    """Workshop with boards, questions and has_responses"""
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    return service.get_workshop_detail(workshop)


@router.put("/{workshop_id}", response_model=WorkshopSaveResponse)
async def save_workshop(
    workshop_id: str,
    workshop_data: WorkshopSave,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    """Replace name, date and all boards/questions of a workshop"""
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    return service.save_workshop(workshop, workshop_data)


@router.patch("/{workshop_id}", response_model=WorkshopResponse)
async def update_workshop(
    workshop_id: str,
    workshop_data: WorkshopUpdate,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    """Update name/date without touching boards"""
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    return service.update_workshop(workshop, workshop_data)


@router.post("/{workshop_id}/activate", response_model=WorkshopResponse)
async def activate_workshop(
    workshop_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    return service.activate(workshop)


@router.post("/{workshop_id}/advance", response_model=WorkshopResponse)
async def advance_board(
    workshop_id: str,
    request: AdvanceBoardRequest,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    """Switch the active board and reset the timer"""
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    return service.advance_board(workshop, request.board_id, request.expected_active_board_id)


@router.post("/{workshop_id}/timer", response_model=WorkshopResponse)
async def set_timer(
    workshop_id: str,
    request: TimerRequest,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    """Start/resume (running=true) or pause (running=false) the timer"""
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    return service.set_timer(workshop, request.running)


@router.post("/{workshop_id}/duplicate", response_model=WorkshopSaveResponse, status_code=201)
async def duplicate_workshop(
    workshop_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    return service.duplicate_workshop(workshop)


@router.get("/{workshop_id}/export", response_model=WorkshopExport)
async def export_workshop(
    workshop_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    """Results document for the workshop (boards, questions, notes, latest analyses)"""
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    return service.export_workshop(workshop)


@router.delete("/{workshop_id}", status_code=204)
async def delete_workshop(
    workshop_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: WorkshopService = Depends(get_workshop_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete workshop with all boards, questions, notes, analyses and participants"""
    workshop = check_workshop_owner(workshop_id, facilitator, supabase)
    service.delete_workshop(workshop)
    return None
