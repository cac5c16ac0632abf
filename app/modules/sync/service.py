from supabase import Client
from app.modules.sync.schemas import (
    WorkshopStatusResponse, WorkshopSummary, InitialBoardData, ParticipantCountResponse
)
from app.modules.participants.schemas import ParticipantSession
from app.modules.participants.service import ParticipantService
from app.modules.boards.service import BoardService
from app.modules.notes.service import NoteService
from app.modules.notes.schemas import NoteResponse
from app.core.dependencies import fetch_row, is_valid_uuid, check_participant_in_workshop
from app.core.errors import NotFound
from app.config import settings
from typing import List, Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class SyncService:
    """Authorization-checked read side for participants"""

    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.boards = BoardService(supabase)
        self.notes = NoteService(supabase)
        self.participants = ParticipantService(supabase)

    def _workshop_for(self, session: ParticipantSession, workshop_id: str) -> Dict[str, Any]:
        check_participant_in_workshop(session, workshop_id)
        workshop = fetch_row(self.supabase, "workshops", workshop_id) if is_valid_uuid(workshop_id) else None
        if not workshop:
            raise NotFound("Workshop not found")
        return workshop

    def get_status(self, session: ParticipantSession, workshop_id: str) -> WorkshopStatusResponse:
        try:
            workshop = self._workshop_for(session, workshop_id)
            board = None
            if workshop.get("active_board_id"):
                board = fetch_row(self.supabase, "boards", workshop["active_board_id"], "id, title, time_limit")
            return WorkshopStatusResponse(
                workshop_id=workshop["id"],
                status=workshop["status"],
                active_board_id=workshop.get("active_board_id"),
                new_board_title=board["title"] if board else None,
                time_limit=board["time_limit"] if board else None,
                timer_running=bool(workshop.get("timer_running")),
                timer_started_at=workshop.get("timer_started_at"),
                remaining_seconds=workshop.get("time_remaining"),
                poll_interval_seconds=settings.status_poll_interval_seconds,
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_initial_data(self, session: ParticipantSession, workshop_id: str, board_id: str) -> InitialBoardData:
        """Full snapshot of one board for a participant that just joined or switched boards"""
        try:
            workshop = self._workshop_for(session, workshop_id)
            if not is_valid_uuid(board_id):
                raise NotFound("Board not found")
            board = self.boards.get_board(board_id)
            if board.workshop_id != workshop["id"]:
                raise NotFound("Board not found")

            notes = self.notes.list_notes([q.id for q in board.questions])
            return InitialBoardData(
                workshop=WorkshopSummary(**workshop),
                board=board,
                questions=board.questions,
                notes=notes,
                participant_count=self.participants.count_participants(workshop["id"]),
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_notes(self, session: ParticipantSession, question_ids: List[str]) -> List[NoteResponse]:
        """Notes for the requested questions; ids outside the participant's workshop are dropped"""
        try:
            requested = [q for q in dict.fromkeys(question_ids) if is_valid_uuid(q)]
            if not requested:
                return []
            allowed = self.boards.question_ids_for_workshop(session.workshop_id)
            visible = [q for q in requested if q in allowed]
            if len(visible) < len(requested):
                logger.warning(f"Participant {session.id} asked for {len(requested) - len(visible)} question(s) outside its workshop")
            return self.notes.list_notes(visible)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_participant_count(self, session: ParticipantSession, workshop_id: str) -> ParticipantCountResponse:
        try:
            check_participant_in_workshop(session, workshop_id)
            return ParticipantCountResponse(
                workshop_id=workshop_id,
                participant_count=self.participants.count_participants(workshop_id),
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
