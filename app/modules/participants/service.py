from supabase import Client
from app.modules.participants.schemas import (
    JoinRequest, JoinResponse, JoinedWorkshop, ParticipantResponse, ParticipantDeleteResponse
)
from app.modules.workshops.codes import is_valid_code
from app.modules.auth.service import AuthService
from app.modules.sync.change_feed import change_feed, INSERT, DELETE
from app.config.plans_config import get_plan_limits, is_within_limit
from app.core.errors import ValidationError, NotFound, CapacityExceeded
from typing import List, Dict, Any
from fastapi import HTTPException
import secrets
import logging

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PARTICIPANT_COLORS = 6


class ParticipantService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def count_participants(self, workshop_id: str) -> int:
        result = self.supabase.table("participants")\
            .select("id", count="exact")\
            .eq("workshop_id", workshop_id)\
            .execute()
        if result.count is not None:
            return result.count
        return len(result.data or [])

    def _first_board_id(self, workshop: Dict[str, Any]) -> str:
        if workshop.get("active_board_id"):
            return workshop["active_board_id"]
        result = self.supabase.table("boards")\
            .select("id")\
            .eq("workshop_id", workshop["id"])\
            .order("order_index")\
            .limit(1)\
            .execute()
        if not result.data:
            raise ValidationError("This workshop has no boards yet")
        return result.data[0]["id"]

    def join(self, join_data: JoinRequest) -> JoinResponse:
        """Public join by code. Issues the participant id that serves as its bearer token."""
        try:
            if not is_valid_code(join_data.workshop_code):
                raise ValidationError("Workshop code must be 6 letters or digits")
            name = join_data.participant_name
            if len(name) < NAME_MIN_LENGTH or len(name) > NAME_MAX_LENGTH:
                raise ValidationError(f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters")

            result = self.supabase.table("workshops")\
                .select("id, name, code, status, active_board_id, facilitator_id")\
                .eq("code", join_data.workshop_code)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                raise NotFound("Workshop not found")
            workshop = result.data

            if workshop["status"] != "active":
                raise ValidationError("This workshop has not started yet")
            first_board_id = self._first_board_id(workshop)

            plan = AuthService(self.supabase).get_plan(workshop["facilitator_id"]) if workshop.get("facilitator_id") else None
            limit = get_plan_limits(plan)["max_participants"]
            if limit is not None:
                current = self.count_participants(workshop["id"])
                if not is_within_limit(limit, current):
                    logger.info(f"Workshop {workshop['id']} is full ({current}/{limit})")
                    raise CapacityExceeded(
                        "This workshop has reached its participant limit. The facilitator can upgrade to Pro for unlimited participants.",
                        limit=limit,
                        current=current,
                    )

            insert = self.supabase.table("participants").insert({
                "workshop_id": workshop["id"],
                "name": name,
                "color_index": secrets.randbelow(PARTICIPANT_COLORS),
            }).execute()
            if not insert.data:
                raise HTTPException(status_code=500, detail="Failed to join workshop")
            participant = insert.data[0]
            change_feed.publish(workshop["id"], "participants", INSERT, participant)
            logger.info(f"Participant {participant['id']} joined workshop {workshop['id']}")

            return JoinResponse(
                participant=ParticipantResponse(**participant),
                workshop=JoinedWorkshop(id=workshop["id"], name=workshop["name"], code=workshop["code"]),
                first_board_id=first_board_id,
                participant_token=participant["id"],
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_participants(self, workshop_id: str) -> List[ParticipantResponse]:
        """Roster in join order"""
        try:
            result = self.supabase.table("participants")\
                .select("*")\
                .eq("workshop_id", workshop_id)\
                .order("joined_at")\
                .execute()
            return [ParticipantResponse(**p) for p in (result.data or [])]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_participant(self, participant: Dict[str, Any]) -> ParticipantDeleteResponse:
        """Remove a participant and every note they authored.

        Notes go first. If that step fails the exception propagates and the
        participant row is left untouched, so nothing is half-removed.
        """
        try:
            notes = self.supabase.table("notes")\
                .delete()\
                .eq("author_id", participant["id"])\
                .execute()
            deleted_notes = notes.data or []

            removed = self.supabase.table("participants")\
                .delete()\
                .eq("id", participant["id"])\
                .execute()

            workshop_id = participant["workshop_id"]
            for note in deleted_notes:
                change_feed.publish(workshop_id, "notes", DELETE, note)
            if removed.data:
                change_feed.publish(workshop_id, "participants", DELETE, participant)
            logger.info(f"Participant {participant['id']} removed with {len(deleted_notes)} note(s)")
            return ParticipantDeleteResponse(participant_id=participant["id"], deleted_notes=len(deleted_notes))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error deleting participant {participant.get('id')}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
