"""
Core dependencies for route protection and ownership checking.

The storage client runs with the service-role key, so nothing below the
application enforces who may read or write what. Every helper here walks the
ownership chain (workshop -> board -> question -> note, or workshop -> participant)
and raises before a caller gets to touch a row it does not own.
"""

import re
import logging
from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials, APIKeyHeader
from supabase import Client
from typing import Optional, Dict, Any, Tuple

from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.auth.schemas import FacilitatorIdentity
from app.modules.participants.schemas import ParticipantSession
from app.config.plans_config import get_plan_limits
from app.core.errors import AccessDenied, NotFound, InvalidSession, CapacityExceeded

logger = logging.getLogger(__name__)

security = HTTPBearer()
participant_token_header = APIKeyHeader(name="X-Participant-Token", auto_error=False)

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def is_valid_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(_UUID_RE.match(value))


def fetch_row(supabase: Client, table: str, row_id: str, columns: str = "*") -> Optional[Dict[str, Any]]:
    """Single row by primary key, or None. Tolerates maybe_single() returning no response."""
    result = supabase.table(table)\
        .select(columns)\
        .eq("id", row_id)\
        .maybe_single()\
        .execute()
    if not result or not result.data:
        return None
    return result.data


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_facilitator(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> FacilitatorIdentity:
    """Extract the authenticated facilitator from the bearer JWT"""
    return auth_service.get_current_user(credentials.credentials)


def get_participant_session(
    token: Optional[str] = Security(participant_token_header),
    supabase: Client = Depends(get_supabase)
) -> ParticipantSession:
    """Resolve the anonymous participant behind an X-Participant-Token header"""
    if not token or not is_valid_uuid(token):
        raise InvalidSession("Valid participant token is required")
    participant = fetch_row(supabase, "participants", token, "id, workshop_id, name, color_index")
    if not participant:
        logger.info("Unknown participant token presented")
        raise InvalidSession()
    return ParticipantSession(**participant)


def require_plan_feature(feature: str):
    """Factory function to create a plan gate dependency (e.g. "ai_enabled")"""
    def check_feature(
        facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
        auth_service: AuthService = Depends(get_auth_service)
    ) -> FacilitatorIdentity:
        plan = auth_service.get_plan(facilitator.id)
        if not get_plan_limits(plan).get(feature):
            raise CapacityExceeded(f"Your {plan} plan does not include this feature. Upgrade to Pro to unlock it.")
        return facilitator
    return check_feature


# Facilitator-owner-of-workshop chain

def check_workshop_owner(
    workshop_id: str,
    facilitator: FacilitatorIdentity,
    supabase: Client,
    workshop: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Workshop row if the facilitator owns it. Optional workshop dict avoids duplicate fetch."""
    if workshop is None:
        if not is_valid_uuid(workshop_id):
            raise NotFound("Workshop not found")
        workshop = fetch_row(supabase, "workshops", workshop_id)
        if not workshop:
            raise NotFound("Workshop not found")
    if workshop.get("facilitator_id") != facilitator.id:
        logger.warning(f"Facilitator {facilitator.id} denied access to workshop {workshop_id}")
        raise AccessDenied("You are not the facilitator of this workshop")
    return workshop


def check_board_owner(board_id: str, facilitator: FacilitatorIdentity, supabase: Client) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """(board, workshop) if the board's workshop is owned by the facilitator"""
    board = fetch_row(supabase, "boards", board_id) if is_valid_uuid(board_id) else None
    if not board:
        raise NotFound("Board not found")
    workshop = check_workshop_owner(board["workshop_id"], facilitator, supabase)
    return board, workshop


def check_question_owner(question_id: str, facilitator: FacilitatorIdentity, supabase: Client) -> Tuple[Dict[str, Any], Dict[str, Any], Dict[str, Any]]:
    """(question, board, workshop) if the question's board's workshop is owned by the facilitator"""
    question = fetch_row(supabase, "questions", question_id) if is_valid_uuid(question_id) else None
    if not question:
        raise NotFound("Question not found")
    board, workshop = check_board_owner(question["board_id"], facilitator, supabase)
    return question, board, workshop


def check_note_owner(note_id: str, facilitator: FacilitatorIdentity, supabase: Client) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """(note, workshop) after walking note -> question -> board -> workshop"""
    note = fetch_row(supabase, "notes", note_id) if is_valid_uuid(note_id) else None
    if not note:
        raise NotFound("Note not found")
    _, _, workshop = check_question_owner(note["question_id"], facilitator, supabase)
    return note, workshop


def check_participant_owner(participant_id: str, facilitator: FacilitatorIdentity, supabase: Client) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """(participant, workshop) if the participant joined a workshop owned by the facilitator"""
    participant = fetch_row(supabase, "participants", participant_id) if is_valid_uuid(participant_id) else None
    if not participant:
        raise NotFound("Participant not found")
    workshop = check_workshop_owner(participant["workshop_id"], facilitator, supabase)
    return participant, workshop


def check_analysis_owner(analysis_id: str, facilitator: FacilitatorIdentity, supabase: Client) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    analysis = fetch_row(supabase, "ai_analyses", analysis_id) if is_valid_uuid(analysis_id) else None
    if not analysis:
        raise NotFound("Analysis not found")
    board, _ = check_board_owner(analysis["board_id"], facilitator, supabase)
    return analysis, board


# Participant-of-workshop chain

def check_participant_in_workshop(session: ParticipantSession, workshop_id: str) -> None:
    if session.workshop_id != workshop_id:
        logger.warning(f"Participant {session.id} requested workshop {workshop_id} outside its own")
        raise AccessDenied()


def resolve_question_workshop_id(question_id: str, supabase: Client) -> Tuple[Dict[str, Any], str]:
    """(question, workshop_id) for a question, walking question -> board"""
    question = fetch_row(supabase, "questions", question_id, "id, board_id") if is_valid_uuid(question_id) else None
    if not question:
        raise NotFound("Question not found")
    board = fetch_row(supabase, "boards", question["board_id"], "id, workshop_id")
    if not board:
        raise NotFound("Question not found")
    return question, board["workshop_id"]


def check_note_author(note_id: str, session: ParticipantSession, supabase: Client) -> Dict[str, Any]:
    """Note row if the participant authored it and it still sits in the participant's workshop"""
    note = fetch_row(supabase, "notes", note_id) if is_valid_uuid(note_id) else None
    if not note:
        raise NotFound("Note not found")
    if note.get("author_id") != session.id:
        raise AccessDenied("You can only delete your own notes")
    _, workshop_id = resolve_question_workshop_id(note["question_id"], supabase)
    check_participant_in_workshop(session, workshop_id)
    return note
