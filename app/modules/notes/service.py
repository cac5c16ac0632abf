from supabase import Client
from app.modules.notes.schemas import NoteResponse, WorkshopNotesResponse, MAX_NOTE_LENGTH
from app.modules.participants.schemas import ParticipantSession
from app.modules.boards.service import BoardService
from app.modules.sync.change_feed import change_feed, INSERT, UPDATE, DELETE
from app.core.dependencies import resolve_question_workshop_id, check_participant_in_workshop, fetch_row, is_valid_uuid
from app.core.errors import ValidationError, NotFound
from typing import List, Dict, Any
from fastapi import HTTPException
import secrets
import logging

logger = logging.getLogger(__name__)

NOTE_COLORS = 6


def clean_content(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Note content is required")
    if len(content) > MAX_NOTE_LENGTH:
        raise ValidationError(f"Note content must be at most {MAX_NOTE_LENGTH} characters")
    return content


class NoteService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_note(self, session: ParticipantSession, question_id: str, content: str) -> NoteResponse:
        """Insert a note after checking question -> board -> workshop against the participant's workshop"""
        try:
            content = clean_content(content)
            question, workshop_id = resolve_question_workshop_id(question_id, self.supabase)
            check_participant_in_workshop(session, workshop_id)

            result = self.supabase.table("notes").insert({
                "question_id": question["id"],
                "content": content,
                "author_id": session.id,
                "author_name": session.name,
                "color_index": secrets.randbelow(NOTE_COLORS),
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create note")
            note = result.data[0]
            change_feed.publish(workshop_id, "notes", INSERT, note)
            logger.debug(f"Note {note['id']} created by participant {session.id}")
            return NoteResponse(**note)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_notes(self, question_ids: List[str]) -> List[NoteResponse]:
        """Notes of the given questions in arrival order"""
        try:
            if not question_ids:
                return []
            result = self.supabase.table("notes")\
                .select("*")\
                .in_("question_id", question_ids)\
                .order("timestamp")\
                .execute()
            return [NoteResponse(**n) for n in (result.data or [])]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_notes_for_workshop(self, workshop_id: str) -> WorkshopNotesResponse:
        try:
            question_to_board = BoardService(self.supabase).question_ids_for_workshop(workshop_id)
            grouped: Dict[str, List[NoteResponse]] = {board_id: [] for board_id in question_to_board.values()}
            for note in self.list_notes(list(question_to_board.keys())):
                grouped[question_to_board[note.question_id]].append(note)
            return WorkshopNotesResponse(workshop_id=workshop_id, boards=grouped)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_note(self, note_id: str) -> Dict[str, Any]:
        note = fetch_row(self.supabase, "notes", note_id) if is_valid_uuid(note_id) else None
        if not note:
            raise NotFound("Note not found")
        return note

    def move_note(self, note_id: str, target_question: Dict[str, Any], target_workshop: Dict[str, Any]) -> NoteResponse:
        """Re-parent a note onto target_question.

        Authorization covers the target side only: the caller has already proven
        ownership of target_workshop. The note's current workshop is not compared.
        """
        try:
            note = self.get_note(note_id)
            result = self.supabase.table("notes")\
                .update({"question_id": target_question["id"]})\
                .eq("id", note["id"])\
                .execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to move note")
            moved = result.data[0]
            change_feed.publish(target_workshop["id"], "notes", UPDATE, moved)
            logger.info(f"Note {note_id} moved from question {note['question_id']} to {target_question['id']}")
            return NoteResponse(**moved)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_note(self, note: Dict[str, Any], workshop_id: str) -> bool:
        try:
            result = self.supabase.table("notes")\
                .delete()\
                .eq("id", note["id"])\
                .execute()
            if not result.data:
                return False
            change_feed.publish(workshop_id, "notes", DELETE, note)
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def copy_notes(self, notes: List[Dict[str, Any]], target_question_id: str, workshop_id: str) -> List[NoteResponse]:
        """Re-create notes under another question, keeping author and colour"""
        if not notes:
            return []
        result = self.supabase.table("notes").insert([
            {
                "question_id": target_question_id,
                "content": n["content"],
                "author_id": n.get("author_id"),
                "author_name": n.get("author_name"),
                "color_index": n.get("color_index", 0),
            }
            for n in notes
        ]).execute()
        created = result.data or []
        for note in created:
            change_feed.publish(workshop_id, "notes", INSERT, note)
        return [NoteResponse(**n) for n in created]
