from supabase import Client
from app.modules.workshops.schemas import (
    WorkshopSave, WorkshopUpdate, WorkshopResponse, WorkshopDetailResponse,
    WorkshopSaveResponse, WorkshopExport
)
from app.modules.workshops.codes import insert_with_unique_code, is_valid_code, preferring
from app.modules.workshops import timer
from app.modules.boards.service import BoardService
from app.modules.auth.service import AuthService
from app.modules.sync.change_feed import change_feed, UPDATE, DELETE
from app.config.plans_config import get_plan_limits, is_within_limit
from app.core.errors import ValidationError, NotFound, AccessDenied, CapacityExceeded, ConflictError
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def has_playable_board(boards: List[Any]) -> bool:
    """True when at least one board carries at least one question"""
    return any(len(b.questions) > 0 for b in boards)


class WorkshopService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.boards = BoardService(supabase)

    # State machine writes

    def _cas_update(self, workshop: Dict[str, Any], changes: Dict[str, Any], **conditions: Any) -> Dict[str, Any]:
        """Single conditional write guarded by the version the caller read.

        Extra keyword conditions are matched as column equalities too. An empty
        result means another request changed the row first.
        """
        version = workshop.get("version") or 0
        query = self.supabase.table("workshops")\
            .update({**changes, "version": version + 1, "updated_at": timer.utcnow().isoformat()})\
            .eq("id", workshop["id"])\
            .eq("version", version)
        for column, value in conditions.items():
            query = query.is_(column, "null") if value is None else query.eq(column, value)
        result = query.execute()
        if not result.data:
            logger.info(f"Conditional update of workshop {workshop['id']} lost at version {version}")
            raise ConflictError()
        updated = result.data[0]
        change_feed.publish(updated["id"], "workshops", UPDATE, updated)
        return updated

    def _check_active_limit(self, facilitator_id: str, exclude_workshop_id: Optional[str] = None) -> None:
        plan = AuthService(self.supabase).get_plan(facilitator_id)
        limit = get_plan_limits(plan)["max_active_workshops"]
        if limit is None:
            return
        result = self.supabase.table("workshops")\
            .select("id")\
            .eq("facilitator_id", facilitator_id)\
            .eq("status", "active")\
            .execute()
        active_ids = [w["id"] for w in (result.data or []) if w["id"] != exclude_workshop_id]
        if not is_within_limit(limit, len(active_ids)):
            logger.info(f"Facilitator {facilitator_id} hit active workshop limit ({limit}) on plan {plan}")
            raise CapacityExceeded(
                f"The {plan} plan allows {limit} active workshop(s). Upgrade to Pro for unlimited workshops.",
                limit=limit,
                current=len(active_ids),
            )

    def _discard_partial_workshop(self, workshop_id: str) -> None:
        """Undo a create or duplicate whose boards could not all be written"""
        try:
            self.boards.delete_boards_for_workshop(workshop_id)
            self.supabase.table("workshops")\
                .delete()\
                .eq("id", workshop_id)\
                .execute()
            logger.info(f"Discarded partially created workshop {workshop_id}")
        except Exception as e:
            logger.error(f"Could not discard partially created workshop {workshop_id}: {e}")

    def _repoint_active_board(self, workshop: Dict[str, Any]) -> None:
        """After a failed board replace, point an active workshop at a board that still exists"""
        if workshop["status"] != "active":
            return
        try:
            first_board_id = self.boards.first_board_id(workshop["id"])
            self._cas_update(workshop, {"active_board_id": first_board_id, **timer.reset_fields()})
            logger.info(f"Workshop {workshop['id']} repointed to board {first_board_id} after a failed save")
        except Exception as e:
            logger.error(f"Could not repoint workshop {workshop['id']} after a failed save: {e}")

    def activate(self, workshop: Dict[str, Any]) -> WorkshopResponse:
        """draft -> active. Requires a board with a question; assigns the first board and clears the timer."""
        try:
            if workshop["status"] != "draft":
                raise ValidationError("Workshop is already active")
            boards = self.boards.list_boards(workshop["id"])
            if not has_playable_board(boards):
                raise ValidationError("Add at least one board with at least one question before activating")
            self._check_active_limit(workshop["facilitator_id"], exclude_workshop_id=workshop["id"])

            updated = self._cas_update(
                workshop,
                {"status": "active", "active_board_id": boards[0].id, **timer.reset_fields()},
                status="draft",
            )
            logger.info(f"Workshop {workshop['id']} activated on board {boards[0].id}")
            return WorkshopResponse(**updated)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def advance_board(
        self,
        workshop: Dict[str, Any],
        target_board_id: str,
        expected_active_board_id: Optional[str] = None
    ) -> WorkshopResponse:
        """Switch the active board. The timer is always reset so it never carries over."""
        try:
            if workshop["status"] != "active":
                raise ValidationError("Workshop is not active")
            board = self.boards.get_board(target_board_id)
            if board.workshop_id != workshop["id"]:
                logger.warning(f"Board {target_board_id} is not part of workshop {workshop['id']}")
                raise AccessDenied("Board does not belong to this workshop")
            if expected_active_board_id is not None and expected_active_board_id != workshop.get("active_board_id"):
                raise ConflictError("The active board was already changed. Refresh and retry.")

            updated = self._cas_update(
                workshop,
                {"active_board_id": target_board_id, **timer.reset_fields()},
                active_board_id=workshop.get("active_board_id"),
            )
            logger.info(f"Workshop {workshop['id']} advanced to board {target_board_id}")
            return WorkshopResponse(**updated)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_timer(self, workshop: Dict[str, Any], running: bool) -> WorkshopResponse:
        """Start/resume or pause the active board's timer. Repeating the current state is a no-op."""
        try:
            if workshop["status"] != "active" or not workshop.get("active_board_id"):
                raise ValidationError("Workshop has no active board")
            if bool(workshop.get("timer_running")) == running:
                return WorkshopResponse(**workshop)

            board = self.boards.get_board(workshop["active_board_id"])
            if running:
                changes = timer.start_fields(board.time_limit, workshop.get("time_remaining"))
            else:
                changes = timer.stop_fields(board.time_limit, workshop.get("timer_started_at"))

            updated = self._cas_update(workshop, changes, timer_running=not running)
            logger.info(f"Workshop {workshop['id']} timer {'started' if running else 'paused'} on board {board.id}")
            return WorkshopResponse(**updated)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Create / edit

    def create_workshop(self, workshop_data: WorkshopSave, facilitator_id: str) -> WorkshopSaveResponse:
        """Create a draft with a unique join code, then activate it if requested"""
        try:
            if workshop_data.status == "active":
                if not has_playable_board(workshop_data.boards):
                    raise ValidationError("Add at least one board with at least one question before activating")
                self._check_active_limit(facilitator_id)
            if workshop_data.code is not None and not is_valid_code(workshop_data.code):
                raise ValidationError("Workshop code must be 6 letters or digits")

            workshop = insert_with_unique_code(self.supabase, {
                "name": workshop_data.name,
                "date": workshop_data.date.isoformat() if workshop_data.date else None,
                "facilitator_id": facilitator_id,
                "status": "draft",
                "active_board_id": None,
                "version": 0,
                **timer.reset_fields(),
            }, code_factory=preferring(workshop_data.code))
            try:
                self.boards.create_boards(workshop["id"], workshop_data.boards)
            except Exception:
                self._discard_partial_workshop(workshop["id"])
                raise
            logger.info(f"Workshop {workshop['id']} created with code {workshop['code']} by {facilitator_id}")

            if workshop_data.status == "active":
                workshop = self.activate(workshop).model_dump(mode="json")
            return WorkshopSaveResponse(**workshop)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def save_workshop(self, workshop: Dict[str, Any], workshop_data: WorkshopSave) -> WorkshopSaveResponse:
        """Replace-all edit of an existing workshop.

        Board and question ids do not survive a save. Notes and AI analyses that
        hung off the old rows are deleted with them. An active workshop is pointed
        at its new first board with a cleared timer; status never goes back to draft.

        The workshop row is claimed with a version-checked write before any board
        is deleted, so a stale read fails with ConflictError while the old boards
        are still intact. Until the new boards exist, an active workshop has no
        active board; if writing them fails it is pointed at whatever board is left.
        """
        try:
            if workshop["status"] == "active" or workshop_data.status == "active":
                if not has_playable_board(workshop_data.boards):
                    raise ValidationError("An active workshop needs at least one board with at least one question")

            fields = {
                "name": workshop_data.name,
                "date": workshop_data.date.isoformat() if workshop_data.date else None,
            }
            if workshop["status"] == "active":
                fields.update({"active_board_id": None, **timer.reset_fields()})
            workshop = self._cas_update(workshop, fields)

            try:
                new_boards = self.boards.replace_boards(workshop["id"], workshop_data.boards)
            except Exception:
                self._repoint_active_board(workshop)
                raise

            if workshop["status"] == "active":
                workshop = self._cas_update(workshop, {"active_board_id": new_boards[0].id}, active_board_id=None)
            else:
                if workshop_data.status == "active":
                    workshop = self.activate(workshop).model_dump(mode="json")
            logger.info(f"Workshop {workshop['id']} saved with {len(new_boards)} board(s)")
            return WorkshopSaveResponse(**workshop)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def duplicate_workshop(self, workshop: Dict[str, Any]) -> WorkshopSaveResponse:
        """New draft with a fresh code and a copy of the board/question structure"""
        try:
            copy = insert_with_unique_code(self.supabase, {
                "name": f"{workshop['name']} (copy)",
                "date": workshop.get("date"),
                "facilitator_id": workshop["facilitator_id"],
                "status": "draft",
                "active_board_id": None,
                "version": 0,
                **timer.reset_fields(),
            })
            try:
                self.boards.copy_boards(workshop["id"], copy["id"])
            except Exception:
                self._discard_partial_workshop(copy["id"])
                raise
            logger.info(f"Workshop {workshop['id']} duplicated as {copy['id']}")
            return WorkshopSaveResponse(**copy)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_workshop(self, workshop: Dict[str, Any], workshop_data: WorkshopUpdate) -> WorkshopResponse:
        """Update name/date only, as a version-checked write like every other workshop change"""
        try:
            update_data = {}
            if workshop_data.name:
                update_data["name"] = workshop_data.name.strip()
            if workshop_data.date is not None:
                update_data["date"] = workshop_data.date.isoformat()
            if not update_data:
                return WorkshopResponse(**workshop)

            return WorkshopResponse(**self._cas_update(workshop, update_data))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Reads

    def get_workshop_by_id(self, workshop_id: str) -> WorkshopResponse:
        try:
            result = self.supabase.table("workshops")\
                .select("*")\
                .eq("id", workshop_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise NotFound("Workshop not found")

            return WorkshopResponse(**result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_workshop_detail(self, workshop: Dict[str, Any]) -> WorkshopDetailResponse:
        """Workshop with boards/questions and whether any note exists yet"""
        try:
            boards = self.boards.list_boards(workshop["id"])
            question_ids = [q.id for b in boards for q in b.questions]
            has_responses = False
            if question_ids:
                notes = self.supabase.table("notes")\
                    .select("id")\
                    .in_("question_id", question_ids)\
                    .limit(1)\
                    .execute()
                has_responses = bool(notes.data)
            return WorkshopDetailResponse(**workshop, boards=boards, has_responses=has_responses)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_workshops(self, facilitator_id: str, limit: int = 50, offset: int = 0) -> List[WorkshopResponse]:
        """Facilitator's own workshops, newest first"""
        try:
            result = self.supabase.table("workshops")\
                .select("*")\
                .eq("facilitator_id", facilitator_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [WorkshopResponse(**workshop) for workshop in (result.data or [])]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def export_workshop(self, workshop: Dict[str, Any]) -> WorkshopExport:
        """Boards -> questions -> notes plus each board's latest analysis"""
        try:
            boards = self.boards.list_boards(workshop["id"])
            question_ids = [q.id for b in boards for q in b.questions]
            notes: List[Dict[str, Any]] = []
            if question_ids:
                notes = self.supabase.table("notes")\
                    .select("*")\
                    .in_("question_id", question_ids)\
                    .order("timestamp")\
                    .execute().data or []

            analyses: Dict[str, Dict[str, Any]] = {}
            if boards:
                rows = self.supabase.table("ai_analyses")\
                    .select("*")\
                    .in_("board_id", [b.id for b in boards])\
                    .order("created_at", desc=True)\
                    .execute().data or []
                for row in rows:
                    analyses.setdefault(row["board_id"], row)

            participants = self.supabase.table("participants")\
                .select("id", count="exact")\
                .eq("workshop_id", workshop["id"])\
                .execute()

            exported_boards = []
            for board in boards:
                exported_boards.append({
                    "id": board.id,
                    "title": board.title,
                    "time_limit": board.time_limit,
                    "questions": [
                        {
                            "id": q.id,
                            "title": q.title,
                            "notes": [
                                {
                                    "content": n["content"],
                                    "author_name": n.get("author_name"),
                                    "color_index": n.get("color_index", 0),
                                    "timestamp": n.get("timestamp"),
                                }
                                for n in notes if n["question_id"] == q.id
                            ],
                        }
                        for q in board.questions
                    ],
                    "analysis": (analyses.get(board.id) or {}).get("analysis"),
                })

            return WorkshopExport(
                workshop=WorkshopResponse(**workshop),
                participant_count=participants.count if participants.count is not None else len(participants.data or []),
                boards=exported_boards,
                exported_at=timer.utcnow(),
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Delete

    def delete_workshop(self, workshop: Dict[str, Any]) -> bool:
        """Ordered cascade: boards (notes, questions, analyses) -> participants -> workshop.

        Each step runs only after the previous one succeeded, so a failure leaves
        the workshop row in place and the delete can simply be retried.
        """
        try:
            workshop_id = workshop["id"]
            self.boards.delete_boards_for_workshop(workshop_id)
            self.supabase.table("participants")\
                .delete()\
                .eq("workshop_id", workshop_id)\
                .execute()
            result = self.supabase.table("workshops")\
                .delete()\
                .eq("id", workshop_id)\
                .execute()
            logger.info(f"Workshop {workshop_id} deleted")
            change_feed.publish(workshop_id, "workshops", DELETE, {"id": workshop_id})
            return len(result.data or []) > 0
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error deleting workshop {workshop.get('id')}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def assign_orphaned_workshops(self, facilitator_id: str) -> List[str]:
        """Give legacy workshops without a facilitator to facilitator_id"""
        try:
            result = self.supabase.table("workshops")\
                .update({"facilitator_id": facilitator_id})\
                .is_("facilitator_id", "null")\
                .execute()
            ids = [w["id"] for w in (result.data or [])]
            logger.info(f"Assigned {len(ids)} orphaned workshop(s) to {facilitator_id}")
            return ids
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
