from supabase import Client
from app.modules.boards.schemas import BoardInput, BoardResponse, QuestionResponse
from app.core.errors import NotFound
from typing import List, Dict, Any, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class BoardService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_boards(self, workshop_id: str, with_questions: bool = True) -> List[BoardResponse]:
        """Boards of a workshop in display order, each with its questions"""
        try:
            result = self.supabase.table("boards")\
                .select("*")\
                .eq("workshop_id", workshop_id)\
                .order("order_index")\
                .execute()
            boards = result.data or []
            if not boards or not with_questions:
                return [BoardResponse(**b) for b in boards]

            questions = self._questions_for_boards([b["id"] for b in boards])
            return [
                BoardResponse(**board, questions=[q for q in questions if q.board_id == board["id"]])
                for board in boards
            ]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_board(self, board_id: str) -> BoardResponse:
        """Board by id, with questions"""
        try:
            result = self.supabase.table("boards")\
                .select("*")\
                .eq("id", board_id)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                raise NotFound("Board not found")
            return BoardResponse(**result.data, questions=self.list_questions(board_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_questions(self, board_id: str) -> List[QuestionResponse]:
        return self._questions_for_boards([board_id])

    def _questions_for_boards(self, board_ids: List[str]) -> List[QuestionResponse]:
        if not board_ids:
            return []
        result = self.supabase.table("questions")\
            .select("*")\
            .in_("board_id", board_ids)\
            .order("order_index")\
            .execute()
        return [QuestionResponse(**q) for q in (result.data or [])]

    def first_board_id(self, workshop_id: str) -> Optional[str]:
        result = self.supabase.table("boards")\
            .select("id")\
            .eq("workshop_id", workshop_id)\
            .order("order_index")\
            .limit(1)\
            .execute()
        return result.data[0]["id"] if result.data else None

    def create_question(self, board_id: str, title: str) -> QuestionResponse:
        """Append a question after the board's current last question"""
        try:
            last = self.supabase.table("questions")\
                .select("order_index")\
                .eq("board_id", board_id)\
                .order("order_index", desc=True)\
                .limit(1)\
                .execute()
            next_index = (last.data[0]["order_index"] + 1) if last.data else 0
            result = self.supabase.table("questions").insert({
                "board_id": board_id,
                "title": title,
                "order_index": next_index,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create question")
            return QuestionResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_boards(self, workshop_id: str, boards: List[BoardInput]) -> List[BoardResponse]:
        """Insert boards and their questions in the given order"""
        created: List[BoardResponse] = []
        for board_index, board in enumerate(boards):
            board_result = self.supabase.table("boards").insert({
                "workshop_id": workshop_id,
                "title": board.title,
                "time_limit": board.time_limit,
                "color_index": board.color_index if board.color_index is not None else board_index,
                "order_index": board_index,
            }).execute()
            if not board_result.data:
                raise HTTPException(status_code=500, detail="Failed to create board")
            new_board = board_result.data[0]

            questions: List[QuestionResponse] = []
            if board.questions:
                questions_result = self.supabase.table("questions").insert([
                    {"board_id": new_board["id"], "title": q.title, "order_index": q_index}
                    for q_index, q in enumerate(board.questions)
                ]).execute()
                questions = [QuestionResponse(**q) for q in (questions_result.data or [])]
            created.append(BoardResponse(**new_board, questions=questions))
            logger.debug(f"Created board {new_board['id']} with {len(questions)} question(s)")
        return created

    def delete_boards_for_workshop(self, workshop_id: str) -> int:
        """Delete every board of a workshop and everything below it, children first.

        Steps run strictly in order and stop at the first failure, so a partial
        run leaves rows that still reference existing parents (retryable) rather
        than orphans.
        """
        boards = self.supabase.table("boards")\
            .select("id")\
            .eq("workshop_id", workshop_id)\
            .execute()
        board_ids = [b["id"] for b in (boards.data or [])]
        if not board_ids:
            return 0

        questions = self.supabase.table("questions")\
            .select("id")\
            .in_("board_id", board_ids)\
            .execute()
        question_ids = [q["id"] for q in (questions.data or [])]

        if question_ids:
            self.supabase.table("notes")\
                .delete()\
                .in_("question_id", question_ids)\
                .execute()
            self.supabase.table("questions")\
                .delete()\
                .in_("id", question_ids)\
                .execute()

        self.supabase.table("ai_analyses")\
            .delete()\
            .in_("board_id", board_ids)\
            .execute()

        self.supabase.table("boards")\
            .delete()\
            .in_("id", board_ids)\
            .execute()
        logger.info(f"Deleted {len(board_ids)} board(s) and {len(question_ids)} question(s) of workshop {workshop_id}")
        return len(board_ids)

    def replace_boards(self, workshop_id: str, boards: List[BoardInput]) -> List[BoardResponse]:
        """Replace-all edit: old boards, questions, their notes and analyses go, new rows with new ids come"""
        try:
            self.delete_boards_for_workshop(workshop_id)
            return self.create_boards(workshop_id, boards)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error replacing boards for workshop {workshop_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def copy_boards(self, source_workshop_id: str, target_workshop_id: str) -> List[BoardResponse]:
        """Copy board/question structure (no notes) into another workshop"""
        try:
            source = self.list_boards(source_workshop_id)
            inputs = [
                BoardInput(
                    title=b.title,
                    time_limit=b.time_limit,
                    color_index=b.color_index,
                    questions=[{"title": q.title} for q in b.questions],
                )
                for b in source
            ]
            return self.create_boards(target_workshop_id, inputs)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def question_ids_for_workshop(self, workshop_id: str) -> Dict[str, Any]:
        """{question_id: board_id} for all questions of a workshop"""
        boards = self.list_boards(workshop_id)
        return {q.id: b.id for b in boards for q in b.questions}
