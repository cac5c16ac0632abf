from supabase import Client
from app.modules.ai.schemas import (
    ClusterRequest, ClusterResponse, ClusterNote, ClusteredNote, ClusterCategory,
    ImportClustersRequest, ImportClustersResponse, AnalysisResponse,
    MIN_CATEGORIES, MAX_CATEGORIES, MAX_CATEGORY_LENGTH
)
from app.modules.ai.llm_client import LLMClient, extract_json
from app.modules.ai.reconcile import assign_notes, classify_categories, clean_categories, normalize
from app.modules.boards.service import BoardService
from app.modules.notes.service import NoteService
from app.modules.sync.change_feed import change_feed, INSERT, DELETE
from app.core.errors import ValidationError, NotFound, AccessDenied, UpstreamAdapterError
from typing import List, Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

CLUSTER_SYSTEM_PROMPT = """You are an expert at categorising and clustering ideas from workshops.
Assign every sticky note to the single most fitting category.
Answer ONLY with JSON in exactly this format, nothing else:
{
  "clusters": {
    "Category name": [
      { "noteIndex": 1, "confidence": 0.95 }
    ]
  }
}

Rules:
- Every note must be assigned to exactly ONE category
- Use the category names exactly as given
- noteIndex is 1-based (the first note is 1)
- confidence is a number between 0 and 1 saying how sure you are
- If a note fits no category, put it in the least specific category"""

ANALYSIS_SYSTEM_PROMPT = """You are a workshop analysis assistant. Analyse sticky notes from workshop exercises and give structured insights.

Present the analysis in this format:

## Main themes
List 3-5 main themes with subheadings and examples from the notes.

## Key insights
Describe the most important insights and patterns.

## Recommendations
Give concrete, actionable recommendations for next steps.

Keep a professional but approachable tone and answer in the language of the notes."""

DEFAULT_ANALYSIS_PROMPT = "Summarise the main themes and insights from these workshop answers. Group similar ideas and recommend next steps."


def build_cluster_prompt(notes: List[Dict[str, Any]], categories: List[str], context: str = None) -> str:
    categories_text = "\n".join(f"{i + 1}. {c}" for i, c in enumerate(categories))
    notes_text = "\n".join(
        f'[{i + 1}] "{n["content"]}" (by {n.get("author_name") or "anonymous"})'
        for i, n in enumerate(notes)
    )
    context_text = f"Context from the facilitator: {context}\n\n" if context else ""
    return (
        f"Categories to sort into:\n{categories_text}\n\n"
        f"{context_text}Sticky notes to cluster:\n{notes_text}\n\n"
        "Sort every sticky note into a category. Answer with JSON."
    )


def parse_clusters(content: str) -> Dict[str, Any]:
    """The "clusters" object of a model answer, or UpstreamAdapterError"""
    try:
        parsed = extract_json(content)
    except ValueError:
        logger.warning("Clustering answer is not JSON")
        raise UpstreamAdapterError()
    clusters = parsed.get("clusters") if isinstance(parsed, dict) else None
    if not isinstance(clusters, dict):
        logger.warning("Clustering answer has no clusters object")
        raise UpstreamAdapterError()
    return clusters


class ClusteringService:
    def __init__(self, supabase: Client, llm: LLMClient):
        self.supabase = supabase
        self.llm = llm
        self.boards = BoardService(supabase)
        self.notes = NoteService(supabase)

    def _notes_in_workshop(self, note_ids: List[str], workshop_id: str) -> List[Dict[str, Any]]:
        """Notes by id in request order; every one must sit on a question of workshop_id"""
        ids = list(dict.fromkeys(note_ids))
        if not ids:
            return []
        result = self.supabase.table("notes")\
            .select("*")\
            .in_("id", ids)\
            .execute()
        by_id = {n["id"]: n for n in (result.data or [])}
        missing = [i for i in ids if i not in by_id]
        if missing:
            raise NotFound(f"{len(missing)} note(s) not found")
        allowed = self.boards.question_ids_for_workshop(workshop_id)
        if any(by_id[i]["question_id"] not in allowed for i in ids):
            logger.warning(f"Clustering request mixes notes from outside workshop {workshop_id}")
            raise AccessDenied("All notes must belong to this workshop")
        return [by_id[i] for i in ids]

    def _validated_categories(self, categories: List[str]) -> List[str]:
        cleaned = clean_categories(categories)
        if len(cleaned) < MIN_CATEGORIES:
            raise ValidationError(f"Add at least {MIN_CATEGORIES} categories")
        if len(cleaned) > MAX_CATEGORIES:
            raise ValidationError(f"At most {MAX_CATEGORIES} categories are allowed")
        if any(len(c) > MAX_CATEGORY_LENGTH for c in cleaned):
            raise ValidationError(f"Category names must be at most {MAX_CATEGORY_LENGTH} characters")
        return cleaned

    async def cluster(self, board: Dict[str, Any], request: ClusterRequest) -> ClusterResponse:
        """Preview: ask the model, then fold its answer onto the facilitator's categories"""
        try:
            categories = self._validated_categories(request.categories)
            notes = self._notes_in_workshop(request.note_ids, board["workshop_id"])

            logger.info(f"Clustering {len(notes)} note(s) into {len(categories)} categories for board {board['id']}")
            content = await self.llm.complete(
                CLUSTER_SYSTEM_PROMPT,
                build_cluster_prompt(notes, categories, (request.context or "").strip() or None),
            )
            assigned = assign_notes(parse_clusters(content), len(notes), categories)

            questions = self.boards.list_questions(board["id"])
            question_by_title = {normalize(q.title): q.id for q in questions}
            kinds = classify_categories(categories, question_by_title.keys())

            clusters = {
                label: [
                    ClusteredNote(
                        note=ClusterNote(id=notes[i]["id"], content=notes[i]["content"], author_name=notes[i].get("author_name")),
                        confidence=confidence,
                    )
                    for i, confidence in placed
                ]
                for label, placed in assigned.items()
            }
            return ClusterResponse(
                board_id=board["id"],
                clusters=clusters,
                categories=[
                    ClusterCategory(label=c, kind=kinds[c], question_id=question_by_title.get(normalize(c)))
                    for c in categories
                ],
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def import_clusters(self, board: Dict[str, Any], request: ImportClustersRequest) -> ImportClustersResponse:
        """Copy clustered notes onto the board: existing categories reuse their question, new ones get one"""
        try:
            clusters = {label.strip(): ids for label, ids in request.clusters.items() if label.strip() and ids}
            if not clusters:
                raise ValidationError("Nothing to import")
            all_ids = [i for ids in clusters.values() for i in ids]
            notes = {n["id"]: n for n in self._notes_in_workshop(all_ids, board["workshop_id"])}

            question_by_title = {normalize(q.title): q.id for q in self.boards.list_questions(board["id"])}
            created_questions = []
            imported = 0
            for label, ids in clusters.items():
                question_id = question_by_title.get(normalize(label))
                if question_id is None:
                    question = self.boards.create_question(board["id"], label)
                    created_questions.append(question)
                    question_id = question_by_title[normalize(label)] = question.id
                imported += len(self.notes.copy_notes([notes[i] for i in dict.fromkeys(ids)], question_id, board["workshop_id"]))

            logger.info(f"Imported {imported} note(s) into board {board['id']} ({len(created_questions)} new question(s))")
            return ImportClustersResponse(board_id=board["id"], created_questions=created_questions, imported_notes=imported)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))


class AnalysisService:
    def __init__(self, supabase: Client, llm: LLMClient = None):
        self.supabase = supabase
        self.llm = llm
        self.boards = BoardService(supabase)
        self.notes = NoteService(supabase)

    async def analyze(self, board: Dict[str, Any], custom_prompt: str = None) -> AnalysisResponse:
        """Run an analysis over every note of the board and append it to the board's log"""
        try:
            questions = {q.id: q.title for q in self.boards.list_questions(board["id"])}
            notes = self.notes.list_notes(list(questions.keys()))
            if not notes:
                raise ValidationError("There are no notes on this board to analyse")

            notes_context = "\n\n".join(
                f"Note {i + 1} (by {n.author_name or 'anonymous'} on {questions.get(n.question_id, '')}):\n{n.content}"
                for i, n in enumerate(notes)
            )
            prompt = f"{(custom_prompt or '').strip() or DEFAULT_ANALYSIS_PROMPT}\n\n--- WORKSHOP NOTES ---\n{notes_context}"
            logger.info(f"Analysing {len(notes)} note(s) on board {board['id']}")
            analysis = await self.llm.complete(ANALYSIS_SYSTEM_PROMPT, prompt)

            result = self.supabase.table("ai_analyses").insert({
                "board_id": board["id"],
                "analysis": analysis,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save analysis")
            row = result.data[0]
            change_feed.publish(board["workshop_id"], "ai_analyses", INSERT, row)
            return AnalysisResponse(**row)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_analyses(self, board_id: str) -> List[AnalysisResponse]:
        """Newest first; the first entry is the current analysis"""
        try:
            result = self.supabase.table("ai_analyses")\
                .select("*")\
                .eq("board_id", board_id)\
                .order("created_at", desc=True)\
                .execute()
            return [AnalysisResponse(**a) for a in (result.data or [])]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_analysis(self, analysis: Dict[str, Any], workshop_id: str) -> bool:
        try:
            result = self.supabase.table("ai_analyses")\
                .delete()\
                .eq("id", analysis["id"])\
                .execute()
            if not result.data:
                return False
            change_feed.publish(workshop_id, "ai_analyses", DELETE, analysis)
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
