from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal
from datetime import datetime
from app.modules.boards.schemas import QuestionResponse

MAX_CLUSTER_NOTES = 200
MIN_CATEGORIES = 2
MAX_CATEGORIES = 50
MAX_CATEGORY_LENGTH = 100
MAX_CONTEXT_LENGTH = 1000
MAX_PROMPT_LENGTH = 2000


class ClusterRequest(BaseModel):
    board_id: str  # board the clusters will be imported into
    note_ids: List[str] = Field(..., min_length=1, max_length=MAX_CLUSTER_NOTES)
    categories: List[str] = Field(..., max_length=MAX_CATEGORIES)
    context: Optional[str] = Field(None, max_length=MAX_CONTEXT_LENGTH)


class ClusterNote(BaseModel):
    id: str
    content: str
    author_name: Optional[str] = None


class ClusteredNote(BaseModel):
    note: ClusterNote
    confidence: float


class ClusterCategory(BaseModel):
    label: str
    kind: Literal["existing", "new"]
    question_id: Optional[str] = None


class ClusterResponse(BaseModel):
    board_id: str
    clusters: Dict[str, List[ClusteredNote]]
    categories: List[ClusterCategory]


class ImportClustersRequest(BaseModel):
    board_id: str
    clusters: Dict[str, List[str]]  # category label -> note ids


class ImportClustersResponse(BaseModel):
    board_id: str
    created_questions: List[QuestionResponse]
    imported_notes: int


class AnalyzeRequest(BaseModel):
    board_id: str
    custom_prompt: Optional[str] = Field(None, max_length=MAX_PROMPT_LENGTH)


class AnalysisResponse(BaseModel):
    id: str
    board_id: str
    analysis: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
