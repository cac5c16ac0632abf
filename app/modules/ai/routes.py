from fastapi import APIRouter, Depends, Request
from app.database.supabase_client import get_supabase
from app.modules.ai.schemas import (
    ClusterRequest, ClusterResponse, ImportClustersRequest, ImportClustersResponse,
    AnalyzeRequest, AnalysisResponse
)
from app.modules.ai.service import ClusteringService, AnalysisService
from app.modules.ai.llm_client import LLMClient, get_llm_client
from app.modules.auth.schemas import FacilitatorIdentity
from app.core.dependencies import (
    get_current_facilitator, require_plan_feature, check_board_owner, check_analysis_owner
)
from app.core.rate_limit import limiter
from app.config import settings
from supabase import Client
from typing import List

router = APIRouter(prefix="/ai", tags=["ai"])


def get_clustering_service(
    supabase: Client = Depends(get_supabase),
    llm: LLMClient = Depends(get_llm_client)
) -> ClusteringService:
    return ClusteringService(supabase, llm)


def get_analysis_service(
    supabase: Client = Depends(get_supabase),
    llm: LLMClient = Depends(get_llm_client)
) -> AnalysisService:
    return AnalysisService(supabase, llm)


@router.post("/cluster", response_model=ClusterResponse)
@limiter.limit(settings.ai_rate_limit)
async def cluster_notes(
    request: Request,
    cluster_request: ClusterRequest,
    facilitator: FacilitatorIdentity = Depends(require_plan_feature("ai_enabled")),
    service: ClusteringService = Depends(get_clustering_service),
    supabase: Client = Depends(get_supabase)
):
    """Preview AI clustering of notes into the given categories"""
    board, _ = check_board_owner(cluster_request.board_id, facilitator, supabase)
    return await service.cluster(board, cluster_request)


@router.post("/cluster/import", response_model=ImportClustersResponse, status_code=201)
async def import_clusters(
    import_request: ImportClustersRequest,
    facilitator: FacilitatorIdentity = Depends(require_plan_feature("ai_enabled")),
    service: ClusteringService = Depends(get_clustering_service),
    supabase: Client = Depends(get_supabase)
):
    """Copy a (possibly edited) clustering preview onto the target board"""
    board, _ = check_board_owner(import_request.board_id, facilitator, supabase)
    return service.import_clusters(board, import_request)


@router.post("/analyses", response_model=AnalysisResponse, status_code=201)
@limiter.limit(settings.ai_rate_limit)
async def analyze_board(
    request: Request,
    analyze_request: AnalyzeRequest,
    facilitator: FacilitatorIdentity = Depends(require_plan_feature("ai_enabled")),
    service: AnalysisService = Depends(get_analysis_service),
    supabase: Client = Depends(get_supabase)
):
    board, _ = check_board_owner(analyze_request.board_id, facilitator, supabase)
    return await service.analyze(board, analyze_request.custom_prompt)


@router.get("/boards/{board_id}/analyses", response_model=List[AnalysisResponse])
async def list_analyses(
    board_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: AnalysisService = Depends(get_analysis_service),
    supabase: Client = Depends(get_supabase)
):
    """Analyses of a board, newest first"""
    check_board_owner(board_id, facilitator, supabase)
    return service.list_analyses(board_id)


@router.delete("/analyses/{analysis_id}", status_code=204)
async def delete_analysis(
    analysis_id: str,
    facilitator: FacilitatorIdentity = Depends(get_current_facilitator),
    service: AnalysisService = Depends(get_analysis_service),
    supabase: Client = Depends(get_supabase)
):
    analysis, board = check_analysis_owner(analysis_id, facilitator, supabase)
    service.delete_analysis(analysis, board["workshop_id"])
    return None
