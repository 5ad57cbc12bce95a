"""AI routes: analysis, semantic search, team insights and reports"""

from fastapi import APIRouter, Depends, Query

from bugtracker.core.dependencies import (
    get_current_user,
    get_insights_service,
    get_intelligence_service,
)
from bugtracker.models.user import User
from bugtracker.schemas.ai import (
    AnalyticsReport,
    AnalyzeRequest,
    BugAnalysis,
    ReportRequest,
    SearchRequest,
    SearchResponse,
    TeamInsights,
)
from bugtracker.services.insights import InsightsService
from bugtracker.services.intelligence import BugIntelligenceService

router = APIRouter(tags=["ai"])


@router.post(
    "/ai-analyze",
    response_model=BugAnalysis,
    summary="Heuristic analysis with duplicate detection",
)
async def analyze_bug(
    payload: AnalyzeRequest,
    current_user: User = Depends(get_current_user),
    service: BugIntelligenceService = Depends(get_intelligence_service),
) -> BugAnalysis:
    return await service.analyze_bug(payload, current_user.id)


@router.post(
    "/ai-search",
    response_model=SearchResponse,
    summary="Keyword search with semantic fallback",
)
async def search_bugs(
    payload: SearchRequest,
    current_user: User = Depends(get_current_user),
    service: BugIntelligenceService = Depends(get_intelligence_service),
) -> SearchResponse:
    return await service.search(payload.query, current_user.id)


@router.get(
    "/ai-team-insights",
    response_model=TeamInsights,
    summary="Team workload and performance insights",
)
async def team_insights(
    time_range: str = Query("30d", alias="timeRange", pattern=r"^\d+[dwm]$"),
    current_user: User = Depends(get_current_user),
    service: InsightsService = Depends(get_insights_service),
) -> TeamInsights:
    return await service.generate_team_insights(current_user.id, time_range)


@router.post(
    "/ai-report",
    response_model=AnalyticsReport,
    summary="Templated analytics report",
)
async def generate_report(
    payload: ReportRequest,
    current_user: User = Depends(get_current_user),
    service: InsightsService = Depends(get_insights_service),
) -> AnalyticsReport:
    return await service.generate_report(current_user.id, payload.time_range)
