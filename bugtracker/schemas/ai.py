"""
AI pipeline schemas
Payloads for duplicate detection, analysis, semantic search and insights.
All of them serialize with camelCase keys.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from bugtracker.models.bug import BugPriority, BugStatus
from bugtracker.schemas.base import CamelSchema


class AnalyzeRequest(CamelSchema):
    description: str = Field(min_length=1)
    component: str | None = Field(default=None, max_length=100)
    title: str | None = Field(default=None, max_length=100)
    affected_users: int = Field(default=0, ge=0)


class DuplicateCandidate(CamelSchema):
    id: UUID
    title: str
    description_snippet: str
    status: BugStatus
    priority: BugPriority
    created_at: datetime
    similarity: float


class RelatedBug(CamelSchema):
    id: UUID
    title: str
    description_snippet: str
    status: BugStatus
    priority: BugPriority
    component: str | None = None
    created_at: datetime


class HeuristicAnalysis(CamelSchema):
    severity: Literal["high", "medium", "low"]
    priority: str
    assignee: str
    tags: list[str] = Field(default_factory=list)
    estimated_time: str
    suggested_solution: str
    confidence: int = Field(ge=0, le=100)
    reasoning: list[str] = Field(default_factory=list)
    related_bugs: list[RelatedBug] = Field(default_factory=list)


class AnalysisMetadata(CamelSchema):
    processing_time_ms: float
    embedding_available: bool
    duplicate_threshold: float
    candidate_limit: int
    analyzed_at: datetime


class BugAnalysis(HeuristicAnalysis):
    duplicates: list[DuplicateCandidate] = Field(default_factory=list)
    metadata: AnalysisMetadata


class SearchRequest(CamelSchema):
    query: str = Field(min_length=1, max_length=500)


class SearchResult(CamelSchema):
    id: UUID
    title: str
    description: str
    status: BugStatus
    priority: BugPriority
    tags: list[str] = Field(default_factory=list)
    component: str | None = None
    created_at: datetime
    similarity: float | None = None
    relevance_score: float
    is_high_priority: bool = False
    is_recent: bool = False


class SearchMetadata(CamelSchema):
    query: str
    tier: Literal["keyword", "semantic"]
    total_results: int
    search_quality: Literal["High", "Medium", "Low", "Failed"]
    has_high_priority_results: bool
    processing_time_ms: float


class SearchInsights(CamelSchema):
    confidence: int = Field(ge=0, le=100)
    suggestions: list[str] = Field(default_factory=list)
    common_tags: list[str] = Field(default_factory=list)


class SearchResponse(CamelSchema):
    """Carries its own ``success`` key, so the envelope middleware leaves it as is."""

    success: bool = True
    data: list[SearchResult] = Field(default_factory=list)
    metadata: SearchMetadata
    search_insights: SearchInsights


class TeamMemberStats(CamelSchema):
    name: str
    assigned_bugs: int
    resolved_bugs: int
    resolution_rate: float


class TeamInsights(CamelSchema):
    performance_analysis: list[str] = Field(default_factory=list)
    workload_recommendations: list[str] = Field(default_factory=list)
    skill_gaps: list[str] = Field(default_factory=list)
    productivity_trends: list[str] = Field(default_factory=list)
    confidence: int
    data_points: int


class ReportRequest(CamelSchema):
    time_range: str = Field(default="30d", pattern=r"^\d+[dwm]$")


class AnalyticsReport(CamelSchema):
    time_range: str
    report: str
    generated_at: datetime
    fallback: bool = False
