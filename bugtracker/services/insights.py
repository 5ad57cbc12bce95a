"""
Team insights and analytics reports

Aggregates an owner's bugs over a time window into team statistics and a
templated markdown report.
"""

from __future__ import annotations

import calendar
import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Sequence

from bugtracker.core.exceptions import ValidationError
from bugtracker.core.logging import get_logger
from bugtracker.models.bug import Bug, BugPriority, BugStatus
from bugtracker.repositories.bug_repository import BugRepository
from bugtracker.repositories.user_repository import UserRepository
from bugtracker.schemas.ai import AnalyticsReport, TeamInsights, TeamMemberStats
from bugtracker.services.ranking import as_utc

logger = get_logger(__name__)

_TIME_RANGE_PATTERN = re.compile(r"^(\d+)([dwm])$")
_DURATION_PATTERN = re.compile(r"(\d+\.?\d*)\s*(hours?|days?)", re.IGNORECASE)

OVERLOADED_THRESHOLD = 10
UNDERLOADED_THRESHOLD = 3
UNASSIGNED_NAME = "Unassigned"


# --- Pure helpers ---


def _subtract_months(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def parse_time_range(time_range: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """
    ``"30d"``, ``"4w"`` or ``"3m"`` to a ``(start, end)`` window ending now.

    Raises:
        ValidationError: If the range is malformed or reaches past the calendar
    """
    end = now or datetime.now(timezone.utc)
    match = _TIME_RANGE_PATTERN.match(time_range.strip())
    if match is None:
        raise ValidationError(
            f"Invalid time range: {time_range!r}",
            details={"expected": "<number>d|w|m"},
        )

    amount, unit = int(match.group(1)), match.group(2)
    try:
        if unit == "d":
            start = end - timedelta(days=amount)
        elif unit == "w":
            start = end - timedelta(weeks=amount)
        else:
            start = _subtract_months(end, amount)
    except (OverflowError, ValueError) as exc:
        raise ValidationError(
            f"Time range out of bounds: {time_range!r}",
            details={"reason": str(exc)},
        ) from exc
    return start, end


def resolution_rate(resolved: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(resolved / total * 100)


def productivity_score(total: int, resolved: int, critical: int) -> int:
    score = 50 + (resolution_rate(resolved, total) - 60) * 0.5
    if critical and total and critical / total < 0.1:
        score += 20
    return max(0, min(100, round(score)))


def calculate_trend(values: Sequence[int]) -> float:
    """Percent change between the mean of the first and last three points."""
    if len(values) < 2:
        return 0.0
    recent = values[-3:]
    older = values[:3]
    older_mean = sum(older) / len(older)
    if older_mean == 0:
        return 0.0
    recent_mean = sum(recent) / len(recent)
    return (recent_mean - older_mean) / older_mean * 100


def confidence_level(total_bugs: int, weeks: int, critical: int) -> int:
    confidence = 70
    if total_bugs > 50:
        confidence += 15
    if weeks > 4:
        confidence += 10
    if critical > 0:
        confidence += 5
    return min(confidence, 100)


def parse_time_to_hours(value: str | None) -> float:
    if not value:
        return 0.0
    match = _DURATION_PATTERN.search(value)
    if match is None:
        return 0.0
    amount = float(match.group(1))
    return amount * 24 if match.group(2).lower().startswith("day") else amount


def format_duration(hours: float) -> str:
    if hours > 24:
        return f"{round(hours / 24)} days"
    return f"{round(hours)} hours"


def weekly_counts(bugs: Sequence[Bug], start: datetime, end: datetime) -> list[int]:
    week = timedelta(weeks=1)
    weeks = max(1, -(-(end - start) // week))
    counts = [0] * weeks
    for bug in bugs:
        index = int((as_utc(bug.created_at) - start) // week)
        if 0 <= index < weeks:
            counts[index] += 1
    return counts


def _numbered(lines: Sequence[str]) -> str:
    return "\n".join(f"{index}. {line}" for index, line in enumerate(lines, start=1))


@dataclass
class AnalyticsSnapshot:
    total_bugs: int = 0
    resolved: int = 0
    critical_issues: int = 0
    avg_resolution_time: str = "N/A"
    weekly_bugs: list[int] = field(default_factory=list)

    @property
    def resolution_rate(self) -> int:
        return resolution_rate(self.resolved, self.total_bugs)

    @property
    def productivity_score(self) -> int:
        return productivity_score(self.total_bugs, self.resolved, self.critical_issues)


class InsightsService:
    def __init__(
        self,
        *,
        bug_repository: BugRepository,
        user_repository: UserRepository,
    ) -> None:
        self.bug_repo = bug_repository
        self.user_repo = user_repository

    # --- Data gathering ---

    async def snapshot(self, owner_id: int, start: datetime, end: datetime) -> AnalyticsSnapshot:
        bugs = await self.bug_repo.list_created_between(owner_id, start, end)
        resolved = [bug for bug in bugs if bug.status == BugStatus.RESOLVED]

        durations = [
            (as_utc(bug.resolved_at) - as_utc(bug.created_at)).total_seconds() / 3600
            for bug in resolved
            if bug.resolved_at is not None
        ]
        avg_resolution = format_duration(sum(durations) / len(durations)) if durations else "N/A"

        return AnalyticsSnapshot(
            total_bugs=len(bugs),
            resolved=len(resolved),
            critical_issues=sum(1 for bug in bugs if bug.priority == BugPriority.CRITICAL),
            avg_resolution_time=avg_resolution,
            weekly_bugs=weekly_counts(bugs, start, end),
        )

    async def team_stats(self, owner_id: int, start: datetime, end: datetime) -> list[TeamMemberStats]:
        bugs = await self.bug_repo.list_created_between(owner_id, start, end)

        assigned: dict[int | None, int] = defaultdict(int)
        resolved: dict[int | None, int] = defaultdict(int)
        for bug in bugs:
            assigned[bug.assignee_id] += 1
            if bug.status == BugStatus.RESOLVED:
                resolved[bug.assignee_id] += 1

        if not assigned:
            return [
                TeamMemberStats(name="Current User", assigned_bugs=0, resolved_bugs=0, resolution_rate=0)
            ]

        users = await self.user_repo.get_by_ids([key for key in assigned if key is not None])
        names = {user.id: user.name for user in users}

        return [
            TeamMemberStats(
                name=names.get(assignee_id, UNASSIGNED_NAME) if assignee_id is not None else UNASSIGNED_NAME,
                assigned_bugs=count,
                resolved_bugs=resolved[assignee_id],
                resolution_rate=resolved[assignee_id] / count * 100,
            )
            for assignee_id, count in assigned.items()
        ]

    async def open_tag_counts(self, owner_id: int, limit: int = 3) -> list[tuple[str, int]]:
        bugs = await self.bug_repo.list_open_for_owner(owner_id)
        counts: Counter[str] = Counter()
        for bug in bugs:
            counts.update(bug.tags or [])
        return counts.most_common(limit)

    # --- Team insights ---

    @staticmethod
    def performance_analysis(team: Sequence[TeamMemberStats]) -> list[str]:
        if not team:
            return []
        top = max(team, key=lambda member: member.resolved_bugs)
        average = sum(member.resolved_bugs for member in team) / len(team)
        return [
            f"{top.name} leads with {top.resolved_bugs} resolved bugs",
            f"Team average: {average:.1f} bugs resolved per member",
        ]

    @staticmethod
    def workload_recommendations(team: Sequence[TeamMemberStats]) -> list[str]:
        overloaded = [m.name for m in team if m.assigned_bugs > OVERLOADED_THRESHOLD]
        underloaded = [m.name for m in team if m.assigned_bugs < UNDERLOADED_THRESHOLD]

        if overloaded and underloaded:
            return [f"Redistribute workload from {', '.join(overloaded)} to {', '.join(underloaded)}"]
        if overloaded:
            return [f"Reduce workload for: {', '.join(overloaded)}"]
        return []

    @staticmethod
    def skill_gaps(tag_counts: Sequence[tuple[str, int]]) -> list[str]:
        if not tag_counts:
            return ["Consider training in automated testing and performance optimization"]
        return [f"Enhance skills in {tag} (found in {count} bugs)" for tag, count in tag_counts]

    @staticmethod
    def productivity_trends(team: Sequence[TeamMemberStats]) -> list[str]:
        if not team:
            return []
        average_rate = sum(member.resolution_rate for member in team) / len(team)
        total = sum(member.assigned_bugs for member in team)
        return [
            f"Average resolution rate: {average_rate:.1f}%",
            f"Total bugs assigned: {total}",
        ]

    async def generate_team_insights(self, owner_id: int, time_range: str = "30d") -> TeamInsights:
        start, end = parse_time_range(time_range)
        team = await self.team_stats(owner_id, start, end)
        tag_counts = await self.open_tag_counts(owner_id)
        snapshot = await self.snapshot(owner_id, start, end)

        logger.info("team_insights_generated", owner_id=owner_id, members=len(team))
        return TeamInsights(
            performance_analysis=self.performance_analysis(team),
            workload_recommendations=self.workload_recommendations(team),
            skill_gaps=self.skill_gaps(tag_counts),
            productivity_trends=self.productivity_trends(team),
            confidence=confidence_level(
                snapshot.total_bugs,
                len(snapshot.weekly_bugs),
                snapshot.critical_issues,
            ),
            data_points=len(team),
        )

    # --- Report ---

    @staticmethod
    def key_insights(data: AnalyticsSnapshot) -> list[str]:
        insights: list[str] = []
        rate = data.resolution_rate
        if rate > 80:
            insights.append(f"Excellent resolution rate of {rate}% indicates strong performance")
        elif rate < 60:
            insights.append(f"Resolution rate of {rate}% suggests need for process improvements")

        if data.critical_issues > 0 and data.total_bugs:
            ratio = data.critical_issues / data.total_bugs * 100
            insights.append(f"{ratio:.1f}% of bugs are critical - requires immediate attention")

        if len(data.weekly_bugs) > 1:
            trend = calculate_trend(data.weekly_bugs)
            direction = "increased" if trend > 0 else "decreased"
            insights.append(f"Bug reports {direction} by {abs(trend):.1f}%")
        return insights

    @staticmethod
    def recommendations(data: AnalyticsSnapshot) -> list[str]:
        recommendations: list[str] = []
        if parse_time_to_hours(data.avg_resolution_time) > 48:
            recommendations.append("Implement priority triage system to reduce resolution time")
        if data.critical_issues > 3:
            recommendations.append("Implement automated testing to catch critical issues earlier")
        if len(data.weekly_bugs) > 1 and calculate_trend(data.weekly_bugs) > 10:
            recommendations.append("Investigate root causes for increasing bug reports")
        return recommendations

    @staticmethod
    def trend_lines(data: AnalyticsSnapshot) -> list[str]:
        lines = [
            f"- Total bugs processed: {data.total_bugs}",
            f"- Resolution rate: {data.resolution_rate}%",
            f"- Critical issues: {data.critical_issues}",
        ]
        if len(data.weekly_bugs) > 1:
            trend = calculate_trend(data.weekly_bugs)
            direction = "upward" if trend > 0 else "downward"
            lines.append(f"- Weekly bug trend: {direction} ({abs(trend):.1f}%)")
        return lines

    @staticmethod
    def predictions(data: AnalyticsSnapshot) -> list[str]:
        predictions: list[str] = []
        if len(data.weekly_bugs) >= 3:
            trend = calculate_trend(data.weekly_bugs)
            predicted = data.weekly_bugs[-1] * (1 + trend / 100)
            predictions.append(f"Expected {round(predicted)} bugs next week based on trends")

        hours = parse_time_to_hours(data.avg_resolution_time)
        if hours > 0:
            predictions.append(f"Resolution time expected to improve to {hours * 0.95:.1f} hours")
        return predictions

    def render_report(
        self,
        data: AnalyticsSnapshot,
        team: Sequence[TeamMemberStats],
        time_range: str,
        generated_at: datetime,
    ) -> str:
        top = max(team, key=lambda member: member.resolved_bugs).name if team else "N/A"
        sections = [
            "# Bug Analytics Report",
            f"Generated on: {generated_at.date().isoformat()}",
            f"Time Range: {time_range}",
            "",
            "## Key Insights",
            _numbered(self.key_insights(data)),
            "",
            "## Recommendations",
            _numbered(self.recommendations(data)),
            "",
            "## Metrics Summary",
            f"- Total Bugs: {data.total_bugs}",
            f"- Resolution Rate: {data.resolution_rate}%",
            f"- Average Resolution Time: {data.avg_resolution_time}",
            f"- Critical Issues: {data.critical_issues}",
            f"- Team Productivity Score: {data.productivity_score}/100",
            "",
            "## Trend Analysis",
            "\n".join(self.trend_lines(data)),
            "",
            "## Predictions",
            _numbered(self.predictions(data)),
            "",
            "## Team Performance",
            f"- Most Active: {top}",
            f"- Resolution Rate: {data.resolution_rate}%",
            f"- Productivity Score: {data.productivity_score}/100",
            "",
            "---",
            "*Report generated with "
            f"{confidence_level(data.total_bugs, len(data.weekly_bugs), data.critical_issues)}% confidence*",
        ]
        return "\n".join(sections)

    @staticmethod
    def render_fallback_report(time_range: str, generated_at: datetime) -> str:
        return "\n".join(
            [
                "# Bug Analytics Report (Fallback Mode)",
                f"Generated on: {generated_at.date().isoformat()}",
                f"Time Range: {time_range}",
                "",
                "## Summary",
                "- Total Bugs: 0",
                "- Resolution Rate: 0%",
                "- Average Resolution Time: N/A",
                "",
                "*Note: Detailed analysis unavailable. Basic report generated.*",
            ]
        )

    async def generate_report(self, owner_id: int, time_range: str = "30d") -> AnalyticsReport:
        """
        Templated markdown report; a basic report is returned when data
        gathering fails.

        Raises:
            ValidationError: If the time range is malformed
        """
        start, end = parse_time_range(time_range)
        generated_at = datetime.now(timezone.utc)

        try:
            data = await self.snapshot(owner_id, start, end)
            team = await self.team_stats(owner_id, start, end)
        except Exception as exc:  # noqa: BLE001
            logger.error("report_data_unavailable", owner_id=owner_id, error=str(exc))
            return AnalyticsReport(
                time_range=time_range,
                report=self.render_fallback_report(time_range, generated_at),
                generated_at=generated_at,
                fallback=True,
            )

        logger.info("report_generated", owner_id=owner_id, total_bugs=data.total_bugs)
        return AnalyticsReport(
            time_range=time_range,
            report=self.render_report(data, team, time_range, generated_at),
            generated_at=generated_at,
            fallback=False,
        )
