"""
Heuristic bug analysis

Keyword rule tables drive severity, assignee, tags, complexity and the
suggested fix. Each table is plain data so rules can be tested and
extended without touching the matching code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from bugtracker.core.config import settings

# Ordered: the first severity with a matching keyword wins.
SEVERITY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("high", ("crash", "error", "failure", "critical", "urgent", "broken", "not working")),
    ("medium", ("slow", "ui", "interface", "performance", "delay")),
    ("low", ("typo", "cosmetic", "minor", "suggestion", "enhancement")),
)
DEFAULT_SEVERITY = "medium"

# (assignee, component keywords, description keywords)
ASSIGNEE_RULES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    ("Frontend Team", ("frontend",), ("ui", "react")),
    ("Backend Team", ("backend",), ("api", "database")),
    ("Mobile Team", ("mobile",), ("ios", "android")),
)
DEFAULT_ASSIGNEE = "Auto-assign based on workload"

TAG_RULES: dict[str, tuple[str, ...]] = {
    "frontend": ("frontend", "ui", "interface", "react", "css", "component"),
    "backend": ("backend", "api", "server", "database", "endpoint"),
    "mobile": ("mobile", "ios", "android", "app"),
    "performance": ("slow", "performance", "lag", "timeout"),
    "authentication": ("login", "auth", "password", "signin"),
    "security": ("security", "vulnerability", "hack", "breach"),
    "database": ("database", "db", "sql", "query"),
    "integration": ("integration", "third-party", "api", "webhook"),
}

COMPLEXITY_KEYWORDS: tuple[str, ...] = (
    "integration",
    "database",
    "performance",
    "security",
    "algorithm",
)

# (severity, complexity) -> estimate; complexity None matches any.
ESTIMATE_RULES: tuple[tuple[str, str | None, str], ...] = (
    ("high", "high", "1-2 days"),
    ("high", None, "4-8 hours"),
    ("medium", "high", "2-3 days"),
    ("medium", None, "1-2 days"),
)
DEFAULT_ESTIMATE = "3-5 days"

SOLUTION_GENERIC = "Review code for edge cases, add unit tests, and verify implementation."
SOLUTION_HIGH_SEVERITY = (
    "Immediate action required: review logs, verify system stability, and apply hotfix."
)
# (required tag, required description keyword or None, suggestion)
SOLUTION_RULES: tuple[tuple[str, str | None, str], ...] = (
    ("frontend", "ui", "Check CSS styling, component rendering, and responsive design patterns."),
    (
        "backend",
        "api",
        "Review API endpoints, verify database connections, and check authentication middleware.",
    ),
    (
        "performance",
        None,
        "Analyze performance metrics, check for memory leaks, and optimize database queries.",
    ),
)


@dataclass(frozen=True)
class BugSignals:
    """Text the heuristics look at."""

    description: str
    component: str | None = None
    title: str | None = None
    affected_users: int = 0

    @property
    def description_text(self) -> str:
        return (self.description or "").lower()

    @property
    def component_text(self) -> str:
        return (self.component or "").lower()


@dataclass
class HeuristicResult:
    severity: str
    priority: str
    assignee: str
    tags: list[str]
    complexity: str
    estimated_time: str
    suggested_solution: str


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


class HeuristicAnalyzer:
    """Rule-table analyzer; stateless, safe to share."""

    def __init__(
        self,
        *,
        base_confidence: int | None = None,
        related_bugs_bonus: int | None = None,
        confidence_cap: int | None = None,
    ) -> None:
        self.base_confidence = (
            settings.confidence_base if base_confidence is None else base_confidence
        )
        self.related_bugs_bonus = (
            settings.related_bugs_bonus if related_bugs_bonus is None else related_bugs_bonus
        )
        self.confidence_cap = settings.confidence_cap if confidence_cap is None else confidence_cap

    def predict_severity(self, signals: BugSignals) -> str:
        text = signals.description_text
        for severity, keywords in SEVERITY_RULES:
            if _contains_any(text, keywords):
                return severity
        return DEFAULT_SEVERITY

    def predict_priority(self, signals: BugSignals, severity: str | None = None) -> str:
        severity = severity or self.predict_severity(signals)
        affected = signals.affected_users or 0

        if severity == "high" or affected > 1000:
            return "Critical"
        if severity == "medium" or affected > 100:
            return "High"
        return "Medium"

    def suggest_assignee(self, signals: BugSignals) -> str:
        component = signals.component_text
        description = signals.description_text
        for assignee, component_keywords, description_keywords in ASSIGNEE_RULES:
            if _contains_any(component, component_keywords) or _contains_any(
                description, description_keywords
            ):
                return assignee
        return DEFAULT_ASSIGNEE

    def generate_tags(self, signals: BugSignals) -> list[str]:
        description = signals.description_text
        component = signals.component_text
        return [
            tag
            for tag, keywords in TAG_RULES.items()
            if _contains_any(description, keywords) or _contains_any(component, keywords)
        ]

    def assess_complexity(self, signals: BugSignals) -> str:
        return "high" if _contains_any(signals.description_text, COMPLEXITY_KEYWORDS) else "medium"

    def estimate_resolution_time(self, severity: str, complexity: str) -> str:
        for rule_severity, rule_complexity, estimate in ESTIMATE_RULES:
            if severity == rule_severity and rule_complexity in (None, complexity):
                return estimate
        return DEFAULT_ESTIMATE

    def suggest_solution(self, signals: BugSignals, severity: str, tags: Sequence[str]) -> str:
        description = signals.description_text
        for tag, keyword, suggestion in SOLUTION_RULES:
            if tag in tags and (keyword is None or keyword in description):
                return suggestion
        if severity == "high":
            return SOLUTION_HIGH_SEVERITY
        return SOLUTION_GENERIC

    def score_confidence(self, related_bug_count: int) -> int:
        confidence = self.base_confidence
        if related_bug_count > 0:
            confidence += self.related_bugs_bonus
        return min(confidence, self.confidence_cap)

    def explain(
        self,
        *,
        severity: str,
        tags: Sequence[str],
        duplicate_count: int = 0,
        related_bug_count: int = 0,
    ) -> list[str]:
        reasoning: list[str] = []
        if severity == "high":
            reasoning.append("High severity assigned due to critical keywords in description")
        if duplicate_count > 0:
            reasoning.append(
                f"Found {duplicate_count} potential duplicates based on semantic similarity"
            )
        if tags:
            reasoning.append(f"Auto-tagged based on description: {', '.join(tags)}")
        if related_bug_count > 0:
            reasoning.append(
                f"Identified {related_bug_count} related bugs based on component/tags"
            )
        return reasoning

    def analyze(self, signals: BugSignals) -> HeuristicResult:
        severity = self.predict_severity(signals)
        tags = self.generate_tags(signals)
        complexity = self.assess_complexity(signals)
        return HeuristicResult(
            severity=severity,
            priority=self.predict_priority(signals, severity),
            assignee=self.suggest_assignee(signals),
            tags=tags,
            complexity=complexity,
            estimated_time=self.estimate_resolution_time(severity, complexity),
            suggested_solution=self.suggest_solution(signals, severity, tags),
        )
