"""
Data model for one review run.

Project mirrors the persisted row. The pipeline never mutates a Project in
place: every persisted write produces a new copy through ``Project.apply``,
and stages hand the new copy forward inside a RunState.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

# Project status values (project_processing_status enum in the store)
STATUS_UNPROCESSED = "unprocessed"
STATUS_PROCESSING_CODE_REVIEW = "processing:code_review"
STATUS_PROCESSING_PRIZE_REVIEW = "processing:prize_category_review"
STATUS_INVALID_GITHUB = "invalid:github_inaccessible"
STATUS_INVALID_RULES = "invalid:rule_violation"
STATUS_PROCESSED = "processed"
STATUS_ERRORED = "errored"

TERMINAL_STATUSES = frozenset({
    STATUS_INVALID_GITHUB,
    STATUS_INVALID_RULES,
    STATUS_PROCESSED,
    STATUS_ERRORED,
})

# Prize result values
PRIZE_PROCESSING = "processing"
PRIZE_VALID = "valid"
PRIZE_INVALID = "invalid"
PRIZE_ERRORED = "errored"

# Fields written by the AI stages; all of them are cleared when a run starts.
AI_DERIVED_FIELDS = (
    "description_accuracy_level",
    "description_accuracy_message",
    "technical_complexity",
    "technical_complexity_message",
    "tech_stack",
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (GitHub's trailing ``Z`` included) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class PrizeReviewResult:
    status: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "message": self.message}

    @classmethod
    def from_value(cls, value: Any) -> "PrizeReviewResult":
        if isinstance(value, PrizeReviewResult):
            return value
        return cls(status=str(value.get("status", "")), message=str(value.get("message", "")))


@dataclass(frozen=True)
class EventWindow:
    name: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None

    @property
    def is_defined(self) -> bool:
        return self.starts_at is not None and self.ends_at is not None


@dataclass(frozen=True)
class Project:
    id: str
    github_url: str = ""
    description: str = ""
    title: str = ""
    prize_slugs: tuple[str, ...] = ()
    event: Optional[EventWindow] = None
    status: str = STATUS_UNPROCESSED
    status_message: Optional[str] = None
    process_started_at: Optional[str] = None
    description_accuracy_level: Optional[str] = None
    description_accuracy_message: Optional[str] = None
    technical_complexity: Optional[str] = None
    technical_complexity_message: Optional[str] = None
    tech_stack: tuple[str, ...] = ()
    prize_results: Mapping[str, PrizeReviewResult] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Project":
        """Build a Project from a store record that already uses our field names."""
        event = record.get("event") or None
        if isinstance(event, Mapping):
            event = EventWindow(
                name=event.get("name"),
                starts_at=parse_timestamp(event.get("starts_at")),
                ends_at=parse_timestamp(event.get("ends_at")),
            )
        return cls(
            id=str(record["id"]),
            github_url=record.get("github_url") or "",
            description=record.get("description") or "",
            title=record.get("title") or "",
            prize_slugs=tuple(_unique(record.get("prize_slugs") or ())),
            event=event,
            status=record.get("status") or STATUS_UNPROCESSED,
            status_message=record.get("status_message"),
            process_started_at=record.get("process_started_at"),
            description_accuracy_level=record.get("description_accuracy_level"),
            description_accuracy_message=record.get("description_accuracy_message"),
            technical_complexity=record.get("technical_complexity"),
            technical_complexity_message=record.get("technical_complexity_message"),
            tech_stack=tuple(record.get("tech_stack") or ()),
            prize_results=_prize_results(record.get("prize_results")),
        )

    def apply(self, fields: Mapping[str, Any]) -> "Project":
        """Return a copy with the persisted ``fields`` applied."""
        changes = dict(fields)
        if "tech_stack" in changes:
            changes["tech_stack"] = tuple(changes["tech_stack"] or ())
        if "prize_results" in changes:
            changes["prize_results"] = _prize_results(changes["prize_results"])
        return dataclasses.replace(self, **changes)

    def prize_results_record(self) -> dict[str, dict[str, str]]:
        return {slug: result.to_dict() for slug, result in self.prize_results.items()}

    def to_record(self) -> dict[str, Any]:
        """JSON-friendly view, used for prompts and the MCP server."""
        return {
            "id": self.id,
            "title": self.title,
            "github_url": self.github_url,
            "description": self.description,
            "prize_slugs": list(self.prize_slugs),
            "status": self.status,
            "status_message": self.status_message,
            "process_started_at": self.process_started_at,
            "description_accuracy_level": self.description_accuracy_level,
            "description_accuracy_message": self.description_accuracy_message,
            "technical_complexity": self.technical_complexity,
            "technical_complexity_message": self.technical_complexity_message,
            "tech_stack": list(self.tech_stack),
            "prize_results": self.prize_results_record(),
        }


@dataclass(frozen=True)
class RepositoryInfo:
    owner: str
    repo: str
    content: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def with_content(self, content: str) -> "RepositoryInfo":
        return dataclasses.replace(self, content=content)


@dataclass(frozen=True)
class PrizeCategory:
    slug: str
    name: str
    system_prompt: Optional[str] = None
    find_words: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PrizeCategory":
        return cls(
            slug=record["slug"],
            name=record.get("name") or record["slug"],
            system_prompt=record.get("system_prompt"),
            find_words=tuple(record.get("find_words") or ()),
        )


@dataclass(frozen=True)
class CommitWindow:
    first_commit_at: datetime
    last_commit_at: datetime


@dataclass(frozen=True)
class RunState:
    """Everything one run has learned so far. Stages return updated copies."""

    project: Project
    repo_info: Optional[RepositoryInfo] = None
    commit_window: Optional[CommitWindow] = None

    def with_project(self, project: Project) -> "RunState":
        return dataclasses.replace(self, project=project)

    def with_repo_info(self, repo_info: RepositoryInfo) -> "RunState":
        return dataclasses.replace(self, repo_info=repo_info)

    def with_commit_window(self, commit_window: CommitWindow) -> "RunState":
        return dataclasses.replace(self, commit_window=commit_window)


@dataclass(frozen=True)
class StageOutcome:
    """
    Result of one stage. ``ok`` False means the stage already persisted a
    terminal verdict and the orchestrator must stop (gating stages) or move
    on to the next batch (prize stage).
    """

    ok: bool
    state: RunState


def _unique(values) -> list[str]:
    seen: list[str] = []
    for value in values:
        value = str(value).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def _prize_results(value: Any) -> dict[str, PrizeReviewResult]:
    if not isinstance(value, Mapping):
        return {}
    return {slug: PrizeReviewResult.from_value(result) for slug, result in value.items()}
