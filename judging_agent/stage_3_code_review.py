"""
Stage 3: Code Review — Hackathon Judging Agent

PURPOSE:
    Ask Gemini how well the code matches the submitted description, how
    technically complex it is and which technologies it uses, then persist
    those five fields on the project.

    A generation failure (after retries and JSON repair) sets the project to
    errored and ends the run.

CALLED BY:
    review_pipeline_main.py — third gating stage.

OUTPUT SCHEMA:
    {
      "description_accuracy_level": "low" | "medium" | "high",
      "description_accuracy_message": str,
      "technical_complexity": "invalid" | "beginner" | "intermediate" | "advanced",
      "technical_complexity_message": str,
      "tech_stack": [str, ...]
    }
"""

import logging
from typing import List, Literal

from pydantic import BaseModel, Field

from .context import ReviewServices
from .models import STATUS_ERRORED, STATUS_INVALID_GITHUB, RunState, StageOutcome
from .prompts import CODE_REVIEW_SYSTEM_PROMPT, build_code_review_prompt
from .status import persist, set_project_status
from .structured_generation import GenerationError

logger = logging.getLogger(__name__)


class CodeReview(BaseModel):
    description_accuracy_level: Literal["low", "medium", "high"]
    description_accuracy_message: str
    technical_complexity: Literal["invalid", "beginner", "intermediate", "advanced"]
    technical_complexity_message: str
    tech_stack: List[str] = Field(default_factory=list)


def _unique_stack(stack: List[str]) -> List[str]:
    seen: dict = {}
    for item in stack:
        item = item.strip()
        if item and item.lower() not in seen:
            seen[item.lower()] = item
    return list(seen.values())


def run_code_review(state: RunState, services: ReviewServices) -> StageOutcome:
    project = state.project
    if state.repo_info is None or not state.repo_info.content:
        state = set_project_status(
            services, state, STATUS_INVALID_GITHUB, "Missing repository content for code review."
        )
        return StageOutcome(ok=False, state=state)

    prompt = build_code_review_prompt(project.description, state.repo_info.content)
    try:
        review = services.generator.generate_object(
            CODE_REVIEW_SYSTEM_PROMPT, prompt, CodeReview, services.cancel
        )
    except GenerationError as e:
        logger.exception("Code review agent failed for project ID %s", project.id)
        state = set_project_status(
            services, state, STATUS_ERRORED, "Code review agent encountered an error."
        )
        return StageOutcome(ok=False, state=state)

    logger.debug("Code review agent generated results for project ID %s: %s", project.id, review)

    fields = review.model_dump()
    fields["tech_stack"] = _unique_stack(review.tech_stack)
    state = persist(services, state, fields)
    return StageOutcome(ok=True, state=state)
