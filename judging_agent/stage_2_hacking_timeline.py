"""
Stage 2: Hacking Timeline — Hackathon Judging Agent

PURPOSE:
    Check that the project was built during the event: the first and the
    last commit must both fall inside [event.starts_at, event.ends_at].
    Projects whose event has no window skip the check.

    - No code pack from Stage 1         -> invalid:github_inaccessible
    - Commit list cannot be fetched     -> errored
    - Commit has no readable timestamp  -> invalid:github_inaccessible
    - Commits outside the event window  -> invalid:rule_violation

CALLED BY:
    review_pipeline_main.py — second gating stage.
"""

import logging

from .commit_timeline import CommitTimestampError, fetch_commit_window
from .context import ReviewServices
from .github_client import GitHubError
from .models import (
    STATUS_ERRORED,
    STATUS_INVALID_GITHUB,
    STATUS_INVALID_RULES,
    CommitWindow,
    EventWindow,
    RunState,
    StageOutcome,
)
from .status import set_project_status

logger = logging.getLogger(__name__)


def is_within_event(window: CommitWindow, event: EventWindow) -> bool:
    """Inclusive on both ends."""
    return window.first_commit_at >= event.starts_at and window.last_commit_at <= event.ends_at


def check_hacking_timeline(state: RunState, services: ReviewServices) -> StageOutcome:
    project = state.project
    if state.repo_info is None or not state.repo_info.content:
        state = set_project_status(
            services, state, STATUS_INVALID_GITHUB,
            "Missing repository context for timeline validation.",
        )
        return StageOutcome(ok=False, state=state)

    try:
        window = fetch_commit_window(services.github, state.repo_info, services.cancel)
    except GitHubError as e:
        logger.warning("Fetching commit dates failed for project ID %s: %s", project.id, e)
        state = set_project_status(
            services, state, STATUS_ERRORED, "Unexpected error while fetching commit dates."
        )
        return StageOutcome(ok=False, state=state)
    except CommitTimestampError as e:
        state = set_project_status(services, state, STATUS_INVALID_GITHUB, str(e))
        return StageOutcome(ok=False, state=state)

    event = project.event
    if event is not None and event.is_defined and not is_within_event(window, event):
        message = (
            "Commits fall outside event window. "
            f"First: {window.first_commit_at.isoformat()}, "
            f"Last: {window.last_commit_at.isoformat()}, "
            f"Window: {event.starts_at.isoformat()} - {event.ends_at.isoformat()}."
        )
        state = set_project_status(services, state, STATUS_INVALID_RULES, message)
        return StageOutcome(ok=False, state=state)

    logger.debug("Project ID %s's commit dates are within the hacking period.", project.id)
    return StageOutcome(ok=True, state=state.with_commit_window(window))
