"""
Stage 1: Validate Repository — Hackathon Judging Agent

PURPOSE:
    Make sure the project's GitHub URL points at a public repository and
    turn that repository into the code pack every later stage judges.

    - URL is not a github.com URL        -> invalid:github_inaccessible
      (no network call is made)
    - GitHub answers 404 or 403           -> invalid:github_inaccessible
    - Any other GitHub or transport error -> errored
    - No eligible files in the repository -> invalid:github_inaccessible

CALLED BY:
    review_pipeline_main.py — first gating stage of every run.

DEPENDS ON:
    - github_client.py for the metadata lookup
    - repo_content_fetcher.py for the code pack
"""

import logging

from .context import ReviewServices
from .github_client import GitHubError, parse_github_repo
from .models import STATUS_ERRORED, STATUS_INVALID_GITHUB, RunState, StageOutcome
from .repo_content_fetcher import fetch_repo_content
from .status import set_project_status

logger = logging.getLogger(__name__)

REPO_NOT_PUBLIC_MESSAGE = "GitHub repository not found or is not public."


def validate_repository(state: RunState, services: ReviewServices) -> StageOutcome:
    """
    Parse, check and fetch the project's repository.

    Returns:
        StageOutcome whose state carries repo_info with content attached on
        success. On failure the terminal status is already persisted.
    """
    project = state.project
    repo_info = parse_github_repo(project.github_url)
    if repo_info is None:
        state = set_project_status(
            services, state, STATUS_INVALID_GITHUB, "Invalid or missing GitHub URL."
        )
        return StageOutcome(ok=False, state=state)

    logger.debug("Parsed repo info for project ID %s: %s", project.id, repo_info.full_name)

    # -----------------------------------------------------------------------
    # Repository must exist and be public
    # -----------------------------------------------------------------------

    try:
        metadata = services.github.get_repository(repo_info.owner, repo_info.repo, services.cancel)
    except GitHubError as e:
        if e.not_found_or_private:
            status, message = STATUS_INVALID_GITHUB, REPO_NOT_PUBLIC_MESSAGE
        else:
            status_suffix = f" (status {e.status})" if e.status else ""
            status, message = STATUS_ERRORED, f"Failed to reach GitHub repository{status_suffix}."
        logger.warning("Repository check failed for project ID %s: %s", project.id, e)
        state = set_project_status(services, state, status, message)
        return StageOutcome(ok=False, state=state)

    if metadata.get("private"):
        state = set_project_status(services, state, STATUS_INVALID_GITHUB, REPO_NOT_PUBLIC_MESSAGE)
        return StageOutcome(ok=False, state=state)

    logger.debug("GitHub repository is accessible for project ID %s.", project.id)

    # -----------------------------------------------------------------------
    # Build the code pack
    # -----------------------------------------------------------------------

    ref = metadata.get("default_branch") or "HEAD"
    try:
        content = fetch_repo_content(
            services.github,
            repo_info,
            ref,
            services.cancel,
            concurrency=services.config.fetch_concurrency,
            max_file_bytes=services.config.max_file_bytes,
        )
    except GitHubError as e:
        logger.warning("Listing repository files failed for project ID %s: %s", project.id, e)
        if e.not_found_or_private:
            status, message = STATUS_INVALID_GITHUB, "Failed to fetch repository content."
        else:
            status, message = STATUS_ERRORED, "Failed to list repository files."
        state = set_project_status(services, state, status, message)
        return StageOutcome(ok=False, state=state)

    if not content:
        state = set_project_status(
            services, state, STATUS_INVALID_GITHUB, "Failed to fetch repository content."
        )
        return StageOutcome(ok=False, state=state)

    logger.debug(
        "Fetched repository content for project ID %s (%d chars).", project.id, len(content)
    )
    return StageOutcome(ok=True, state=state.with_repo_info(repo_info.with_content(content)))
