"""
Review Pipeline Main — Hackathon Judging Agent

PURPOSE:
    Drive one complete review of one project:

        mark processing
          -> 1. Validate Repository   (gating)
          -> 2. Hacking Timeline      (gating)
          -> 3. Code Review           (gating)
          -> processing:prize_category_review
          -> 4. Prize Category Review, one batch of PRIZE_BATCH_SIZE slugs
                at a time, every batch runs whatever happened before
          -> processed

    A gating stage that fails has already persisted its terminal status, so
    the run simply stops there. Prize batches are isolated from each other
    and never change the project's overall status.

CALLED BY:
    - judging_mcp/server.py (start_review tool), in a background thread
    - the command line: python -m judging_agent.review_pipeline_main <project_id>

FAILURE HANDLING:
    - StoreError: the store itself is failing. Logged, followed by one
      best-effort "errored" write.
    - ReviewCancelled: the token was cancelled or the deadline passed. No
      further network calls; one best-effort "errored" write.
    - Anything else escaping a prize batch: logged and recorded as errored
      for that batch's slugs that have no verdict yet.
    - Anything else escaping a gating stage: logged, followed by one
      best-effort "errored" write, so the run never ends mid-processing.
"""

import logging
import sys
from typing import Iterator, List, Optional, Sequence

import click

from .cancellation import ReviewCancelled
from .config import ReviewConfig
from .context import ReviewServices, build_services
from .models import (
    PRIZE_ERRORED,
    PRIZE_PROCESSING,
    STATUS_ERRORED,
    STATUS_PROCESSED,
    STATUS_PROCESSING_PRIZE_REVIEW,
    Project,
    PrizeReviewResult,
    RunState,
)
from .project_store import StoreError
from .stage_1_validate_repository import validate_repository
from .stage_2_hacking_timeline import check_hacking_timeline
from .stage_3_code_review import run_code_review
from .stage_4_prize_category_review import review_prize_categories
from .status import mark_processing, merge_prize_results, set_project_status
from .structured_generation import GenerationError

logger = logging.getLogger(__name__)

GATING_STAGES = (
    ("validate_repository", validate_repository),
    ("hacking_timeline", check_hacking_timeline),
    ("code_review", run_code_review),
)

CANCELLED_MESSAGE = "Review cancelled before completion."


def chunked(items: Sequence[str], size: int) -> Iterator[List[str]]:
    """Consecutive slices of ``items`` holding at most ``size`` entries."""
    if size < 1:
        raise ValueError("batch size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def run_project_review(project: Project, services: ReviewServices) -> RunState:
    """
    Run the full pipeline for ``project``.

    Args:
        project: The project as loaded from the store at run start.
        services: Store, GitHub client, generator, cancellation token, config.

    Returns:
        The final RunState. Its project mirrors every write made during the
        run. Failures are persisted, never raised.
    """
    state = RunState(project=project)
    logger.info("Starting review for project ID %s", project.id)

    try:
        state = mark_processing(services, state)
    except StoreError:
        logger.exception("Could not mark project ID %s as processing", project.id)
        return state

    try:
        # -------------------------------------------------------------------
        # Gating stages
        # -------------------------------------------------------------------
        for name, stage in GATING_STAGES:
            services.cancel.check()
            outcome = stage(state, services)
            state = outcome.state
            if not outcome.ok:
                logger.info(
                    "Review for project ID %s stopped at %s: %s (%s)",
                    project.id, name, state.project.status, state.project.status_message,
                )
                return state

        # -------------------------------------------------------------------
        # Prize categories, one isolated batch at a time
        # -------------------------------------------------------------------
        state = set_project_status(services, state, STATUS_PROCESSING_PRIZE_REVIEW)
        batch_size = services.config.prize_batch_size
        for batch in chunked(list(state.project.prize_slugs), batch_size):
            services.cancel.check()
            state = _review_prize_batch(state, services, batch)

        state = set_project_status(services, state, STATUS_PROCESSED)
    except ReviewCancelled:
        logger.warning("Review for project ID %s was cancelled", project.id)
        return _record_failure(services, state, CANCELLED_MESSAGE)
    except StoreError as e:
        logger.exception("Store failure during review of project ID %s", project.id)
        return _record_failure(services, state, f"Failed to save review progress: {e}")
    except Exception as e:
        logger.exception("Unexpected failure during review of project ID %s", project.id)
        message = str(e) or type(e).__name__
        return _record_failure(services, state, f"Unexpected review failure: {message}")

    logger.info("Review for project ID %s completed", project.id)
    return state


def _review_prize_batch(state: RunState, services: ReviewServices, batch: List[str]) -> RunState:
    try:
        outcome = review_prize_categories(state, services, batch)
    except (ReviewCancelled, StoreError):
        raise
    except Exception as e:
        logger.exception(
            "Prize review batch %s failed for project ID %s", batch, state.project.id
        )
        # The stage may have saved verdicts for part of the batch before failing.
        current = services.store.get_project(state.project.id)
        state = state.with_project(
            state.project.apply({"prize_results": current.prize_results_record()})
        )
        message = str(e) or type(e).__name__
        updates = {
            slug: PrizeReviewResult(PRIZE_ERRORED, message)
            for slug in batch
            if _still_pending(state, slug)
        }
        return merge_prize_results(services, state, updates)

    if not outcome.ok:
        logger.warning("Prize review batch %s failed for project ID %s", batch, state.project.id)
    return outcome.state


def _still_pending(state: RunState, slug: str) -> bool:
    result = state.project.prize_results.get(slug)
    return result is None or result.status == PRIZE_PROCESSING


def _record_failure(services: ReviewServices, state: RunState, message: str) -> RunState:
    """Best-effort terminal write after the run could not continue."""
    fields = {"status": STATUS_ERRORED, "status_message": message}
    try:
        services.store.update_project(state.project.id, fields)
    except StoreError:
        logger.exception("Could not record errored status for project ID %s", state.project.id)
        return state
    return state.with_project(state.project.apply(fields))


def review_project(project_id: str, config: Optional[ReviewConfig] = None) -> RunState:
    """Load ``project_id`` from the configured store and review it."""
    services = build_services(config or ReviewConfig.from_env())
    project = services.store.get_project(project_id)
    return run_project_review(project, services)


@click.command()
@click.argument("project_id")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def main(project_id: str, verbose: bool):
    """Review one hackathon project and print its final status."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        state = review_project(project_id)
    except (StoreError, GenerationError, ValueError) as e:
        raise click.ClickException(str(e))

    click.echo(f"{state.project.id}: {state.project.status}")
    if state.project.status_message:
        click.echo(state.project.status_message)
    sys.exit(0 if state.project.status == STATUS_PROCESSED else 1)


if __name__ == "__main__":
    main()
