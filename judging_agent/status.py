"""
Persisted writes of a run.

Each helper writes a partial update to the store and returns a RunState
whose Project copy already reflects that write, so later stages see
earlier stages' results without reading the row again. A StoreError
propagates to the orchestrator.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from .context import ReviewServices
from .models import (
    AI_DERIVED_FIELDS,
    PRIZE_PROCESSING,
    STATUS_PROCESSING_CODE_REVIEW,
    STATUS_PROCESSING_PRIZE_REVIEW,
    STATUS_UNPROCESSED,
    TERMINAL_STATUSES,
    PrizeReviewResult,
    RunState,
)

logger = logging.getLogger(__name__)


def _status_rank(status: str) -> int:
    if status in TERMINAL_STATUSES:
        return 3
    return {
        STATUS_UNPROCESSED: 0,
        STATUS_PROCESSING_CODE_REVIEW: 1,
        STATUS_PROCESSING_PRIZE_REVIEW: 2,
    }.get(status, 0)


def persist(services: ReviewServices, state: RunState, fields: Mapping[str, Any]) -> RunState:
    services.store.update_project(state.project.id, fields)
    return state.with_project(state.project.apply(fields))


def mark_processing(services: ReviewServices, state: RunState) -> RunState:
    """
    Start of a run: clear every AI-derived field, reset prize_results to
    exactly the opted-in slugs (all "processing") and enter
    processing:code_review.
    """
    fields: dict[str, Any] = {name: None for name in AI_DERIVED_FIELDS}
    fields["tech_stack"] = []
    fields.update(
        status=STATUS_PROCESSING_CODE_REVIEW,
        status_message=None,
        process_started_at=datetime.now(timezone.utc).isoformat(),
        prize_results={
            slug: PrizeReviewResult(PRIZE_PROCESSING, "Queued for prize review.").to_dict()
            for slug in state.project.prize_slugs
        },
    )
    return persist(services, state, fields)


def set_project_status(
    services: ReviewServices, state: RunState, status: str, message: Optional[str] = None
) -> RunState:
    current = state.project.status
    if _status_rank(status) < _status_rank(current):
        raise ValueError(f"Project status cannot move back from {current} to {status}")
    logger.debug("Project %s status -> %s (%s)", state.project.id, status, message)
    return persist(services, state, {"status": status, "status_message": message})


def merge_prize_results(
    services: ReviewServices, state: RunState, updates: Mapping[str, PrizeReviewResult]
) -> RunState:
    """Read-modify-write of prize_results: only the slugs in ``updates`` change."""
    if not updates:
        return state
    existing = state.project.prize_results
    for slug, result in updates.items():
        previous = existing.get(slug)
        if (
            previous is not None
            and previous.status != PRIZE_PROCESSING
            and result.status == PRIZE_PROCESSING
        ):
            raise ValueError(f"Prize {slug} already has a {previous.status} verdict in this run")

    merged = {**existing, **updates}
    record = {slug: result.to_dict() for slug, result in merged.items()}
    return persist(services, state, {"prize_results": record})


def mark_prizes_processing(
    services: ReviewServices, state: RunState, prize_slugs: Iterable[str]
) -> RunState:
    updates = {
        slug: PrizeReviewResult(PRIZE_PROCESSING, f"Reviewing prize: {slug}")
        for slug in prize_slugs
    }
    return merge_prize_results(services, state, updates)
