"""
Stage 4: Prize Category Review — Hackathon Judging Agent

PURPOSE:
    Decide, for a batch of opted-in prize slugs, whether the repository
    really uses each prize's required technology.

    1. Mark every slug in the batch "processing" (one write).
    2. Load the PrizeCategory rows for the batch.
         - no configuration          -> invalid, no LLM call
         - keywords, none in the code -> invalid, no LLM call
    3. One batched Gemini call for the remaining slugs. The response must
       contain a {status, message} object for every one of them.
         - missing key or generation error -> every eligible slug errored

    Every write is a read-modify-write merge of prize_results, so slugs
    outside this batch are never touched.

CALLED BY:
    review_pipeline_main.py — once per batch of PRIZE_BATCH_SIZE slugs.
    A failed outcome (ok=False) is recorded per slug and never changes the
    project's overall status.

COST:
    At most one Gemini call per batch. Prizes dropped by the keyword
    pre-filter cost nothing.
"""

import logging
from typing import Dict, Iterable, List, Literal, Mapping

from pydantic import BaseModel

from .context import ReviewServices
from .keyword_matcher import grep_any
from .models import (
    PRIZE_ERRORED,
    PRIZE_INVALID,
    PrizeCategory,
    PrizeReviewResult,
    RunState,
    StageOutcome,
)
from .project_store import StoreError
from .prompts import build_prize_category_prompt, build_prize_category_system_prompt
from .status import mark_prizes_processing, merge_prize_results
from .structured_generation import GenerationError

logger = logging.getLogger(__name__)

CONFIG_NOT_FOUND_MESSAGE = "Prize category configuration not found."


class PrizeVerdict(BaseModel):
    status: Literal["valid", "invalid"]
    message: str


def prize_response_schema(prize_slugs: Iterable[str]) -> dict:
    """Gemini response schema with one required {status, message} object per slug."""
    slugs = list(prize_slugs)
    verdict = {
        "type": "OBJECT",
        "properties": {
            "status": {"type": "STRING", "enum": ["valid", "invalid"]},
            "message": {"type": "STRING"},
        },
        "required": ["status", "message"],
    }
    return {
        "type": "OBJECT",
        "properties": {slug: verdict for slug in slugs},
        "required": slugs,
    }


def _errored(prize_slugs: Iterable[str], message: str) -> Dict[str, PrizeReviewResult]:
    return {slug: PrizeReviewResult(PRIZE_ERRORED, message) for slug in prize_slugs}


def prefilter_categories(
    prize_slugs: List[str], categories: Mapping[str, PrizeCategory], repo_content: str
):
    """
    Split the batch into verdicts that need no LLM call and categories that do.

    Returns:
        (verdicts, eligible) where verdicts maps slug -> invalid result and
        eligible is the ordered list of PrizeCategory to send to Gemini.
    """
    verdicts: Dict[str, PrizeReviewResult] = {}
    eligible: List[PrizeCategory] = []
    for slug in prize_slugs:
        category = categories.get(slug)
        if category is None:
            logger.warning("No prize category configuration for slug %s", slug)
            verdicts[slug] = PrizeReviewResult(PRIZE_INVALID, CONFIG_NOT_FOUND_MESSAGE)
            continue
        if category.find_words and not grep_any(repo_content, category.find_words):
            logger.info("Keyword check failed for %s, skipping LLM review", category.name)
            verdicts[slug] = PrizeReviewResult(
                PRIZE_INVALID, f"Keyword check failed for {category.name}"
            )
            continue
        eligible.append(category)
    return verdicts, eligible


def review_prize_categories(
    state: RunState, services: ReviewServices, prize_slugs: Iterable[str]
) -> StageOutcome:
    """
    Review one batch of prize slugs for the project in ``state``.

    Returns:
        StageOutcome with ok=False when the batch could not be judged. The
        affected slugs are already persisted as errored.
    """
    project = state.project
    slugs = list(dict.fromkeys(prize_slugs))
    if not slugs:
        return StageOutcome(ok=True, state=state)

    repo_content = state.repo_info.content if state.repo_info else None
    if not repo_content:
        state = merge_prize_results(
            services, state, _errored(slugs, "Missing repository content for prize review.")
        )
        return StageOutcome(ok=False, state=state)

    state = mark_prizes_processing(services, state, slugs)

    try:
        categories = services.store.get_prize_categories(slugs)
    except StoreError as e:
        logger.exception("Loading prize categories failed for project ID %s", project.id)
        state = merge_prize_results(
            services, state, _errored(slugs, f"Failed to load prize category configuration: {e}")
        )
        return StageOutcome(ok=False, state=state)

    verdicts, eligible = prefilter_categories(slugs, categories, repo_content)
    state = merge_prize_results(services, state, verdicts)
    if not eligible:
        return StageOutcome(ok=True, state=state)

    # -----------------------------------------------------------------------
    # One batched Gemini call for every eligible prize
    # -----------------------------------------------------------------------

    eligible_slugs = [category.slug for category in eligible]
    system_prompt = build_prize_category_system_prompt(eligible)
    prompt = build_prize_category_prompt(eligible_slugs, state.project, repo_content)

    try:
        result = services.generator.generate_object(
            system_prompt,
            prompt,
            Dict[str, PrizeVerdict],
            services.cancel,
            response_schema=prize_response_schema(eligible_slugs),
        )
    except GenerationError as e:
        logger.exception(
            "Prize category review failed for project ID %s (prizes: %s)",
            project.id, ", ".join(eligible_slugs),
        )
        state = merge_prize_results(services, state, _errored(eligible_slugs, str(e)))
        return StageOutcome(ok=False, state=state)

    missing = [slug for slug in eligible_slugs if slug not in result]
    if missing:
        logger.error(
            "Prize category review for project ID %s returned no result for: %s",
            project.id, ", ".join(missing),
        )
        state = merge_prize_results(
            services,
            state,
            _errored(eligible_slugs, f"Prize review response missing results for: {', '.join(missing)}"),
        )
        return StageOutcome(ok=False, state=state)

    updates = {
        slug: PrizeReviewResult(result[slug].status, result[slug].message)
        for slug in eligible_slugs
    }
    logger.debug("Prize category review results for project ID %s: %s", project.id, updates)
    state = merge_prize_results(services, state, updates)
    return StageOutcome(ok=True, state=state)
