"""Tests for Stage 4: prize category review."""

import pytest

from judging_agent.models import (
    PRIZE_ERRORED,
    PRIZE_INVALID,
    PRIZE_PROCESSING,
    PRIZE_VALID,
    PrizeReviewResult,
    RepositoryInfo,
    RunState,
)
from judging_agent.stage_4_prize_category_review import (
    CONFIG_NOT_FOUND_MESSAGE,
    prize_response_schema,
    review_prize_categories,
)
from judging_agent.status import mark_processing, merge_prize_results
from judging_agent.structured_generation import GenerationError

CODE = (
    "## File: app.py\nimport stripe\nfrom openai import OpenAI\n\n"
    "## File: sms.py\nfrom twilio.rest import Client\n\n"
)


@pytest.fixture
def prize_state(services, project, store):
    store.add_category("openai", name="Best Use of OpenAI", find_words=("openai",))
    store.add_category("twilio", name="Best Use of Twilio", find_words=("twilio",))
    store.add_category("aws", name="Best Use of AWS", find_words=("boto3", "aws-sdk"))
    store.add_category("wildcard", name="Wildcard")
    project = project.apply({"prize_slugs": ("stripe", "openai", "twilio", "aws", "wildcard")})
    state = RunState(project=project, repo_info=RepositoryInfo("acme", "widget", CODE))
    return mark_processing(services, state)


def _verdict(status="valid", message="- evidence in app.py"):
    return {"status": status, "message": message}


class TestReviewPrizeCategories:

    def test_valid_verdict(self, services, prize_state, generator):
        generator.responses.append({"stripe": _verdict()})

        outcome = review_prize_categories(prize_state, services, ["stripe"])

        assert outcome.ok
        assert outcome.state.project.prize_results["stripe"] == PrizeReviewResult(
            PRIZE_VALID, "- evidence in app.py"
        )
        assert len(generator.calls) == 1
        assert "Best Use of Stripe" in generator.calls[0]["system_prompt"]

    def test_batch_is_marked_processing_in_one_write(self, services, prize_state, generator, store):
        generator.responses.append({"stripe": _verdict(), "openai": _verdict("invalid", "- none")})
        writes_before = len(store.updates)

        review_prize_categories(prize_state, services, ["stripe", "openai"])

        first = store.updated_fields()[writes_before]["prize_results"]
        assert first["stripe"] == {"status": PRIZE_PROCESSING, "message": "Reviewing prize: stripe"}
        assert first["openai"] == {"status": PRIZE_PROCESSING, "message": "Reviewing prize: openai"}
        assert first["twilio"]["message"] == "Queued for prize review."

    def test_keyword_miss_skips_llm(self, services, prize_state, generator):
        outcome = review_prize_categories(prize_state, services, ["aws"])

        assert outcome.ok
        assert generator.calls == []
        assert outcome.state.project.prize_results["aws"] == PrizeReviewResult(
            PRIZE_INVALID, "Keyword check failed for Best Use of AWS"
        )

    def test_keyword_hit_invokes_llm(self, services, prize_state, generator):
        generator.responses.append({"twilio": _verdict("invalid", "- imported only")})

        outcome = review_prize_categories(prize_state, services, ["twilio"])

        assert len(generator.calls) == 1
        assert outcome.state.project.prize_results["twilio"].status == PRIZE_INVALID

    def test_no_keywords_always_goes_to_llm(self, services, prize_state, generator):
        generator.responses.append({"wildcard": _verdict()})
        review_prize_categories(prize_state, services, ["wildcard"])
        assert len(generator.calls) == 1

    def test_missing_configuration(self, services, prize_state, generator):
        outcome = review_prize_categories(prize_state, services, ["mystery"])

        assert outcome.ok
        assert generator.calls == []
        assert outcome.state.project.prize_results["mystery"] == PrizeReviewResult(
            PRIZE_INVALID, CONFIG_NOT_FOUND_MESSAGE
        )

    def test_one_call_for_the_eligible_part_of_a_batch(self, services, prize_state, generator):
        generator.responses.append({"stripe": _verdict(), "openai": _verdict()})

        outcome = review_prize_categories(prize_state, services, ["stripe", "aws", "openai"])

        assert len(generator.calls) == 1
        assert generator.calls[0]["response_schema"]["required"] == ["stripe", "openai"]
        results = outcome.state.project.prize_results
        assert results["stripe"].status == PRIZE_VALID
        assert results["openai"].status == PRIZE_VALID
        assert results["aws"].status == PRIZE_INVALID

    def test_generation_error_isolated_to_batch(self, services, prize_state, generator):
        state = merge_prize_results(
            services, prize_state, {"wildcard": PrizeReviewResult(PRIZE_VALID, "earlier batch")}
        )
        generator.responses.append(GenerationError("503 UNAVAILABLE"))

        outcome = review_prize_categories(state, services, ["stripe", "openai", "twilio"])

        assert not outcome.ok
        results = outcome.state.project.prize_results
        for slug in ("stripe", "openai", "twilio"):
            assert results[slug] == PrizeReviewResult(PRIZE_ERRORED, "503 UNAVAILABLE")
        assert results["wildcard"] == PrizeReviewResult(PRIZE_VALID, "earlier batch")
        assert results["aws"].status == PRIZE_PROCESSING

    def test_missing_key_errors_every_eligible_slug(self, services, prize_state, generator):
        generator.responses.append({"stripe": _verdict()})

        outcome = review_prize_categories(prize_state, services, ["stripe", "openai", "aws"])

        assert not outcome.ok
        results = outcome.state.project.prize_results
        assert results["stripe"].status == PRIZE_ERRORED
        assert results["openai"].status == PRIZE_ERRORED
        assert "openai" in results["openai"].message
        assert results["aws"].status == PRIZE_INVALID

    def test_category_load_failure(self, services, prize_state, generator, store):
        store.fail_categories = True

        outcome = review_prize_categories(prize_state, services, ["stripe"])

        assert not outcome.ok
        assert outcome.state.project.prize_results["stripe"].status == PRIZE_ERRORED
        assert generator.calls == []

    def test_missing_repository_content(self, services, prize_state, generator):
        state = RunState(project=prize_state.project)
        outcome = review_prize_categories(state, services, ["stripe"])
        assert not outcome.ok
        assert outcome.state.project.prize_results["stripe"].status == PRIZE_ERRORED

    def test_empty_batch(self, services, prize_state, store):
        writes = len(store.updates)
        assert review_prize_categories(prize_state, services, []).ok
        assert len(store.updates) == writes


class TestPrizeResponseSchema:

    def test_one_required_object_per_slug(self):
        schema = prize_response_schema(["stripe", "openai"])
        assert schema["required"] == ["stripe", "openai"]
        stripe = schema["properties"]["stripe"]
        assert stripe["properties"]["status"]["enum"] == ["valid", "invalid"]
        assert stripe["required"] == ["status", "message"]
