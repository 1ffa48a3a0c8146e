"""
Structured Generation — Hackathon Judging Agent

PURPOSE:
    Ask Gemini for a JSON object that conforms to a declared schema and hand
    back the validated value. Shared by the code review stage and the prize
    category review stage.

    1. Up to 3 structured attempts (response_mime_type="application/json"
       plus a response_schema), with 2 ** attempt seconds of backoff between
       attempts.
    2. If all of them fail, one free-text attempt with an explicit
       "JSON only" instruction, recovered through json_repair.py.
    3. If nothing validates, GenerationError carrying the first structured
       attempt's error.

EXTERNAL APIS USED:
    - Gemini via the google-genai SDK (GEMINI_API_KEY)

DESIGN DECISIONS:
    - temperature=0.2 keeps verdicts stable between re-runs of the same
      project.
    - Validation uses pydantic TypeAdapters, so a schema can be a model class
      (code review) or a plain typing construct such as
      ``dict[str, PrizeVerdict]`` (batched prize review) with an explicit
      response_schema for Gemini.
    - Backoff sleeps go through the run's cancellation token, and every
      request timeout is capped by the time left on the run's deadline.
"""

import logging
from typing import Any, Optional

from google import genai
from google.genai import types
from pydantic import TypeAdapter

from .cancellation import CancellationToken, ReviewCancelled
from .config import DEFAULT_GEMINI_MODEL
from .json_repair import recover_json

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
GENERATE_TIMEOUT_SECONDS = 180

JSON_ONLY_INSTRUCTION = (
    "Respond with a single JSON object only. Do not wrap it in Markdown code "
    "fences, do not add commentary, and do not repeat the object inside any "
    "string value. The first character of your response must be {."
)


class GenerationError(Exception):
    """Structured generation failed after every attempt and repair strategy."""


class StructuredGenerator:
    """Gemini client that returns schema-validated objects."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_GEMINI_MODEL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        temperature: float = 0.2,
        client: Any = None,
    ):
        if client is None:
            if not api_key:
                raise GenerationError("GEMINI_API_KEY is not set.")
            client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=GENERATE_TIMEOUT_SECONDS * 1000),
            )
        self.client = client
        self.model_name = model_name
        self.max_attempts = max_attempts
        self.temperature = temperature

    def generate_object(
        self,
        system_prompt: str,
        prompt: str,
        schema: Any,
        cancel: CancellationToken,
        response_schema: Any = None,
    ) -> Any:
        """
        Generate and validate an object of type ``schema``.

        Args:
            system_prompt: Instructions for the model.
            prompt: The user turn (project description, code pack, ...).
            schema: A pydantic model or typing construct the result must match.
            cancel: The run's cancellation token.
            response_schema: Schema sent to Gemini when ``schema`` itself
                cannot be expressed there. Defaults to ``schema``.

        Raises:
            GenerationError: nothing valid could be produced.
            ReviewCancelled: the run was cancelled.
        """
        adapter = TypeAdapter(schema)
        first_error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            cancel.check()
            try:
                return self._structured_attempt(
                    system_prompt, prompt, adapter, response_schema or schema, cancel
                )
            except ReviewCancelled:
                raise
            except Exception as e:
                first_error = first_error or e
                logger.warning(
                    "Structured generation attempt %d/%d failed: %s",
                    attempt + 1, self.max_attempts, e,
                )
                if attempt < self.max_attempts - 1:
                    cancel.wait(2 ** attempt)

        cancel.check()
        try:
            raw_text = self._free_text_attempt(system_prompt, prompt, cancel)
        except ReviewCancelled:
            raise
        except Exception as e:
            logger.warning("Free-text fallback generation failed: %s", e)
            raise GenerationError(str(first_error)) from first_error

        recovered = recover_json(raw_text, adapter.validate_python)
        if recovered is None:
            logger.warning("Could not recover JSON from free-text output: %.200s", raw_text)
            raise GenerationError(str(first_error)) from first_error
        return recovered

    def _structured_attempt(self, system_prompt, prompt, adapter, response_schema, cancel):
        config = types.GenerateContentConfig(
            http_options=_http_options(cancel),
            system_instruction=system_prompt,
            response_mime_type="application/json",
            response_schema=response_schema,
            temperature=self.temperature,
        )
        response = self.client.models.generate_content(
            model=self.model_name, contents=prompt, config=config
        )
        raw_text = response.text or ""
        if not raw_text.strip():
            raise GenerationError("Gemini returned an empty response")
        return adapter.validate_json(raw_text)

    def _free_text_attempt(self, system_prompt, prompt, cancel) -> str:
        config = types.GenerateContentConfig(
            http_options=_http_options(cancel),
            system_instruction=f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTION}",
            temperature=self.temperature,
        )
        response = self.client.models.generate_content(
            model=self.model_name, contents=prompt, config=config
        )
        return response.text or ""


def _http_options(cancel: CancellationToken) -> types.HttpOptions:
    # HttpOptions.timeout is in milliseconds.
    return types.HttpOptions(timeout=int(cancel.timeout(GENERATE_TIMEOUT_SECONDS) * 1000))
