"""
Configuration — Hackathon Judging Agent

Every tunable of the review pipeline comes from the environment so the
same code runs on a judge's laptop, in CI and behind the MCP server.

    GITHUB_TOKEN               optional, raises the GitHub rate limit
    GEMINI_API_KEY             required for code and prize reviews
    GEMINI_MODEL               defaults to gemini-2.5-flash-lite
    SUPABASE_URL               project store endpoint
    SUPABASE_SERVICE_ROLE_KEY  project store key
    DISCORD_WEBHOOK_URL        optional "review triggered" notifications
    PRIZE_BATCH_SIZE           prizes judged per LLM call (default 1)
    REPO_FETCH_CONCURRENCY     parallel file downloads (default 4)
    REPO_MAX_FILE_BYTES        files above this size are skipped (default 200000)
    REVIEW_TIMEOUT_SECONDS     deadline for a whole run (default 900)
    HTTP_TIMEOUT_SECONDS       ceiling for a single HTTP request (default 30)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-lite"


@dataclass(frozen=True)
class ReviewConfig:
    github_token: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    discord_webhook_url: Optional[str] = None
    prize_batch_size: int = 1
    fetch_concurrency: int = 4
    max_file_bytes: int = 200_000
    review_timeout_seconds: int = 900
    http_timeout_seconds: int = 30

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ReviewConfig":
        """Build a config from ``os.environ`` (or the mapping given)."""
        env = os.environ if environ is None else environ
        return cls(
            github_token=_optional(env, "GITHUB_TOKEN"),
            gemini_api_key=_optional(env, "GEMINI_API_KEY"),
            gemini_model=_optional(env, "GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
            supabase_url=_optional(env, "SUPABASE_URL"),
            supabase_key=_optional(env, "SUPABASE_SERVICE_ROLE_KEY"),
            discord_webhook_url=_optional(env, "DISCORD_WEBHOOK_URL"),
            prize_batch_size=_positive_int(env, "PRIZE_BATCH_SIZE", 1),
            fetch_concurrency=_positive_int(env, "REPO_FETCH_CONCURRENCY", 4),
            max_file_bytes=_positive_int(env, "REPO_MAX_FILE_BYTES", 200_000),
            review_timeout_seconds=_positive_int(env, "REVIEW_TIMEOUT_SECONDS", 900),
            http_timeout_seconds=_positive_int(env, "HTTP_TIMEOUT_SECONDS", 30),
        )


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name, "").strip()
    return value or None


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value
