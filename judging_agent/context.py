"""Collaborators shared by every stage of one run."""

from dataclasses import dataclass
from typing import Optional

from .cancellation import CancellationToken
from .config import ReviewConfig
from .github_client import GitHubAPI
from .project_store import ProjectStore, SupabaseProjectStore
from .structured_generation import StructuredGenerator


@dataclass(frozen=True)
class ReviewServices:
    store: ProjectStore
    github: GitHubAPI
    generator: StructuredGenerator
    cancel: CancellationToken
    config: ReviewConfig


def build_services(
    config: ReviewConfig,
    cancel: Optional[CancellationToken] = None,
    store: Optional[ProjectStore] = None,
) -> ReviewServices:
    """Wire the production collaborators from ``config``."""
    if cancel is None:
        cancel = CancellationToken(deadline_seconds=config.review_timeout_seconds)
    if store is None:
        store = SupabaseProjectStore(
            config.supabase_url, config.supabase_key, timeout=config.http_timeout_seconds
        )
    return ReviewServices(
        store=store,
        github=GitHubAPI(token=config.github_token, timeout=config.http_timeout_seconds),
        generator=StructuredGenerator(
            api_key=config.gemini_api_key, model_name=config.gemini_model
        ),
        cancel=cancel,
        config=config,
    )
