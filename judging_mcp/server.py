"""
MCP Server — Hackathon Judging Agent

PURPOSE:
    The interface judges and AI agents use to drive the review pipeline.
    Agents connect via MCP (Model Context Protocol) and get:

    1. start_review — Queue a full review of one project. Returns
       "accepted" immediately; the review runs in the background.
    2. get_project_review — Read a project's current status, AI-derived
       fields and per-prize verdicts.
    3. list_prize_categories — Show the prize configuration (guidance and
       keywords) the prize stage judges against.

ARCHITECTURE:
    Uses the official MCP Python SDK (mcp package) with stdio transport.
    Tools are registered with the @mcp.tool() decorator and delegate to a
    ReviewLauncher, which owns the background worker pool:

    - Reviews run on a bounded ThreadPoolExecutor (REVIEW_WORKERS threads).
    - A project already being reviewed by this process is not queued again.
      Runs started by other processes are not visible here.
    - Each run gets its own services and its own cancellation deadline.

INSTALLATION:
    pip install -e .

    Then add to your MCP config (e.g., Claude Desktop mcp.json):
    {
      "mcpServers": {
        "hackathon-judging": {
          "command": "judging-mcp",
          "env": {
            "SUPABASE_URL": "https://<project>.supabase.co",
            "SUPABASE_SERVICE_ROLE_KEY": "...",
            "GEMINI_API_KEY": "...",
            "GITHUB_TOKEN": "..."
          }
        }
      }
    }
"""

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from mcp.server.fastmcp import FastMCP

from judging_agent.config import ReviewConfig
from judging_agent.context import ReviewServices, build_services
from judging_agent.notify import notify_review_triggered
from judging_agent.project_store import (
    ProjectNotFound,
    ProjectStore,
    StoreError,
    SupabaseProjectStore,
)
from judging_agent.review_pipeline_main import run_project_review
from judging_agent.structured_generation import GenerationError

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------
# REVIEW_WORKERS: how many project reviews may run at the same time
# Everything else is read by ReviewConfig.from_env()
# -----------------------------------------------------------------------

REVIEW_WORKERS = int(os.environ.get("REVIEW_WORKERS", "2"))


class ReviewLauncher:
    """Starts background reviews and answers read-only queries."""

    def __init__(
        self,
        config: Optional[ReviewConfig] = None,
        store: Optional[ProjectStore] = None,
        services_factory: Optional[Callable[[], ReviewServices]] = None,
        max_workers: int = REVIEW_WORKERS,
        notifier: Callable[..., bool] = notify_review_triggered,
    ):
        self.config = config or ReviewConfig.from_env()
        self._store = store
        self._services_factory = services_factory
        self._notifier = notifier
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="project-review"
        )
        self._lock = threading.Lock()
        self._in_flight: set = set()

    @property
    def store(self) -> ProjectStore:
        if self._store is None:
            self._store = SupabaseProjectStore(
                self.config.supabase_url,
                self.config.supabase_key,
                timeout=self.config.http_timeout_seconds,
            )
        return self._store

    def build_services(self) -> ReviewServices:
        if self._services_factory is not None:
            return self._services_factory()
        return build_services(self.config, store=self.store)

    def in_flight(self) -> set:
        with self._lock:
            return set(self._in_flight)

    def start_review(self, project_id: str, requested_by: str = "") -> dict:
        project_id = (project_id or "").strip()
        if not project_id:
            return {"error": "project_id is required"}

        with self._lock:
            if project_id in self._in_flight:
                return {"status": "already_running", "project_id": project_id}
            self._in_flight.add(project_id)

        try:
            services = self.build_services()
            project = services.store.get_project(project_id)
        except ProjectNotFound:
            self._release(project_id)
            return {"error": "Project not found", "project_id": project_id}
        except (StoreError, GenerationError) as e:
            self._release(project_id)
            logger.exception("Could not start review for project ID %s", project_id)
            return {"error": f"Failed to load project: {e}", "project_id": project_id}

        future = self._executor.submit(run_project_review, project, services)
        future.add_done_callback(lambda f: self._finished(project_id, f))

        self._notifier(
            self.config.discord_webhook_url,
            user_email=requested_by or None,
            event_name=project.event.name if project.event else None,
            project_count=1,
        )
        return {"status": "accepted", "project_id": project_id}

    def get_project_review(self, project_id: str) -> dict:
        try:
            project = self.store.get_project(project_id.strip())
        except ProjectNotFound:
            return {"error": f"No project found for ID: {project_id}"}
        except StoreError as e:
            return {"error": str(e)}

        record = project.to_record()
        record["review_in_progress"] = project.id in self.in_flight()
        return record

    def list_prize_categories(self, slugs: str = "") -> dict:
        wanted = [slug.strip() for slug in slugs.split(",") if slug.strip()]
        if not wanted:
            return {"error": "Provide one or more comma-separated prize slugs."}
        try:
            categories = self.store.get_prize_categories(wanted)
        except StoreError as e:
            return {"error": str(e)}

        return {
            "categories": [
                {
                    "slug": category.slug,
                    "name": category.name,
                    "system_prompt": category.system_prompt,
                    "find_words": list(category.find_words),
                }
                for category in categories.values()
            ],
            "missing": [slug for slug in wanted if slug not in categories],
        }

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _release(self, project_id: str) -> None:
        with self._lock:
            self._in_flight.discard(project_id)

    def _finished(self, project_id: str, future: Future) -> None:
        self._release(project_id)
        error = future.exception()
        if error is not None:
            logger.error("Review for project ID %s crashed: %s", project_id, error)


# -----------------------------------------------------------------------
# MCP SERVER DEFINITION
# -----------------------------------------------------------------------

mcp = FastMCP("Hackathon Judging Agent")

_launcher: Optional[ReviewLauncher] = None


def get_launcher() -> ReviewLauncher:
    global _launcher
    if _launcher is None:
        _launcher = ReviewLauncher()
    return _launcher


@mcp.tool()
def start_review(project_id: str, requested_by: str = "") -> dict:
    """
    Start a full review of a hackathon project.

    The review runs in the background: repository validation, hacking
    timeline check, code review, then every opted-in prize category.
    Poll get_project_review for progress and results.

    Args:
        project_id: The project's ID in the store.
        requested_by: Email or handle of the judge starting the review.

    Returns:
        {"status": "accepted"} once the review is queued, or an error.
    """
    return get_launcher().start_review(project_id, requested_by)


@mcp.tool()
def get_project_review(project_id: str) -> dict:
    """
    Get a project's review status and results.

    Returns status, status_message, description accuracy, technical
    complexity, tech stack and per-prize verdicts ({status, message} per
    prize slug).
    """
    return get_launcher().get_project_review(project_id)


@mcp.tool()
def list_prize_categories(slugs: str = "") -> dict:
    """
    Show prize category configuration.

    Args:
        slugs: Comma-separated prize slugs (e.g., "best-use-of-stripe,best-ai-hack").
    """
    return get_launcher().list_prize_categories(slugs)


# -----------------------------------------------------------------------
# ENTRY POINT
# -----------------------------------------------------------------------
# Agents run this module as a subprocess (configured in their mcp.json or
# equivalent) and talk JSON-RPC over stdin/stdout.
# -----------------------------------------------------------------------


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
