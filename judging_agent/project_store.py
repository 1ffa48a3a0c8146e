"""
Project Store — Hackathon Judging Agent

PURPOSE:
    The persistence the pipeline reads projects and prize categories from
    and writes every status and verdict to. Writes are always partial
    updates keyed by project id, never full-row replacement.

    ProjectStore is the interface the pipeline depends on.
    SupabaseProjectStore implements it over Supabase's PostgREST API.

DEPENDS ON:
    - The `requests` library
    - SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY

COLUMN NAMES:
    The projects table predates the pipeline, so a few columns differ from
    the field names used in code:
        status_message -> project_processing_status_message
        description    -> about_the_project
        title          -> project_title
        prize_slugs    -> standardized_opt_in_prizes
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional

import requests

from .models import PrizeCategory, Project

logger = logging.getLogger(__name__)

FIELD_TO_COLUMN = {
    "status_message": "project_processing_status_message",
    "description": "about_the_project",
    "title": "project_title",
    "prize_slugs": "standardized_opt_in_prizes",
}
COLUMN_TO_FIELD = {column: name for name, column in FIELD_TO_COLUMN.items()}

PROJECT_SELECT = "*,event:events(name,starts_at,ends_at)"
PRIZE_CATEGORY_SELECT = "slug,name,system_prompt,find_words"


class StoreError(Exception):
    """A store read or write failed."""


class ProjectNotFound(StoreError):
    pass


class ProjectStore(ABC):

    @abstractmethod
    def get_project(self, project_id: str) -> Project:
        """Load a project with its parent event window."""

    @abstractmethod
    def update_project(self, project_id: str, fields: Mapping[str, Any]) -> None:
        """Persist a partial update. Raises StoreError on failure."""

    @abstractmethod
    def get_prize_categories(self, slugs: Iterable[str]) -> dict:
        """PrizeCategory by slug. Slugs with no configuration are simply absent."""


class SupabaseProjectStore(ProjectStore):

    def __init__(self, url: str, key: str, timeout: float = 30):
        if not url or not key:
            raise StoreError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set.")
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    def get_project(self, project_id: str) -> Project:
        rows = self._request(
            "GET", "/projects", params={"id": f"eq.{project_id}", "select": PROJECT_SELECT}
        )
        if not rows:
            raise ProjectNotFound(f"Project {project_id} not found")
        return Project.from_record(to_fields(rows[0]))

    def update_project(self, project_id: str, fields: Mapping[str, Any]) -> None:
        self._request(
            "PATCH",
            "/projects",
            params={"id": f"eq.{project_id}"},
            json=to_columns(fields),
            extra_headers={"Prefer": "return=minimal"},
        )

    def get_prize_categories(self, slugs: Iterable[str]) -> dict:
        slugs = list(slugs)
        if not slugs:
            return {}
        quoted = ",".join(f'"{slug}"' for slug in slugs)
        rows = self._request(
            "GET",
            "/prize_categories",
            params={"slug": f"in.({quoted})", "select": PRIZE_CATEGORY_SELECT},
        )
        return {row["slug"]: PrizeCategory.from_record(row) for row in rows or []}

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Any = None,
        extra_headers: Optional[dict] = None,
    ) -> Any:
        headers = dict(self.headers)
        if extra_headers:
            headers.update(extra_headers)
        try:
            resp = requests.request(
                method,
                f"{self.rest_url}{path}",
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StoreError(f"Store request {method} {path} failed: {e}") from e

        if not resp.ok:
            raise StoreError(
                f"Store request {method} {path} returned {resp.status_code}: {resp.text[:200]}"
            )
        if not resp.content:
            return None
        return resp.json()


def to_columns(fields: Mapping[str, Any]) -> dict:
    return {FIELD_TO_COLUMN.get(name, name): value for name, value in fields.items()}


def to_fields(row: Mapping[str, Any]) -> dict:
    return {COLUMN_TO_FIELD.get(column, column): value for column, value in row.items()}
