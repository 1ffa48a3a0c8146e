"""
GitHub Client — Hackathon Judging Agent

PURPOSE:
    Thin wrapper around the GitHub REST API for the four reads the pipeline
    needs: repository metadata, the recursive file tree, raw file contents
    and the paginated commit list. Also parses a submitted repository URL
    into owner/repo.

CALLED BY:
    stage_1_validate_repository.py (metadata + content fetcher)
    stage_2_hacking_timeline.py (commit timeline reader)

DEPENDS ON:
    - The `requests` library for every call
    - An optional GITHUB_TOKEN; public repositories are readable without it,
      but the unauthenticated rate limit is 60 req/hr
"""

import logging
import re
from typing import Optional
from urllib.parse import parse_qs, quote, urlparse

import requests

from .cancellation import CancellationToken
from .models import RepositoryInfo

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"
USER_AGENT = "hackathon-judging-agent"


class GitHubError(Exception):
    """A GitHub call failed. ``status`` is None for transport errors."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def not_found_or_private(self) -> bool:
        return self.status in (403, 404)


def parse_github_repo(url: Optional[str]) -> Optional[RepositoryInfo]:
    """
    Parse "https://github.com/owner/repo" (scheme optional, ".git" suffix
    allowed) into a RepositoryInfo. Returns None for anything that is not a
    github.com URL with both an owner and a repository segment.
    """
    if not url or not url.strip():
        return None

    url = url.strip()
    normalized = url if url.startswith("http") else f"https://{url}"

    try:
        parsed = urlparse(normalized)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None

    if "github.com" not in host:
        return None

    segments = parsed.path.lstrip("/").split("/")
    if len(segments) < 2 or not segments[0] or not segments[1]:
        return None

    return RepositoryInfo(owner=segments[0], repo=re.sub(r"\.git$", "", segments[1]))


class GitHubAPI:
    """
    Read-only GitHub REST calls. Every method takes the run's cancellation
    token, checks it before the request and caps the request timeout by the
    time left on the run's deadline.
    """

    def __init__(self, token: Optional[str] = None, timeout: float = 30, base_url: str = API_BASE):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def get_repository(self, owner: str, repo: str, cancel: CancellationToken) -> dict:
        """Repository metadata (default_branch, private, ...)."""
        return _json(self._get(f"/repos/{owner}/{repo}", cancel))

    def get_tree(self, owner: str, repo: str, ref: str, cancel: CancellationToken) -> list:
        """
        All blobs of the tree at ``ref``, recursively, in the order GitHub
        lists them. An empty repository (409) has no tree and yields [].
        """
        try:
            resp = self._get(
                f"/repos/{owner}/{repo}/git/trees/{quote(ref, safe='')}",
                cancel,
                params={"recursive": "1"},
            )
        except GitHubError as e:
            if e.status == 409:
                return []
            raise

        data = _json(resp)
        if data.get("truncated"):
            logger.warning("GitHub truncated the tree listing for %s/%s", owner, repo)
        return [entry for entry in data.get("tree", []) if entry.get("type") == "blob"]

    def get_file_text(self, owner: str, repo: str, path: str, ref: str, cancel: CancellationToken) -> str:
        """Raw text of a single file."""
        resp = self._get(
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            cancel,
            params={"ref": ref},
            accept="application/vnd.github.raw+json",
        )
        resp.encoding = resp.encoding or "utf-8"
        return resp.text

    def list_commits(
        self,
        owner: str,
        repo: str,
        cancel: CancellationToken,
        page: Optional[int] = None,
        per_page: int = 1,
    ) -> tuple:
        """
        One page of commits, newest first.

        Returns:
            (commits, last_page) where last_page comes from the Link header's
            rel="last" entry, or None when there is only one page.
        """
        params = {"per_page": per_page}
        if page is not None:
            params["page"] = page
        resp = self._get(f"/repos/{owner}/{repo}/commits", cancel, params=params)
        return _json(resp), _last_page(resp)

    def _get(
        self,
        path: str,
        cancel: CancellationToken,
        params: Optional[dict] = None,
        accept: Optional[str] = None,
    ) -> requests.Response:
        headers = dict(self.headers)
        if accept:
            headers["Accept"] = accept

        timeout = cancel.timeout(self.timeout)
        try:
            resp = requests.get(
                f"{self.base_url}{path}", headers=headers, params=params, timeout=timeout
            )
        except requests.RequestException as e:
            raise GitHubError(f"GitHub request failed: {e}") from e

        if not resp.ok:
            raise GitHubError(
                f"GitHub returned {resp.status_code} for {path}", status=resp.status_code
            )
        return resp


def _last_page(resp: requests.Response) -> Optional[int]:
    last = resp.links.get("last", {}).get("url")
    if not last:
        return None
    pages = parse_qs(urlparse(last).query).get("page")
    if not pages:
        return None
    try:
        return int(pages[0])
    except ValueError:
        return None


def _json(resp: requests.Response):
    # A 200 from a proxy or captive portal can carry HTML instead of JSON.
    try:
        return resp.json()
    except ValueError as e:
        raise GitHubError(f"GitHub returned a non-JSON body for {resp.url}") from e
