"""
Commit Timeline Reader.

Finds the first and last commit of a repository with at most two requests:
the newest commit (page 1, one commit per page) and, when the Link header
reports more than one page, the oldest commit on the last page.
"""

import logging
from typing import Any, Optional

from .cancellation import CancellationToken
from .github_client import GitHubAPI
from .models import CommitWindow, RepositoryInfo, parse_timestamp

logger = logging.getLogger(__name__)


class CommitTimestampError(ValueError):
    """A commit response had no readable author or committer date."""


def fetch_commit_window(
    github: GitHubAPI, repo_info: RepositoryInfo, cancel: CancellationToken
) -> CommitWindow:
    """
    Raises:
        GitHubError: the commit list could not be fetched.
        CommitTimestampError: the newest commit has no timestamp.
    """
    latest_commits, last_page = github.list_commits(repo_info.owner, repo_info.repo, cancel)
    latest = _commit_timestamp(latest_commits)
    if latest is None:
        raise CommitTimestampError("Unable to read latest commit timestamp.")

    earliest = latest
    if last_page and last_page > 1:
        oldest_commits, _ = github.list_commits(
            repo_info.owner, repo_info.repo, cancel, page=last_page
        )
        earliest = _commit_timestamp(oldest_commits) or latest

    logger.debug(
        "Commit window for %s: %s .. %s", repo_info.full_name, earliest.isoformat(), latest.isoformat()
    )
    return CommitWindow(first_commit_at=earliest, last_commit_at=latest)


def _commit_timestamp(commits: Any):
    if not isinstance(commits, list) or not commits:
        return None
    commit = (commits[0] or {}).get("commit") or {}
    raw: Optional[str] = (commit.get("author") or {}).get("date") or (
        commit.get("committer") or {}
    ).get("date")
    if not raw:
        return None
    try:
        return parse_timestamp(raw)
    except ValueError:
        return None
