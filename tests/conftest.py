"""Shared in-memory fakes for the store, GitHub and Gemini."""

import copy
from datetime import datetime, timezone

import pytest
from pydantic import TypeAdapter

from judging_agent.cancellation import CancellationToken
from judging_agent.config import ReviewConfig
from judging_agent.context import ReviewServices
from judging_agent.github_client import GitHubError
from judging_agent.models import EventWindow, PrizeCategory, Project, RunState
from judging_agent.project_store import ProjectNotFound, ProjectStore, StoreError


def commit(date):
    return {"sha": "abc123", "commit": {"author": {"date": date}}}


class FakeStore(ProjectStore):
    """Applies every update to an in-memory project and records it."""

    def __init__(self):
        self.projects = {}
        self.categories = {}
        self.updates = []
        self.category_requests = []
        self.fail_updates = False
        self.fail_categories = False

    def add_project(self, project):
        self.projects[project.id] = project

    def add_category(self, slug, name=None, system_prompt="Check the code.", find_words=()):
        self.categories[slug] = PrizeCategory(
            slug=slug, name=name or slug.title(), system_prompt=system_prompt,
            find_words=tuple(find_words),
        )

    def get_project(self, project_id):
        if project_id not in self.projects:
            raise ProjectNotFound(f"Project {project_id} not found")
        return self.projects[project_id]

    def update_project(self, project_id, fields):
        if self.fail_updates:
            raise StoreError("write failed")
        self.updates.append((project_id, copy.deepcopy(dict(fields))))
        if project_id in self.projects:
            self.projects[project_id] = self.projects[project_id].apply(fields)

    def get_prize_categories(self, slugs):
        slugs = list(slugs)
        self.category_requests.append(slugs)
        if self.fail_categories:
            raise StoreError("prize_categories unavailable")
        return {slug: self.categories[slug] for slug in slugs if slug in self.categories}

    def updated_fields(self):
        return [fields for _, fields in self.updates]


class FakeGitHub:
    """Stands in for GitHubAPI and records every call."""

    def __init__(self):
        self.calls = []
        self.metadata = {"default_branch": "main", "private": False}
        self.repo_error = None
        self.tree = [
            {"path": "app.py", "type": "blob", "size": 120},
            {"path": "README.md", "type": "blob", "size": 40},
        ]
        self.tree_error = None
        self.files = {"app.py": "import stripe\nstripe.Charge.create()\n", "README.md": "# Widget\n"}
        self.file_errors = set()
        self.latest_commit = commit("2026-03-02T12:00:00Z")
        self.oldest_commit = commit("2026-03-01T09:00:00Z")
        self.last_page = 5
        self.commit_error = None

    def get_repository(self, owner, repo, cancel):
        self.calls.append(("get_repository", owner, repo))
        if self.repo_error:
            raise self.repo_error
        return dict(self.metadata)

    def get_tree(self, owner, repo, ref, cancel):
        self.calls.append(("get_tree", owner, repo, ref))
        if self.tree_error:
            raise self.tree_error
        return list(self.tree)

    def get_file_text(self, owner, repo, path, ref, cancel):
        self.calls.append(("get_file_text", path))
        if path in self.file_errors:
            raise GitHubError(f"GitHub returned 500 for {path}", status=500)
        return self.files[path]

    def list_commits(self, owner, repo, cancel, page=None, per_page=1):
        self.calls.append(("list_commits", page))
        if self.commit_error:
            raise self.commit_error
        if page is None:
            return [self.latest_commit], self.last_page
        return [self.oldest_commit], self.last_page


class FakeGenerator:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def generate_object(self, system_prompt, prompt, schema, cancel, response_schema=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "prompt": prompt,
            "schema": schema,
            "response_schema": response_schema,
        })
        if not self.responses:
            raise AssertionError("unexpected generate_object call")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return TypeAdapter(schema).validate_python(response)


CODE_REVIEW = {
    "description_accuracy_level": "high",
    "description_accuracy_message": "- matches description",
    "technical_complexity": "intermediate",
    "technical_complexity_message": "- Stripe integration",
    "tech_stack": ["Python", "Stripe", "python"],
}


@pytest.fixture
def code_review_response():
    return dict(CODE_REVIEW)


@pytest.fixture
def project():
    return Project(
        id="proj-1",
        github_url="https://github.com/acme/widget",
        description="A widget shop that takes payments with Stripe.",
        title="Widget",
        prize_slugs=("stripe",),
        event=EventWindow(
            name="HackX",
            starts_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
            ends_at=datetime(2026, 3, 3, tzinfo=timezone.utc),
        ),
    )


@pytest.fixture
def store(project):
    fake = FakeStore()
    fake.add_project(project)
    fake.add_category("stripe", name="Best Use of Stripe", find_words=("stripe",))
    return fake


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def services(store, github, generator):
    return ReviewServices(
        store=store,
        github=github,
        generator=generator,
        cancel=CancellationToken(),
        config=ReviewConfig(),
    )


@pytest.fixture
def state(project):
    return RunState(project=project)
