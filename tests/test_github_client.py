"""Tests for the GitHub REST wrapper and URL parsing."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from judging_agent.cancellation import CancellationToken, ReviewCancelled
from judging_agent.github_client import GitHubAPI, GitHubError, parse_github_repo


def _response(status=200, json_data=None, links=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.json.return_value = json_data
    resp.links = links or {}
    resp.text = text
    resp.encoding = "utf-8"
    return resp


class TestParseGithubRepo:

    @pytest.mark.parametrize("url,owner,repo", [
        ("https://github.com/acme/widget", "acme", "widget"),
        ("https://github.com/acme/widget.git", "acme", "widget"),
        ("github.com/acme/widget", "acme", "widget"),
        ("https://www.github.com/acme/widget/tree/main/src", "acme", "widget"),
        ("  https://github.com/acme/widget/  ", "acme", "widget"),
    ])
    def test_parses_github_urls(self, url, owner, repo):
        info = parse_github_repo(url)
        assert (info.owner, info.repo) == (owner, repo)
        assert info.content is None

    @pytest.mark.parametrize("url", [
        None,
        "",
        "https://bad-host.example/x/y",
        "https://gitlab.com/acme/widget",
        "https://github.com/acme",
        "https://github.com/",
    ])
    def test_rejects_everything_else(self, url):
        assert parse_github_repo(url) is None


class TestGitHubAPI:

    def setup_method(self):
        self.api = GitHubAPI(token="ghp_test", timeout=10)
        self.cancel = CancellationToken()

    def test_token_sets_bearer_header(self):
        assert self.api.headers["Authorization"] == "Bearer ghp_test"
        assert "Authorization" not in GitHubAPI().headers

    @patch("judging_agent.github_client.requests.get")
    def test_get_repository(self, mock_get):
        mock_get.return_value = _response(json_data={"private": False, "default_branch": "main"})
        data = self.api.get_repository("acme", "widget", self.cancel)
        assert data["default_branch"] == "main"
        assert mock_get.call_args[0][0] == "https://api.github.com/repos/acme/widget"
        assert mock_get.call_args[1]["timeout"] == 10

    @patch("judging_agent.github_client.requests.get")
    def test_http_error_carries_status(self, mock_get):
        mock_get.return_value = _response(status=404)
        with pytest.raises(GitHubError) as exc:
            self.api.get_repository("acme", "missing", self.cancel)
        assert exc.value.status == 404
        assert exc.value.not_found_or_private

    @patch("judging_agent.github_client.requests.get")
    def test_transport_error_has_no_status(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("boom")
        with pytest.raises(GitHubError) as exc:
            self.api.get_repository("acme", "widget", self.cancel)
        assert exc.value.status is None
        assert not exc.value.not_found_or_private

    @patch("judging_agent.github_client.requests.get")
    def test_cancelled_token_makes_no_request(self, mock_get):
        self.cancel.cancel()
        with pytest.raises(ReviewCancelled):
            self.api.get_repository("acme", "widget", self.cancel)
        mock_get.assert_not_called()

    @patch("judging_agent.github_client.requests.get")
    def test_get_tree_keeps_blobs_only(self, mock_get):
        mock_get.return_value = _response(json_data={
            "tree": [
                {"path": "src", "type": "tree"},
                {"path": "src/app.py", "type": "blob", "size": 10},
            ],
            "truncated": False,
        })
        tree = self.api.get_tree("acme", "widget", "main", self.cancel)
        assert tree == [{"path": "src/app.py", "type": "blob", "size": 10}]
        assert mock_get.call_args[1]["params"] == {"recursive": "1"}

    @patch("judging_agent.github_client.requests.get")
    def test_get_tree_of_empty_repository(self, mock_get):
        mock_get.return_value = _response(status=409)
        assert self.api.get_tree("acme", "empty", "main", self.cancel) == []

    @patch("judging_agent.github_client.requests.get")
    def test_get_file_text_requests_raw_content(self, mock_get):
        resp = _response()
        resp.text = "print('hi')\n"
        mock_get.return_value = resp
        text = self.api.get_file_text("acme", "widget", "src/app.py", "main", self.cancel)
        assert text == "print('hi')\n"
        assert mock_get.call_args[1]["headers"]["Accept"] == "application/vnd.github.raw+json"
        assert mock_get.call_args[1]["params"] == {"ref": "main"}

    @patch("judging_agent.github_client.requests.get")
    def test_list_commits_reads_last_page_from_link_header(self, mock_get):
        mock_get.return_value = _response(
            json_data=[{"sha": "a"}],
            links={"last": {"url": "https://api.github.com/repos/acme/widget/commits?per_page=1&page=42"}},
        )
        commits, last_page = self.api.list_commits("acme", "widget", self.cancel)
        assert commits == [{"sha": "a"}]
        assert last_page == 42
        assert mock_get.call_args[1]["params"] == {"per_page": 1}

    @patch("judging_agent.github_client.requests.get")
    def test_list_commits_single_page(self, mock_get):
        mock_get.return_value = _response(json_data=[{"sha": "a"}])
        _, last_page = self.api.list_commits("acme", "widget", self.cancel, page=3)
        assert last_page is None
        assert mock_get.call_args[1]["params"] == {"per_page": 1, "page": 3}

    @patch("judging_agent.github_client.requests.get")
    def test_non_json_body_is_a_transport_error(self, mock_get):
        resp = _response()
        resp.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
        mock_get.return_value = resp
        with pytest.raises(GitHubError) as exc:
            self.api.get_repository("acme", "widget", self.cancel)
        assert exc.value.status is None
