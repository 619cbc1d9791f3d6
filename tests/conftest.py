"""
Shared test helpers: fake HTTP responses, pull request factories,
a scripted fetcher and a recording notifier.
"""

from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest

from pr_notifier.config import AppConfig, ConfigManager, GitHubConfig, PollingConfig, StorageConfig
from pr_notifier.models.check import FetchResult
from pr_notifier.models.pull_request import PullRequest
from pr_notifier.storage.persistence import PersistenceManager


VALID_TOKEN = "ghp_" + "a" * 36


def make_response(status_code: int = 200, json_data=None, headers: Optional[Dict] = None) -> Mock:
    """Mock requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.headers = headers or {}
    if json_data is None:
        response.content = b""
        response.json.side_effect = ValueError("No JSON")
    else:
        response.content = b"{}"
        response.json.return_value = json_data
    return response


def make_pr(pr_id: int, number: Optional[int] = None, repo: str = "org/repo", **kwargs) -> PullRequest:
    number = number or pr_id + 100
    return PullRequest(
        id=pr_id,
        number=number,
        title=kwargs.pop('title', f"PR {number}"),
        html_url=f"https://github.com/{repo}/pull/{number}",
        repo=repo,
        **kwargs,
    )


class ScriptedFetcher:
    """Fetcher returning prepared results and counting calls."""

    def __init__(self, result: Optional[FetchResult] = None):
        self.result = result or FetchResult()
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    def fetch(self, repos, username) -> FetchResult:
        self.calls.append((list(repos), username))
        if self.error is not None:
            raise self.error
        return FetchResult(
            candidates=list(self.result.candidates),
            authored=list(self.result.authored),
            errors=list(self.result.errors),
        )


class RecordingNotifier:
    def __init__(self):
        self.pull_requests: List[PullRequest] = []
        self.summaries: List[int] = []

    def notify_pull_request(self, pr: PullRequest) -> None:
        self.pull_requests.append(pr)

    def notify_summary(self, count: int) -> None:
        self.summaries.append(count)


def make_config(tmp_path, **polling) -> AppConfig:
    polling.setdefault('repos', ["org/repo"])
    polling.setdefault('username', "reviewer")
    return AppConfig(
        github=GitHubConfig(token=None),
        polling=PollingConfig(**polling),
        storage=StorageConfig(cache_dir=str(tmp_path)),
    )


@pytest.fixture
def persistence(tmp_path):
    return PersistenceManager(tmp_path / "cache.json")


@pytest.fixture
def config_manager(tmp_path):
    return ConfigManager(make_config(tmp_path))
