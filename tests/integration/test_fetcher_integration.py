"""
Integration tests for the GitHub fetch pipeline.

The client, parser, error classification and fetcher run together
against canned GitHub API responses (HTTP mocked at the session).
"""

from unittest.mock import patch

import pytest

from pr_notifier.github.client import GitHubClient
from pr_notifier.github.fetcher import PullRequestFetcher
from pr_notifier.models.check import ErrorKind
from pr_notifier.models.pull_request import ReviewState

from conftest import VALID_TOKEN, make_response


API = "https://api.github.com"


def pull(pr_id, number, author, repo="org/app"):
    return {
        'id': pr_id,
        'number': number,
        'title': f"Change {number}",
        'html_url': f"https://github.com/{repo}/pull/{number}",
        'user': {'login': author},
    }


class FakeGitHub:
    """Routes session requests by URL to canned responses."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, path, status=200, body=None, headers=None):
        self.routes[API + path] = (status, body, headers)

    def __call__(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs.get('params')))
        if url not in self.routes:
            return make_response(404, {'message': 'Not Found'})
        status, body, headers = self.routes[url]
        return make_response(status, body, headers)


@pytest.fixture
def github():
    fake = FakeGitHub()
    with patch('requests.Session.request', side_effect=fake):
        yield fake


def fetch(repos, username="me"):
    return PullRequestFetcher(GitHubClient(VALID_TOKEN)).fetch(repos, username)


class TestFetchPipeline:

    def test_candidates_and_authored(self, github):
        github.add('/repos/org/app', body={'full_name': 'org/app'})
        github.add('/repos/org/app/pulls', body=[
            pull(1, 11, "alice"),
            pull(2, 12, "me"),
            pull(3, 13, "bob"),
        ])
        github.add('/repos/org/app/pulls/11/requested_reviewers', body={'users': [{'login': 'me'}]})
        github.add('/repos/org/app/pulls/12/requested_reviewers', body={'users': [{'login': 'carol'}]})
        github.add('/repos/org/app/pulls/13/requested_reviewers', body={'users': []})
        github.add('/repos/org/app/pulls/12/reviews', body=[
            {'user': {'login': 'dave'}, 'state': 'CHANGES_REQUESTED'},
            {'user': {'login': 'dave'}, 'state': 'APPROVED'},
            {'user': {'login': 'carol'}, 'state': 'APPROVED'},
            {'user': {'login': 'erin'}, 'state': 'COMMENTED'},
        ])

        result = fetch(["org/app"])

        assert [pr.id for pr in result.candidates] == [1]
        assert result.candidates[0].author_login == "alice"
        assert [pr.id for pr in result.authored] == [2]
        states = {r.reviewer_login: r.state for r in result.authored[0].reviews}
        assert states == {'dave': ReviewState.APPROVED, 'carol': ReviewState.PENDING}
        assert result.errors == []

    def test_requests_use_open_state_and_page_size(self, github):
        github.add('/repos/org/app', body={})
        github.add('/repos/org/app/pulls', body=[])

        fetch(["org/app"])

        assert (
            'GET', API + '/repos/org/app/pulls', {'state': 'open', 'per_page': 100, 'page': 1}
        ) in github.requests

    def test_missing_repository_does_not_stop_others(self, github):
        github.add('/repos/org/app', body={})
        github.add('/repos/org/app/pulls', body=[pull(1, 11, "alice")])
        github.add('/repos/org/app/pulls/11/requested_reviewers', body={'users': [{'login': 'me'}]})

        result = fetch(["org/gone", "org/app"])

        assert [pr.id for pr in result.candidates] == [1]
        assert len(result.errors) == 1
        assert result.errors[0].kind == ErrorKind.REPO_ACCESS
        assert result.errors[0].repo_name == "org/gone"

    def test_malformed_repository_is_skipped(self, github):
        result = fetch(["not-a-repo", "a/b/c"])

        assert github.requests == []
        assert result.errors == []

    def test_requested_reviewers_failure_skips_pull_request(self, github):
        github.add('/repos/org/app', body={})
        github.add('/repos/org/app/pulls', body=[pull(1, 11, "alice"), pull(2, 12, "alice")])
        github.add('/repos/org/app/pulls/11/requested_reviewers', status=500, body={'message': 'Server Error'})
        github.add('/repos/org/app/pulls/12/requested_reviewers', body={'users': [{'login': 'me'}]})

        result = fetch(["org/app"])

        assert [pr.id for pr in result.candidates] == [2]
        assert result.errors == []

    def test_reviews_failure_gives_requested_only(self, github):
        github.add('/repos/org/app', body={})
        github.add('/repos/org/app/pulls', body=[pull(2, 12, "me")])
        github.add('/repos/org/app/pulls/12/requested_reviewers', body={'users': [{'login': 'carol'}]})
        github.add('/repos/org/app/pulls/12/reviews', status=502, body={'message': 'Bad Gateway'})

        result = fetch(["org/app"])

        assert [(r.reviewer_login, r.state) for r in result.authored[0].reviews] == [
            ('carol', ReviewState.PENDING),
        ]

    def test_rate_limited_repository(self, github):
        github.add(
            '/repos/org/app',
            status=403,
            body={'message': 'API rate limit exceeded'},
            headers={'X-RateLimit-Remaining': '0', 'X-RateLimit-Reset': '1700000000'},
        )

        result = fetch(["org/app"])

        assert result.errors[0].kind == ErrorKind.RATE_LIMIT

    def test_bad_credentials(self, github):
        github.add('/repos/org/app', status=401, body={'message': 'Bad credentials'})

        result = fetch(["org/app"])

        assert result.errors[0].kind == ErrorKind.AUTH
        assert result.errors[0].message == "Invalid GitHub token"

    def test_secondary_rate_limit_is_unknown(self, github):
        github.add(
            '/repos/org/app',
            status=429,
            body={'message': 'You have exceeded a secondary rate limit'},
            headers={'X-RateLimit-Remaining': '0'},
        )

        result = fetch(["org/app"])

        assert result.errors[0].kind == ErrorKind.UNKNOWN
        assert result.errors[0].repo_name == "org/app"


class TestMalformedResponses:

    def test_malformed_requested_reviewers_skips_only_that_pull_request(self, github):
        github.add('/repos/org/bad', body={})
        github.add('/repos/org/bad/pulls', body=[pull(1, 11, "alice", repo="org/bad")])
        github.add('/repos/org/bad/pulls/11/requested_reviewers', body=[])
        github.add('/repos/org/good', body={})
        github.add('/repos/org/good/pulls', body=[pull(2, 21, "alice", repo="org/good")])
        github.add('/repos/org/good/pulls/21/requested_reviewers', body={'users': [{'login': 'me'}]})

        result = fetch(["org/bad", "org/good"])

        assert [pr.id for pr in result.candidates] == [2]
        assert result.errors == []

    def test_malformed_reviews_page_gives_requested_only(self, github):
        github.add('/repos/org/app', body={})
        github.add('/repos/org/app/pulls', body=[pull(2, 12, "me")])
        github.add('/repos/org/app/pulls/12/requested_reviewers', body={'users': [{'login': 'carol'}]})
        github.add('/repos/org/app/pulls/12/reviews', body={'message': 'unexpected'})

        result = fetch(["org/app"])

        assert [(r.reviewer_login, r.state) for r in result.authored[0].reviews] == [
            ('carol', ReviewState.PENDING),
        ]

    def test_pull_request_without_number_is_skipped(self, github):
        broken = pull(1, 11, "alice")
        broken['number'] = None
        github.add('/repos/org/app', body={})
        github.add('/repos/org/app/pulls', body=[broken, pull(2, 12, "alice")])
        github.add('/repos/org/app/pulls/12/requested_reviewers', body={'users': [{'login': 'me'}]})

        result = fetch(["org/app"])

        assert [pr.id for pr in result.candidates] == [2]
        assert result.errors == []
