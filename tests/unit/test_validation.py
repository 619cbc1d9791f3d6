"""
Unit tests for settings input validation.
"""

import pytest

from pr_notifier.validation import (
    validate_check_interval,
    validate_github_token,
    validate_github_url,
    validate_repository,
    validate_username,
)


@pytest.mark.parametrize("token,valid", [
    ("ghp_" + "a" * 36, True),
    ("gho_" + "B1" * 20, True),
    ("github_pat_" + "x_" * 15, True),
    ("ghp_" + "a" * 35, False),
    ("ghx_" + "a" * 36, False),
    (" ghp_" + "a" * 36, False),
    ("ghp_" + "a" * 30 + "-" * 6, False),
    ("", False),
])
def test_validate_github_token(token, valid):
    assert validate_github_token(token) is valid


@pytest.mark.parametrize("repo,valid", [
    ("octocat/Hello-World", True),
    ("org/repo.name_1", True),
    ("a/b", True),
    ("org", False),
    ("org/repo/extra", False),
    ("../etc/passwd", False),
    ("org/..", False),
    ("https://github.com/org/repo", False),
    ("org/repo;rm", False),
    ("org/re'po", False),
    ("-org/repo", False),
    ("org /repo", False),
    (" org/repo", False),
    ("o" * 40 + "/repo", False),
])
def test_validate_repository(repo, valid):
    assert validate_repository(repo) is valid


@pytest.mark.parametrize("username,valid", [
    ("octocat", True),
    ("the-octo-cat", True),
    ("-octocat", False),
    ("octocat-", False),
    ("octo--cat", False),
    ("octo_cat", False),
    ("a" * 40, False),
    ("", False),
])
def test_validate_username(username, valid):
    assert validate_username(username) is valid


@pytest.mark.parametrize("interval,valid", [(0, False), (1, True), (15, True), (1440, True), (1441, False)])
def test_validate_check_interval(interval, valid):
    assert validate_check_interval(interval) is valid


@pytest.mark.parametrize("url,valid", [
    ("https://github.com/org/repo", True),
    ("https://github.com/org/repo/pull/12", True),
    ("https://github.com/org/repo/issues/3", True),
    ("http://github.com/org/repo", False),
    ("https://github.com.evil.com/org/repo", False),
    ("https://github.com/org/../repo", False),
    ("https://github.com/org//repo", False),
    ("https://github.com/org/repo/pull/abc", False),
    ("javascript:alert(1)", False),
    ("", False),
])
def test_validate_github_url(url, valid):
    assert validate_github_url(url) is valid
