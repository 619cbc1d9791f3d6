"""
Input Validation

Validation rules for user-supplied settings: tokens, repository names,
usernames, check intervals and GitHub URLs.
"""

import re
from urllib.parse import urlparse


TOKEN_PATTERN = re.compile(r'^(gh[ops]_[A-Za-z0-9]{36,255}|github_pat_[A-Za-z0-9_]{20,255})$')
OWNER_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')
REPO_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9._-]+$')
USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9-]+$')
GITHUB_PATH_PATTERN = re.compile(r'^/[a-zA-Z0-9_-]+/[a-zA-Z0-9._-]+(/[a-z]+/[0-9]+)?$')

URL_SCHEMES = ("http://", "https://", "file://", "ftp://", "data:", "javascript:")
SHELL_METACHARACTERS = set(";&|$`<>\n\r\t\\")
SQL_FRAGMENTS = ("'", '"', "--", "/*", "*/")
DANGEROUS_URL_FRAGMENTS = ("../", "./", "javascript:", "data:", "file:", "vbscript:", "about:", "\0")

MIN_CHECK_INTERVAL = 1
MAX_CHECK_INTERVAL = 1440


def _has_control_characters(value: str) -> bool:
    return any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value)


def validate_github_token(token: str) -> bool:
    """
    Check a personal access token.

    Classic tokens (ghp_, gho_, ghs_) and fine-grained tokens (github_pat_)
    are accepted.
    """
    if not token or token.strip() != token:
        return False
    if not 40 <= len(token) <= 300:
        return False
    return TOKEN_PATTERN.match(token) is not None


def validate_repository(repo: str) -> bool:
    """Check an ``owner/repo`` repository name."""
    if not repo or repo.strip() != repo:
        return False
    if not 3 <= len(repo) <= 140:
        return False

    # Path traversal
    if "../" in repo or "./" in repo or "//" in repo:
        return False

    lower = repo.lower()
    if any(scheme in lower for scheme in URL_SCHEMES):
        return False
    if any(ch in SHELL_METACHARACTERS for ch in repo):
        return False
    if _has_control_characters(repo):
        return False
    if any(fragment in repo for fragment in SQL_FRAGMENTS):
        return False

    parts = repo.split('/')
    if len(parts) != 2:
        return False
    owner, name = parts

    if not 1 <= len(owner) <= 39 or not OWNER_PATTERN.match(owner):
        return False
    if owner.startswith('-') or owner.endswith('-'):
        return False

    if not 1 <= len(name) <= 100 or not REPO_NAME_PATTERN.match(name):
        return False
    if set(name) == {'.'}:
        return False

    return True


def validate_username(username: str) -> bool:
    """Check a GitHub login."""
    if not username or username.strip() != username:
        return False
    if len(username) > 39:
        return False
    if not USERNAME_PATTERN.match(username):
        return False
    if username.startswith('-') or username.endswith('-') or '--' in username:
        return False
    return True


def validate_check_interval(interval: int) -> bool:
    """Check interval in minutes, one minute to one day."""
    return MIN_CHECK_INTERVAL <= interval <= MAX_CHECK_INTERVAL


def validate_github_url(url: str) -> bool:
    """Accept only https links to a repository or one of its issues/pulls."""
    if not url or not url.strip():
        return False
    if not url.startswith("https://github.com/"):
        return False
    if any(fragment in url for fragment in DANGEROUS_URL_FRAGMENTS):
        return False
    if "//" in url[len("https://"):]:
        return False

    parsed = urlparse(url)
    if parsed.scheme != "https" or parsed.hostname not in ("github.com", "www.github.com"):
        return False
    return GITHUB_PATH_PATTERN.match(parsed.path) is not None
