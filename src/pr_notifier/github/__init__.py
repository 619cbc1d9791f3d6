"""
GitHub Integration Layer

This module provides GitHub API integration for listing open pull
requests, requested reviewers and reviews, and classifying failures.
"""

from .client import GitHubClient, GitHubAPIError, RateLimitExceeded
from .errors import classify_error
from .fetcher import PullRequestFetcher
from .parser import PullRequestParser

__all__ = [
    'GitHubClient',
    'GitHubAPIError',
    'RateLimitExceeded',
    'classify_error',
    'PullRequestFetcher',
    'PullRequestParser',
]
