"""
Pull Request Fetcher

Walks the configured repositories and collects review candidates,
authored pull requests and per-repository errors.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from ..models.check import CheckError, FetchResult
from .client import GitHubAPIError, GitHubClient
from .errors import classify_error
from .parser import PullRequestParser


logger = logging.getLogger(__name__)


def split_repo_name(repo_full_name: str) -> Optional[Tuple[str, str]]:
    """Split ``owner/repo``; None when it is not exactly two non-empty parts."""
    parts = repo_full_name.split('/')
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


class PullRequestFetcher:
    """
    Collects pull request data for one user across repositories.

    Requests are issued sequentially, one repository and one sub-resource
    at a time. A failure in one repository is recorded as a CheckError and
    the walk continues with the next repository.
    """

    def __init__(self, client: GitHubClient, parser: Optional[PullRequestParser] = None):
        self.client = client
        self.parser = parser or PullRequestParser()

    def fetch(self, repos: Iterable[str], username: str) -> FetchResult:
        """
        Fetch review candidates and authored pull requests.

        Args:
            repos: ``owner/repo`` names to check
            username: Login of the configured user

        Returns:
            FetchResult for this cycle
        """
        result = FetchResult()

        for repo_full_name in repos:
            names = split_repo_name(repo_full_name)
            if names is None:
                logger.warning(f"Skipping malformed repository name: {repo_full_name!r}")
                continue

            error = self._fetch_repository(names[0], names[1], repo_full_name, username, result)
            if error is not None:
                logger.warning(f"{repo_full_name}: {error.kind.value} - {error.message}")
                result.errors.append(error)

        logger.info(
            f"Fetched {len(result.candidates)} review requests and "
            f"{len(result.authored)} authored pull requests "
            f"({len(result.errors)} errors)"
        )
        return result

    def _fetch_repository(
        self,
        owner: str,
        repo: str,
        repo_full_name: str,
        username: str,
        result: FetchResult,
    ) -> Optional[CheckError]:
        """Fetch one repository into ``result``; returns its error, if any."""
        try:
            self.client.get_repository(owner, repo)
            open_pulls = self.client.list_open_pull_requests(owner, repo)
        except GitHubAPIError as e:
            return classify_error(e, repo_full_name)

        for pr_data in open_pulls:
            number = pr_data.get('number')
            if not isinstance(number, int):
                logger.warning(f"Skipping pull request without a number in {repo_full_name}")
                continue
            try:
                requested = self.client.list_requested_reviewers(owner, repo, number)
            except GitHubAPIError as e:
                logger.warning(f"Skipping {repo_full_name}#{number}: requested reviewers unavailable ({e})")
                continue

            try:
                requested_logins = {self.parser.login_of(user) for user in requested}
                if username in requested_logins:
                    result.candidates.append(self.parser.parse_pull_request(pr_data, repo_full_name))

                if self.parser.login_of(pr_data.get('user')) == username:
                    result.authored.append(
                        self._build_authored(owner, repo, repo_full_name, pr_data, requested)
                    )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed pull request {repo_full_name}#{number}: {e!r}")

        return None

    def _build_authored(self, owner, repo, repo_full_name, pr_data, requested):
        number = pr_data['number']
        try:
            reviews: List = self.client.list_reviews(owner, repo, number)
        except GitHubAPIError as e:
            logger.warning(f"Reviews for {repo_full_name}#{number} unavailable ({e})")
            reviews = []

        return self.parser.parse_pull_request(
            pr_data,
            repo_full_name,
            reviews=self.parser.build_review_infos(reviews, requested),
            is_authored=True,
        )
