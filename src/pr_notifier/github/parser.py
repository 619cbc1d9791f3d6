"""
Pull Request Parser

Parses GitHub API payloads into PullRequest and ReviewInfo objects
and merges submitted reviews with currently requested reviewers.
"""

import logging
from typing import Dict, List, Optional

from ..models.pull_request import PullRequest, ReviewInfo, ReviewState


logger = logging.getLogger(__name__)


class PullRequestParser:
    """
    Parser for GitHub pull request data.

    Converts GitHub API responses into immutable PullRequest objects.
    """

    state_mapping = {
        'APPROVED': ReviewState.APPROVED,
        'CHANGES_REQUESTED': ReviewState.CHANGES_REQUESTED,
    }

    def parse_pull_request(
        self,
        pr_data: Dict,
        repo_full_name: str,
        reviews: Optional[List[ReviewInfo]] = None,
        is_authored: bool = False,
    ) -> PullRequest:
        """
        Parse a pull request payload.

        Args:
            pr_data: Pull request from the pulls list endpoint
            repo_full_name: ``owner/repo`` the pull request belongs to
            reviews: Merged reviewer states (authored pull requests only)
            is_authored: Whether the configured user opened it

        Returns:
            PullRequest object
        """
        return PullRequest(
            id=pr_data['id'],
            number=pr_data['number'],
            title=pr_data['title'],
            html_url=pr_data['html_url'],
            repo=repo_full_name,
            author_login=self.login_of(pr_data.get('user')),
            reviews=reviews,
            is_authored=is_authored,
        )

    @staticmethod
    def login_of(user: Optional[Dict]) -> Optional[str]:
        if not user:
            return None
        return user.get('login')

    def build_review_infos(self, reviews: List[Dict], requested_reviewers: List[Dict]) -> List[ReviewInfo]:
        """
        Merge submitted reviews with the requested reviewer list.

        Reviews arrive in chronological order, so the latest verdict per
        reviewer wins. COMMENTED reviews carry no verdict and are skipped.
        A reviewer who is requested again is pending regardless of any
        earlier review: the review was dismissed or a re-review was asked for.

        Args:
            reviews: Submitted reviews from the reviews endpoint
            requested_reviewers: Users from the requested_reviewers endpoint

        Returns:
            One ReviewInfo per distinct reviewer
        """
        reviewer_map: Dict[str, ReviewInfo] = {}

        for review in reviews:
            login = self.login_of(review.get('user'))
            if not login:
                continue
            state = review.get('state')
            if state == ReviewState.COMMENTED.value:
                continue

            reviewer_map[login] = ReviewInfo(
                reviewer_login=login,
                reviewer_name=review['user'].get('name'),
                state=self.state_mapping.get(state, ReviewState.PENDING),
            )

        for user in requested_reviewers:
            login = self.login_of(user)
            if not login:
                continue
            reviewer_map[login] = ReviewInfo(
                reviewer_login=login,
                reviewer_name=user.get('name'),
                state=ReviewState.PENDING,
            )

        logger.debug(f"Merged {len(reviews)} reviews into {len(reviewer_map)} reviewer states")
        return list(reviewer_map.values())
