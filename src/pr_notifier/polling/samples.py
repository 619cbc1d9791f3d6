"""
Sample Pull Requests

Fixed data shown instead of live results when sample mode is on,
so the UI can be exercised without a token.
"""

from typing import List

from ..models.pull_request import PullRequest, ReviewInfo, ReviewState


def _sample(pr_id: int, number: int, title: str, repo: str, **kwargs) -> PullRequest:
    return PullRequest(
        id=pr_id,
        number=number,
        title=title,
        html_url=f"https://github.com/sample/repo/pull/{number}",
        repo=repo,
        **kwargs,
    )


SAMPLE_ACTIVE: List[PullRequest] = [
    _sample(9876543210, 123, "[SAMPLE] Add new dashboard feature", "sample/repo"),
    _sample(9876543211, 456, "[SAMPLE] Fix login bug on Safari", "another/project"),
    _sample(9876543212, 789, "[SAMPLE] Update README with new installation instructions", "docs/documentation"),
]

SAMPLE_ALWAYS_DISMISSED: List[PullRequest] = [
    _sample(9876543213, 101, "[SAMPLE-DISMISSED] Improve test coverage", "sample/repo"),
    _sample(9876543214, 202, "[SAMPLE-DISMISSED] Update API documentation", "docs/api-docs"),
]

SAMPLE_AUTHORED: List[PullRequest] = [
    _sample(
        9876543220, 301, "[SAMPLE-AUTHORED] Implement user profile page", "sample/repo",
        reviews=[
            ReviewInfo(reviewer_login="reviewer1", reviewer_name="Alice Smith", state=ReviewState.APPROVED),
            ReviewInfo(reviewer_login="reviewer2", reviewer_name="Bob Johnson", state=ReviewState.PENDING),
        ],
        is_authored=True,
    ),
    _sample(
        9876543221, 302, "[SAMPLE-AUTHORED] Fix navigation bug", "another/project",
        reviews=[
            ReviewInfo(reviewer_login="reviewer3", reviewer_name="Charlie Davis", state=ReviewState.CHANGES_REQUESTED),
        ],
        is_authored=True,
    ),
    _sample(9876543222, 303, "[SAMPLE-AUTHORED] Add API documentation", "docs/documentation", reviews=[], is_authored=True),
]


def sample_valid_ids() -> set:
    return {pr.id for pr in SAMPLE_ACTIVE + SAMPLE_ALWAYS_DISMISSED}
