"""
Pull Request Data Models

Pull requests and reviewer states as seen by one polling cycle.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, field_validator


class ReviewState(str, Enum):
    """Review verdict of a single reviewer"""
    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    COMMENTED = "COMMENTED"
    PENDING = "PENDING"


@dataclass(frozen=True)
class ReviewInfo:
    """Latest review state of one reviewer on one pull request"""
    reviewer_login: str
    state: ReviewState
    reviewer_name: Optional[str] = None

    def __post_init__(self):
        if not self.reviewer_login:
            raise ValueError("Reviewer login cannot be empty")


@dataclass(frozen=True)
class PullRequest:
    """Open pull request, keyed by its server-assigned id"""
    id: int
    number: int
    title: str
    html_url: str
    repo: str
    author_login: Optional[str] = None
    reviews: Optional[List[ReviewInfo]] = None
    is_authored: bool = False

    def __post_init__(self):
        if self.number <= 0:
            raise ValueError("PR number must be positive")
        if '/' not in self.repo:
            raise ValueError("Repository must be in format 'owner/repo'")

    @property
    def display_name(self) -> str:
        return f"{self.repo}#{self.number}"

    @property
    def pending_reviewers(self) -> List[str]:
        """Reviewers whose verdict is still outstanding"""
        return [r.reviewer_login for r in self.reviews or [] if r.state == ReviewState.PENDING]


# Pydantic models for the persisted cache
class ReviewInfoModel(BaseModel):
    """Persisted ReviewInfo"""
    reviewer_login: str
    reviewer_name: Optional[str] = None
    state: ReviewState

    @classmethod
    def from_domain(cls, review: ReviewInfo) -> "ReviewInfoModel":
        return cls(
            reviewer_login=review.reviewer_login,
            reviewer_name=review.reviewer_name,
            state=review.state,
        )

    def to_domain(self) -> ReviewInfo:
        return ReviewInfo(
            reviewer_login=self.reviewer_login,
            reviewer_name=self.reviewer_name,
            state=self.state,
        )


class PullRequestModel(BaseModel):
    """Persisted PullRequest"""
    id: int
    number: int
    title: str
    html_url: str
    repo: str
    author_login: Optional[str] = None
    reviews: Optional[List[ReviewInfoModel]] = None
    is_authored: bool = False

    @field_validator('number')
    @classmethod
    def validate_number(cls, v):
        if v <= 0:
            raise ValueError('PR number must be positive')
        return v

    @field_validator('repo')
    @classmethod
    def validate_repo(cls, v):
        if '/' not in v:
            raise ValueError('Repository must be in format "owner/repo"')
        return v

    @classmethod
    def from_domain(cls, pr: PullRequest) -> "PullRequestModel":
        reviews = None
        if pr.reviews is not None:
            reviews = [ReviewInfoModel.from_domain(r) for r in pr.reviews]
        return cls(
            id=pr.id,
            number=pr.number,
            title=pr.title,
            html_url=pr.html_url,
            repo=pr.repo,
            author_login=pr.author_login,
            reviews=reviews,
            is_authored=pr.is_authored,
        )

    def to_domain(self) -> PullRequest:
        reviews = None
        if self.reviews is not None:
            reviews = [r.to_domain() for r in self.reviews]
        return PullRequest(
            id=self.id,
            number=self.number,
            title=self.title,
            html_url=self.html_url,
            repo=self.repo,
            author_login=self.author_login,
            reviews=reviews,
            is_authored=self.is_authored,
        )
