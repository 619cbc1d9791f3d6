"""
Check Result Data Models

Per-cycle fetch output, classified errors and the reconciled result.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set
from pydantic import BaseModel

from .pull_request import PullRequest


class ErrorKind(str, Enum):
    """Category of a failed check"""
    AUTH = "auth"
    NETWORK = "network"
    REPO_ACCESS = "repo_access"
    RATE_LIMIT = "rate_limit"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CheckError:
    """A failure observed during a check; never fatal to the whole cycle"""
    kind: ErrorKind
    message: str
    repo_name: Optional[str] = None
    details: Optional[str] = None


@dataclass
class FetchResult:
    """Raw output of one fetch over all configured repositories"""
    candidates: List[PullRequest] = field(default_factory=list)
    authored: List[PullRequest] = field(default_factory=list)
    errors: List[CheckError] = field(default_factory=list)

    @property
    def candidate_ids(self) -> Set[int]:
        return {pr.id for pr in self.candidates}


@dataclass
class PRCheckResult:
    """Reconciled state after one check cycle"""
    active_pull_requests: List[PullRequest] = field(default_factory=list)
    dismissed_pull_requests: List[PullRequest] = field(default_factory=list)
    authored_pull_requests: List[PullRequest] = field(default_factory=list)
    valid_ids: Set[int] = field(default_factory=set)
    errors: List[CheckError] = field(default_factory=list)
    checked_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def active_ids(self) -> List[int]:
        return [pr.id for pr in self.active_pull_requests]

    @property
    def dismissed_ids(self) -> List[int]:
        return [pr.id for pr in self.dismissed_pull_requests]


class CheckErrorModel(BaseModel):
    """Persisted CheckError"""
    kind: ErrorKind
    message: str
    repo_name: Optional[str] = None
    details: Optional[str] = None

    @classmethod
    def from_domain(cls, error: CheckError) -> "CheckErrorModel":
        return cls(
            kind=error.kind,
            message=error.message,
            repo_name=error.repo_name,
            details=error.details,
        )

    def to_domain(self) -> CheckError:
        return CheckError(
            kind=self.kind,
            message=self.message,
            repo_name=self.repo_name,
            details=self.details,
        )
