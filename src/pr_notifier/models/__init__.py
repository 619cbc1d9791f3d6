"""
Data Models

PR Notifier의 핵심 데이터 모델들
"""

from .pull_request import PullRequest, ReviewInfo, ReviewState, PullRequestModel, ReviewInfoModel
from .check import CheckError, ErrorKind, FetchResult, PRCheckResult, CheckErrorModel
from .device_flow import DeviceCodeGrant, DeviceFlowState, DeviceFlowOutcome, TokenPollResponse

__all__ = [
    "PullRequest",
    "ReviewInfo",
    "ReviewState",
    "PullRequestModel",
    "ReviewInfoModel",
    "CheckError",
    "ErrorKind",
    "FetchResult",
    "PRCheckResult",
    "CheckErrorModel",
    "DeviceCodeGrant",
    "DeviceFlowState",
    "DeviceFlowOutcome",
    "TokenPollResponse",
]
