"""
Notifications

Notification payloads for new review requests and the Notifier
interface that delivers them. Delivery itself belongs to the host.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ..models.pull_request import PullRequest


logger = logging.getLogger(__name__)

SUMMARY_IDENTIFIER = "pr-summary"


@dataclass(frozen=True)
class Notification:
    """A single user-facing notification"""
    identifier: str
    title: str
    body: str
    url: Optional[str] = None


def pull_request_notification(pr: PullRequest) -> Notification:
    return Notification(
        identifier=f"pr-{pr.id}",
        title=f"PR Review Requested: {pr.repo}",
        body=pr.title,
        url=pr.html_url,
    )


def summary_notification(count: int) -> Notification:
    return Notification(
        identifier=SUMMARY_IDENTIFIER,
        title="PR Reviews Pending",
        body=f"You have {count} pull request(s) waiting for your review.",
    )


class Notifier(Protocol):
    """Fire-and-forget notification sink"""

    def notify_pull_request(self, pr: PullRequest) -> None:
        ...

    def notify_summary(self, count: int) -> None:
        ...


class LoggingNotifier:
    """Writes notifications to the log."""

    def notify_pull_request(self, pr: PullRequest) -> None:
        n = pull_request_notification(pr)
        logger.info(f"[{n.identifier}] {n.title}: {n.body} ({n.url})")

    def notify_summary(self, count: int) -> None:
        n = summary_notification(count)
        logger.info(f"[{n.identifier}] {n.title}: {n.body}")


class CallbackNotifier:
    """Hands each Notification to a callable, e.g. a desktop toast bridge."""

    def __init__(self, callback: Callable[[Notification], None]):
        self.callback = callback

    def notify_pull_request(self, pr: PullRequest) -> None:
        self.callback(pull_request_notification(pr))

    def notify_summary(self, count: int) -> None:
        self.callback(summary_notification(count))
