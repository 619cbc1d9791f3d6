"""
Reconciler

Turns a fetch into the active/dismissed/authored partition, prunes the
persisted dismissed and notified identifier sets against what still
exists upstream, and decides which pull requests to notify about.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Set

from ..auth.secrets import SecretStore, get_active_token
from ..config import AppConfig, is_configured
from ..github.client import GitHubClient
from ..github.fetcher import PullRequestFetcher
from ..models.check import CheckError, CheckErrorModel, ErrorKind, FetchResult, PRCheckResult
from ..models.pull_request import PullRequest, PullRequestModel
from ..notifications.notifier import Notifier
from ..storage.persistence import CacheData, PersistenceManager
from . import samples


logger = logging.getLogger(__name__)


@dataclass
class Reconciliation:
    """Output of one reconciliation step"""
    result: PRCheckResult
    dismissed_ids: Set[int]
    notified_ids: Set[int]
    newly_notified: List[PullRequest] = field(default_factory=list)


def _unique_by_id(prs: Iterable[PullRequest]) -> List[PullRequest]:
    seen: Set[int] = set()
    unique = []
    for pr in prs:
        if pr.id not in seen:
            seen.add(pr.id)
            unique.append(pr)
    return unique


def reconcile(
    fetch: FetchResult,
    dismissed_ids: Set[int],
    notified_ids: Set[int],
    checked_at: Optional[datetime] = None,
) -> Reconciliation:
    """
    Merge a fetch with the persisted identifier sets.

    Both returned sets are subsets of the valid identifier set, so a
    pull request that was merged, closed or no longer requests the user's
    review is forgotten. Dismissal only applies to review requests;
    authored pull requests pass through unfiltered.

    Args:
        fetch: This cycle's fetch
        dismissed_ids: Persisted dismissed identifiers
        notified_ids: Persisted already-notified identifiers
        checked_at: Timestamp stored on the result

    Returns:
        Reconciliation with the result and the updated sets
    """
    candidates = _unique_by_id(fetch.candidates)
    valid_ids = {pr.id for pr in candidates}

    pruned_dismissed = set(dismissed_ids) & valid_ids
    active = [pr for pr in candidates if pr.id not in pruned_dismissed]
    dismissed = [pr for pr in candidates if pr.id in pruned_dismissed]

    newly_notified = [pr for pr in active if pr.id not in notified_ids]
    updated_notified = (set(notified_ids) | {pr.id for pr in newly_notified}) & valid_ids

    result = PRCheckResult(
        active_pull_requests=active,
        dismissed_pull_requests=dismissed,
        authored_pull_requests=list(fetch.authored),
        valid_ids=valid_ids,
        errors=list(fetch.errors),
        checked_at=checked_at,
    )
    return Reconciliation(
        result=result,
        dismissed_ids=pruned_dismissed,
        notified_ids=updated_notified,
        newly_notified=newly_notified,
    )


def configuration_errors(config: AppConfig, token: Optional[str]) -> List[CheckError]:
    """One auth error per missing setting."""
    errors = []
    if not token:
        errors.append(CheckError(
            kind=ErrorKind.AUTH,
            message="GitHub token not configured. Please add your token in settings.",
        ))
    if not config.polling.username:
        errors.append(CheckError(
            kind=ErrorKind.AUTH,
            message="GitHub username not configured. Please add your username in settings.",
        ))
    if not config.polling.repos:
        errors.append(CheckError(
            kind=ErrorKind.AUTH,
            message="No repositories configured. Please add repositories to monitor in settings.",
        ))
    return errors


def _unexpected_error(e: Exception) -> CheckError:
    return CheckError(
        kind=ErrorKind.UNKNOWN,
        message=str(e) or type(e).__name__,
        details="An unexpected error occurred.",
    )


def _models(prs: Iterable[PullRequest]) -> List[PullRequestModel]:
    return [PullRequestModel.from_domain(pr) for pr in prs]


class Reconciler:
    """
    Runs check cycles and owns the in-memory pull request lists.

    Persisted state is only written by this class, either at the end of
    a cycle or after a dismiss/undismiss, and always through the
    PersistenceManager lock.

    Args:
        config_provider: Returns the current AppConfig; read once per cycle
        persistence: Store for identifier sets and the last result
        secret_store: Source of the bearer token
        notifier: Receives new review requests
        fetcher_factory: Builds a fetcher for a token
        on_update: Called with a snapshot after every change
    """

    def __init__(
        self,
        config_provider: Callable[[], AppConfig],
        persistence: PersistenceManager,
        secret_store: SecretStore,
        notifier: Optional[Notifier] = None,
        fetcher_factory: Optional[Callable[[str], PullRequestFetcher]] = None,
        on_update: Optional[Callable[[PRCheckResult], None]] = None,
    ):
        self.config_provider = config_provider
        self.persistence = persistence
        self.secret_store = secret_store
        self.notifier = notifier
        self.fetcher_factory = fetcher_factory or self._default_fetcher
        self.on_update = on_update

        self._lock = threading.RLock()
        self._current = PRCheckResult()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pr-notifier-persist")
        self._pending_writes: List[Future] = []

    def _default_fetcher(self, token: str) -> PullRequestFetcher:
        github = self.config_provider().github
        client = GitHubClient(
            token,
            base_url=github.api_base_url,
            timeout=github.timeout_seconds,
            user_agent=github.user_agent,
        )
        return PullRequestFetcher(client)

    # State

    @staticmethod
    def _copy(result: PRCheckResult) -> PRCheckResult:
        return replace(
            result,
            active_pull_requests=list(result.active_pull_requests),
            dismissed_pull_requests=list(result.dismissed_pull_requests),
            authored_pull_requests=list(result.authored_pull_requests),
            valid_ids=set(result.valid_ids),
            errors=list(result.errors),
        )

    def snapshot(self) -> PRCheckResult:
        """Copy of the current in-memory result."""
        with self._lock:
            return self._copy(self._current)

    def load_cached(self) -> PRCheckResult:
        """Restore the last persisted lists, e.g. at startup."""
        with self._lock:
            self._current = PRCheckResult(
                active_pull_requests=self.persistence.get_pending_prs(),
                authored_pull_requests=self.persistence.get_authored_prs(),
                errors=self.persistence.get_last_check_errors(),
                checked_at=self.persistence.get_last_query_time(),
            )
        return self._publish()

    def _publish(self) -> PRCheckResult:
        result = self.snapshot()
        if self.on_update is not None:
            self.on_update(result)
        return result

    # Check cycle

    def check_now(self) -> PRCheckResult:
        """
        Run one full cycle: fetch, reconcile, persist, notify.

        Per-repository failures are part of the result. Any other failure
        becomes a single ``unknown`` error for the whole cycle.
        """
        config = self.config_provider()

        if config.polling.show_sample_prs:
            try:
                return self._check_samples()
            except Exception as e:
                logger.exception("Sample check failed")
                return self._record_errors([_unexpected_error(e)])

        token = get_active_token(self.secret_store, config.storage.auth_method or None)
        if not is_configured(config, token):
            return self._record_errors(configuration_errors(config, token))

        logger.info(f"Checking {len(config.polling.repos)} repositories for {config.polling.username}")
        try:
            fetch = self.fetcher_factory(token).fetch(config.polling.repos, config.polling.username)
            reconciliation = self._apply(fetch)
        except Exception as e:
            logger.exception("Check failed")
            return self._record_errors([_unexpected_error(e)])

        self._send_notifications(reconciliation, config.polling.enable_notifications)
        result = self._publish()
        logger.info(
            f"Check finished: {len(result.active_pull_requests)} active, "
            f"{len(result.dismissed_pull_requests)} dismissed, "
            f"{len(result.authored_pull_requests)} authored, {len(result.errors)} errors"
        )
        return result

    def _apply(self, fetch: FetchResult) -> Reconciliation:
        """Reconcile against the stored sets and write everything in one atomic update."""
        checked_at = datetime.now()
        holder = {}

        def block(cache: CacheData) -> None:
            rec = reconcile(fetch, cache.dismissed_pr_ids, cache.notified_pr_ids, checked_at)
            cache.dismissed_pr_ids = rec.dismissed_ids
            cache.notified_pr_ids = rec.notified_ids
            cache.pending_prs = _models(rec.result.active_pull_requests)
            cache.authored_prs = _models(rec.result.authored_pull_requests)
            cache.last_query_time = checked_at
            cache.last_check_errors = [
                CheckErrorModel.from_domain(e) for e in rec.result.errors
            ]
            cache.last_check_had_errors = rec.result.has_errors
            holder['reconciliation'] = rec

        with self._lock:
            self._drain_pending_writes()
            self.persistence.update(block)
            reconciliation = holder['reconciliation']
            self._current = self._copy(reconciliation.result)
        return reconciliation

    def _record_errors(self, errors: List[CheckError]) -> PRCheckResult:
        try:
            self.persistence.set_last_check_errors(errors)
        except OSError:
            logger.exception("Could not persist check errors")
        with self._lock:
            self._current = replace(self._current, errors=list(errors))
        return self._publish()

    def _check_samples(self) -> PRCheckResult:
        checked_at = datetime.now()
        valid_ids = samples.sample_valid_ids()
        holder = {}

        def block(cache: CacheData) -> None:
            dismissed = cache.dismissed_pr_ids & valid_ids
            active = [pr for pr in samples.SAMPLE_ACTIVE if pr.id not in dismissed]
            dismissed_from_active = [pr for pr in samples.SAMPLE_ACTIVE if pr.id in dismissed]
            cache.dismissed_pr_ids = dismissed
            cache.pending_prs = _models(active)
            cache.authored_prs = _models(samples.SAMPLE_AUTHORED)
            cache.last_query_time = checked_at
            cache.last_check_errors = []
            cache.last_check_had_errors = False
            holder['result'] = PRCheckResult(
                active_pull_requests=active,
                dismissed_pull_requests=samples.SAMPLE_ALWAYS_DISMISSED + dismissed_from_active,
                authored_pull_requests=list(samples.SAMPLE_AUTHORED),
                valid_ids=valid_ids,
                checked_at=checked_at,
            )

        with self._lock:
            self._drain_pending_writes()
            self.persistence.update(block)
            self._current = holder['result']
        return self._publish()

    def _send_notifications(self, reconciliation: Reconciliation, enabled: bool) -> None:
        new_prs = reconciliation.newly_notified
        if not enabled or not new_prs or self.notifier is None:
            return

        for pr in new_prs:
            self._deliver(self.notifier.notify_pull_request, pr)
        if len(new_prs) > 1:
            self._deliver(self.notifier.notify_summary, len(reconciliation.result.active_pull_requests))

    @staticmethod
    def _deliver(send, arg) -> None:
        try:
            send(arg)
        except Exception:
            logger.exception("Notification delivery failed")

    # Dismiss / undismiss

    def dismiss(self, pr_id: int) -> Optional[Future]:
        """
        Move a review request to the dismissed list.

        Returns:
            Future of the background write, or None if ``pr_id`` is not active
        """
        return self._move(pr_id, dismiss=True)

    def undismiss(self, pr_id: int) -> Optional[Future]:
        """
        Move a dismissed review request back to the active list.

        Returns:
            Future of the background write, or None if ``pr_id`` is not dismissed
        """
        return self._move(pr_id, dismiss=False)

    def _move(self, pr_id: int, dismiss: bool) -> Optional[Future]:
        with self._lock:
            source = self._current.active_pull_requests if dismiss else self._current.dismissed_pull_requests
            target = self._current.dismissed_pull_requests if dismiss else self._current.active_pull_requests

            index = next((i for i, pr in enumerate(source) if pr.id == pr_id), None)
            if index is None:
                return None
            target.append(source.pop(index))

            active = list(self._current.active_pull_requests)
            future = self._executor.submit(self._persist_move, pr_id, dismiss, active)
            future.add_done_callback(self._log_failed_write)
            self._pending_writes = [f for f in self._pending_writes if not f.done()]
            self._pending_writes.append(future)

        logger.info(f"{'Dismissed' if dismiss else 'Restored'} pull request {pr_id}")
        self._publish()
        return future

    def _persist_move(self, pr_id: int, dismiss: bool, active: List[PullRequest]) -> None:
        def block(cache: CacheData) -> None:
            if dismiss:
                cache.dismissed_pr_ids.add(pr_id)
            else:
                cache.dismissed_pr_ids.discard(pr_id)
            cache.pending_prs = _models(active)

        self.persistence.update(block)

    @staticmethod
    def _log_failed_write(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error("Failed to persist dismissal", exc_info=error)

    def _drain_pending_writes(self) -> None:
        if self._pending_writes:
            wait(self._pending_writes)
            self._pending_writes = []

    def shutdown(self) -> None:
        """Finish queued writes."""
        self._executor.shutdown(wait=True)
