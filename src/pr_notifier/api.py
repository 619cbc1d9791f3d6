"""
Main PR Notifier API

Main interface that wires configuration, token storage, persistence,
notifications, the reconciler and the polling scheduler together.
"""

import logging
from concurrent.futures import Future
from typing import Callable, Optional

from .auth.device_flow import DeviceAuthFlow, DeviceFlowClient
from .auth.secrets import AuthMethod, InMemorySecretStore, SecretStore
from .config import AppConfig, ConfigManager
from .github.fetcher import PullRequestFetcher
from .models.check import PRCheckResult
from .models.device_flow import DeviceFlowOutcome, DeviceFlowState
from .notifications.notifier import LoggingNotifier, Notifier
from .polling.reconciler import Reconciler
from .polling.scheduler import Scheduler
from .storage.persistence import PersistenceManager


logger = logging.getLogger(__name__)


class PRNotifierAPI:
    """
    Main PR Notifier interface.

    Owns the polling loop for the lifetime of the process:
    1. Restore the cached result
    2. Check immediately, then every configured interval
    3. Keep dismissed/notified state in sync with GitHub
    4. Log in through the OAuth device flow when asked
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        secret_store: Optional[SecretStore] = None,
        persistence: Optional[PersistenceManager] = None,
        notifier: Optional[Notifier] = None,
        fetcher_factory: Optional[Callable[[str], PullRequestFetcher]] = None,
        device_flow_client: Optional[DeviceFlowClient] = None,
        on_update: Optional[Callable[[PRCheckResult], None]] = None,
    ):
        """
        Initialize PR Notifier API.

        Args:
            config_manager: Configuration source (default: environment)
            secret_store: Token storage (default: in-memory, seeded from config)
            persistence: State store (default: cache file from config)
            notifier: Notification sink (default: log)
            fetcher_factory: Override for building the GitHub fetcher
            device_flow_client: Override for the OAuth HTTP client
            on_update: Called with a snapshot after every change
        """
        self.config_manager = config_manager or ConfigManager()
        config = self.config

        self.secret_store = secret_store or InMemorySecretStore()
        if config.github.token and not self.secret_store.get_token(AuthMethod.PAT):
            self.secret_store.set_token(AuthMethod.PAT, config.github.token)

        self.persistence = persistence or PersistenceManager(config.storage.cache_path)
        self.notifier = notifier or LoggingNotifier()
        self.device_flow_client = device_flow_client

        self.reconciler = Reconciler(
            config_provider=lambda: self.config_manager.config,
            persistence=self.persistence,
            secret_store=self.secret_store,
            notifier=self.notifier,
            fetcher_factory=fetcher_factory,
            on_update=on_update,
        )
        self.scheduler = Scheduler(self.reconciler.check_now, self._interval_seconds)

        logger.info("PR Notifier API initialized")

    @property
    def config(self) -> AppConfig:
        return self.config_manager.config

    def _interval_seconds(self) -> float:
        return self.config.polling.check_interval_minutes * 60

    # Lifecycle

    def start(self) -> PRCheckResult:
        """Restore the cached result and start polling."""
        cached = self.reconciler.load_cached()
        self.scheduler.start()
        return cached

    def stop(self, wait: bool = False) -> None:
        self.scheduler.stop(wait=wait)

    def restart(self) -> None:
        self.scheduler.restart()

    def shutdown(self) -> None:
        """Stop polling, let a running check finish and flush writes."""
        self.scheduler.stop(wait=True)
        self.reconciler.shutdown()

    # Checks

    def check_now(self) -> Optional[PRCheckResult]:
        """Run a check now; None if one is already running."""
        return self.scheduler.check_now()

    def snapshot(self) -> PRCheckResult:
        return self.reconciler.snapshot()

    def dismiss(self, pr_id: int) -> Optional[Future]:
        return self.reconciler.dismiss(pr_id)

    def undismiss(self, pr_id: int) -> Optional[Future]:
        return self.reconciler.undismiss(pr_id)

    def update_settings(self, **kwargs) -> None:
        """
        Update configuration, e.g. ``update_settings(**{"polling.repos": [...]})``.

        A running loop is restarted so the new settings apply immediately.
        """
        self.config_manager.update_config(**kwargs)
        if self.scheduler.is_running:
            self.scheduler.restart()

    # Authentication

    def create_device_flow(
        self,
        on_state_change: Optional[Callable[[DeviceFlowState], None]] = None,
    ) -> DeviceAuthFlow:
        """New device-code login attempt that stores its token in the secret store."""
        client = self.device_flow_client or DeviceFlowClient(
            self.config.oauth,
            timeout=self.config.github.timeout_seconds,
            user_agent=self.config.github.user_agent,
        )
        return DeviceAuthFlow(
            client,
            secret_store=self.secret_store,
            slow_down_increment=self.config.oauth.slow_down_increment,
            on_state_change=on_state_change,
        )

    def complete_login(self, outcome: DeviceFlowOutcome) -> None:
        """Adopt the username and OAuth method of a successful login."""
        if not outcome.succeeded:
            raise ValueError(f"Cannot complete login from a {outcome.state.value} outcome")

        self.update_settings(**{
            'polling.username': outcome.username,
            'storage.auth_method': AuthMethod.OAUTH.value,
        })
        logger.info(f"Logged in as {outcome.username}")

    def logout(self) -> None:
        """Forget the OAuth token and fall back to automatic token selection."""
        self.secret_store.delete_token(AuthMethod.OAUTH)
        self.config_manager.update_config(**{'storage.auth_method': ''})
        logger.info("Logged out")
