"""
OAuth Device Flow

Headless GitHub login: request a device/user code pair, let the user
enter the code in a browser, then poll the token endpoint until the
grant succeeds, expires, is denied or the user cancels.
"""

import logging
import threading
from typing import Callable, Optional

import requests

from ..config import OAuthConfig
from ..models.device_flow import (
    DeviceCodeGrant,
    DeviceFlowOutcome,
    DeviceFlowState,
    TokenPollResponse,
)
from .secrets import AuthMethod, SecretStore


logger = logging.getLogger(__name__)

DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"


class DeviceFlowError(Exception):
    """Transport or format failure while talking to the authorization server"""


class DeviceFlowClient:
    """HTTP side of the device flow."""

    def __init__(
        self,
        config: Optional[OAuthConfig] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        user_agent: str = "PRNotifier/2.0",
    ):
        self.config = config or OAuthConfig()
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent

    def _post_form(self, url: str, data: dict) -> requests.Response:
        try:
            return self.session.post(
                url,
                data=data,
                headers={
                    'Accept': 'application/json',
                    'Content-Type': 'application/x-www-form-urlencoded',
                    'User-Agent': self.user_agent,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DeviceFlowError(f"Failed to connect to GitHub: {e}") from e

    @staticmethod
    def _json_object(response: requests.Response) -> dict:
        try:
            body = response.json()
        except ValueError as e:
            raise DeviceFlowError("Invalid response from GitHub.") from e
        if not isinstance(body, dict):
            raise DeviceFlowError("Invalid response from GitHub.")
        return body

    def request_device_code(self) -> DeviceCodeGrant:
        """
        Ask for a device/user code pair.

        Returns:
            DeviceCodeGrant to display and poll with

        Raises:
            DeviceFlowError: On transport failure or an unusable response
        """
        response = self._post_form(
            self.config.device_code_url,
            {'client_id': self.config.client_id, 'scope': self.config.scope},
        )
        if not response.ok:
            raise DeviceFlowError("Invalid response from GitHub.")

        body = self._json_object(response)
        try:
            grant = DeviceCodeGrant(
                device_code=str(body['device_code']),
                user_code=str(body['user_code']),
                verification_uri=str(body['verification_uri']),
                expires_in=int(body['expires_in']),
                interval=int(body['interval']),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DeviceFlowError("Invalid response from GitHub.") from e

        logger.info(f"Device code issued, expires in {grant.expires_in}s")
        return grant

    def poll_token(self, device_code: str) -> TokenPollResponse:
        """
        Ask once whether the user has authorized the device.

        Raises:
            DeviceFlowError: On transport failure, or a body with neither
                a token nor an error
        """
        response = self._post_form(
            self.config.access_token_url,
            {
                'client_id': self.config.client_id,
                'device_code': device_code,
                'grant_type': DEVICE_GRANT_TYPE,
            },
        )
        body = self._json_object(response)

        access_token = body.get('access_token')
        error = body.get('error')
        if not access_token and not error:
            raise DeviceFlowError("Invalid response from GitHub.")

        return TokenPollResponse(
            status_code=response.status_code,
            access_token=access_token or None,
            error=error,
            error_description=body.get('error_description'),
        )

    def fetch_username(self, token: str) -> str:
        """Login of the user the token belongs to."""
        try:
            response = self.session.get(
                self.config.user_url,
                headers={
                    'Authorization': f'Bearer {token}',
                    'Accept': 'application/vnd.github.v3+json',
                    'User-Agent': self.user_agent,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DeviceFlowError(f"Failed to fetch user info: {e}") from e

        if not response.ok:
            raise DeviceFlowError(f"Failed to fetch user info: HTTP {response.status_code}")

        login = self._json_object(response).get('login')
        if not isinstance(login, str) or not login:
            raise DeviceFlowError("Invalid response from GitHub.")
        return login


class DeviceAuthFlow:
    """
    State machine for one device-code login attempt.

    ``requesting_code -> code_ready -> waiting_for_authorization`` and then
    one of ``success``, ``expired``, ``denied``, ``cancelled`` or ``error``.
    The poll interval starts at the server's value and only ever grows.

    Args:
        client: DeviceFlowClient used for all requests
        secret_store: Where the token is stored on success
        slow_down_increment: Seconds added on each ``slow_down``
        on_state_change: Called with each new state
        wait: Sleeps for the given seconds; returns early on cancellation
    """

    def __init__(
        self,
        client: DeviceFlowClient,
        secret_store: Optional[SecretStore] = None,
        slow_down_increment: int = 5,
        on_state_change: Optional[Callable[[DeviceFlowState], None]] = None,
        wait: Optional[Callable[[float], object]] = None,
    ):
        self.client = client
        self.secret_store = secret_store
        self.slow_down_increment = slow_down_increment
        self.on_state_change = on_state_change
        self._cancelled = threading.Event()
        self._wait = wait or self._cancelled.wait
        self._state: Optional[DeviceFlowState] = None
        self.grant: Optional[DeviceCodeGrant] = None
        self.interval: Optional[int] = None
        self.outcome: Optional[DeviceFlowOutcome] = None

    @property
    def state(self) -> Optional[DeviceFlowState]:
        return self._state

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _set_state(self, state: DeviceFlowState) -> None:
        self._state = state
        logger.debug(f"Device flow state: {state.value}")
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _finish(self, state: DeviceFlowState, message: Optional[str] = None, **kwargs) -> DeviceFlowOutcome:
        self.outcome = DeviceFlowOutcome(state=state, message=message, **kwargs)
        self._set_state(state)
        return self.outcome

    def cancel(self) -> None:
        """Stop polling; no further request is made."""
        if self._state is not None and self._state.is_terminal:
            return
        logger.info("Device flow cancelled")
        self._cancelled.set()

    def request_code(self) -> DeviceCodeGrant:
        """
        Request the device/user code pair.

        Raises:
            DeviceFlowError: The flow moves to ``error``
        """
        self._set_state(DeviceFlowState.REQUESTING_CODE)
        try:
            grant = self.client.request_device_code()
        except DeviceFlowError as e:
            self._finish(DeviceFlowState.ERROR, message=str(e))
            raise

        self.grant = grant
        self.interval = grant.interval
        self._set_state(DeviceFlowState.CODE_READY)
        return grant

    def wait_for_authorization(self) -> DeviceFlowOutcome:
        """
        Poll the token endpoint until a terminal state is reached.

        Returns:
            DeviceFlowOutcome; failures are outcomes, not exceptions
        """
        if self.grant is None or self._state != DeviceFlowState.CODE_READY:
            raise RuntimeError("request_code() must succeed before waiting for authorization")

        self._set_state(DeviceFlowState.WAITING_FOR_AUTHORIZATION)

        while True:
            self._wait(self.interval)
            if self._cancelled.is_set():
                return self._finish(DeviceFlowState.CANCELLED, message="Authorization was cancelled.")

            try:
                response = self.client.poll_token(self.grant.device_code)
            except DeviceFlowError as e:
                return self._finish(DeviceFlowState.ERROR, message=str(e))

            if self._cancelled.is_set():
                return self._finish(DeviceFlowState.CANCELLED, message="Authorization was cancelled.")

            if response.access_token:
                return self._complete(response.access_token)

            if response.error == "authorization_pending":
                continue
            if response.error == "slow_down":
                self.interval += self.slow_down_increment
                logger.info(f"Server asked to slow down; polling every {self.interval}s")
                continue
            if response.error == "expired_token":
                return self._finish(
                    DeviceFlowState.EXPIRED,
                    message="Authorization request expired. Please try again.",
                )
            if response.error == "access_denied":
                return self._finish(DeviceFlowState.DENIED, message="Authorization was denied.")

            if response.status_code >= 400:
                return self._finish(
                    DeviceFlowState.ERROR,
                    message=response.error_description or f"Authorization failed: {response.error}",
                )

            logger.warning(f"Unrecognized device flow response {response.error!r}; continuing to poll")

    def _complete(self, token: str) -> DeviceFlowOutcome:
        try:
            username = self.client.fetch_username(token)
        except DeviceFlowError as e:
            return self._finish(DeviceFlowState.ERROR, message=str(e))

        if self._cancelled.is_set():
            return self._finish(DeviceFlowState.CANCELLED, message="Authorization was cancelled.")

        if self.secret_store is not None:
            self.secret_store.set_token(AuthMethod.OAUTH, token)

        logger.info(f"Device flow completed for {username}")
        return self._finish(DeviceFlowState.SUCCESS, access_token=token, username=username)

    def run(self, display: Callable[[DeviceCodeGrant], None]) -> DeviceFlowOutcome:
        """
        Request a code, hand it to ``display`` and wait for the result.

        Returns:
            DeviceFlowOutcome, including ``error`` when no code could be issued
        """
        try:
            grant = self.request_code()
        except DeviceFlowError:
            return self.outcome
        display(grant)
        return self.wait_for_authorization()
