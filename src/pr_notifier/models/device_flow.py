"""
Device Flow Data Models

OAuth device-code grant and the states of a login attempt.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DeviceFlowState(str, Enum):
    """States of one device-code login attempt"""
    REQUESTING_CODE = "requesting_code"
    CODE_READY = "code_ready"
    WAITING_FOR_AUTHORIZATION = "waiting_for_authorization"
    SUCCESS = "success"
    EXPIRED = "expired"
    DENIED = "denied"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = {
    DeviceFlowState.SUCCESS,
    DeviceFlowState.EXPIRED,
    DeviceFlowState.DENIED,
    DeviceFlowState.CANCELLED,
    DeviceFlowState.ERROR,
}


@dataclass(frozen=True)
class DeviceCodeGrant:
    """Device/user code pair issued by the authorization server"""
    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int

    def __post_init__(self):
        if self.interval < 0:
            raise ValueError("Poll interval must be non-negative")
        if self.expires_in <= 0:
            raise ValueError("Expiry must be positive")


@dataclass(frozen=True)
class TokenPollResponse:
    """One answer from the token endpoint"""
    status_code: int
    access_token: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


@dataclass(frozen=True)
class DeviceFlowOutcome:
    """Terminal result of a login attempt"""
    state: DeviceFlowState
    access_token: Optional[str] = None
    username: Optional[str] = None
    message: Optional[str] = None

    def __post_init__(self):
        if not self.state.is_terminal:
            raise ValueError(f"Outcome state must be terminal: {self.state.value}")

    @property
    def succeeded(self) -> bool:
        return self.state == DeviceFlowState.SUCCESS

    @property
    def can_retry(self) -> bool:
        """Whether offering "try again" makes sense"""
        return self.state in (DeviceFlowState.EXPIRED, DeviceFlowState.ERROR)
