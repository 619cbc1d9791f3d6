"""
Authentication

OAuth device-code login and bearer token storage.
"""

from .device_flow import DeviceAuthFlow, DeviceFlowClient, DeviceFlowError
from .secrets import AuthMethod, InMemorySecretStore, SecretStore, get_active_token

__all__ = [
    'DeviceAuthFlow',
    'DeviceFlowClient',
    'DeviceFlowError',
    'AuthMethod',
    'InMemorySecretStore',
    'SecretStore',
    'get_active_token',
]
