#!/usr/bin/env python3
"""
Device Login Demo

Signs in to GitHub with the OAuth device flow and prints the
authenticated username. Press Ctrl+C to cancel while waiting.

Usage:
    python examples/device_login_demo.py
"""

import logging
import threading

from pr_notifier.auth.device_flow import DeviceAuthFlow, DeviceFlowClient
from pr_notifier.auth.secrets import AuthMethod, InMemorySecretStore
from pr_notifier.models.device_flow import DeviceCodeGrant


def show_code(grant: DeviceCodeGrant) -> None:
    print(f"\nOpen {grant.verification_uri} and enter the code: {grant.user_code}")
    print(f"The code expires in {grant.expires_in // 60} minutes.\n")


def main():
    """Main demo function."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    store = InMemorySecretStore()
    flow = DeviceAuthFlow(
        DeviceFlowClient(),
        secret_store=store,
        on_state_change=lambda state: print(f"-> {state.value}"),
    )

    result = {}
    worker = threading.Thread(target=lambda: result.update(outcome=flow.run(show_code)), daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.5)
    except KeyboardInterrupt:
        flow.cancel()
        worker.join()

    outcome = result.get('outcome')
    if outcome is None:
        return
    if outcome.succeeded:
        token = store.get_token(AuthMethod.OAUTH)
        print(f"Signed in as {outcome.username} (token {token[:8]}...)")
    else:
        print(f"Login {outcome.state.value}: {outcome.message}")
        if outcome.can_retry:
            print("You can run the demo again to retry.")


if __name__ == "__main__":
    main()
