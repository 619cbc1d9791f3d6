#!/usr/bin/env python3
"""
Check Once Demo

Runs a single check cycle against GitHub and prints the review
requests, dismissed pull requests and your own pull requests.

Usage:
    GITHUB_TOKEN=ghp_... python examples/check_once_demo.py <username> <owner/repo> [<owner/repo> ...]

Example:
    python examples/check_once_demo.py octocat octocat/Hello-World
"""

import os
import sys
import logging

from pr_notifier.api import PRNotifierAPI
from pr_notifier.config import AppConfig, ConfigManager
from pr_notifier.models.check import PRCheckResult


def print_result(result: PRCheckResult) -> None:
    print(f"\nReview requests ({len(result.active_pull_requests)}):")
    for pr in result.active_pull_requests:
        print(f"  {pr.display_name}  {pr.title}")
        print(f"    {pr.html_url}")

    if result.dismissed_pull_requests:
        print(f"\nDismissed ({len(result.dismissed_pull_requests)}):")
        for pr in result.dismissed_pull_requests:
            print(f"  {pr.display_name}  {pr.title}")

    print(f"\nYour pull requests ({len(result.authored_pull_requests)}):")
    for pr in result.authored_pull_requests:
        print(f"  {pr.display_name}  {pr.title}")
        for review in pr.reviews or []:
            print(f"    {review.reviewer_login}: {review.state.value}")

    if result.has_errors:
        print("\nErrors:")
        for error in result.errors:
            print(f"  [{error.kind.value}] {error.message}")
            if error.details:
                print(f"    {error.details}")


def main():
    """Main demo function."""
    if len(sys.argv) < 3:
        print("Usage: python check_once_demo.py <username> <owner/repo> [<owner/repo> ...]")
        sys.exit(1)

    if not os.getenv('GITHUB_TOKEN'):
        print("GITHUB_TOKEN environment variable is required")
        sys.exit(1)

    config = AppConfig.from_env()
    config.polling.username = sys.argv[1]
    config.polling.repos = sys.argv[2:]

    try:
        notifier_api = PRNotifierAPI(config_manager=ConfigManager(config))
    except ValueError as e:
        logging.getLogger(__name__).error(str(e))
        sys.exit(1)

    try:
        print_result(notifier_api.check_now())
    finally:
        notifier_api.shutdown()


if __name__ == "__main__":
    main()
