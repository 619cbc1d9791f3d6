"""
PR Notifier

GitHub 리뷰 요청 알림 시스템의 코어 구현체
"""

__version__ = "2.0.0"

from .api import PRNotifierAPI

__all__ = ["PRNotifierAPI"]
