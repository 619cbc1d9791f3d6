"""
Local Storage

Atomic, single-writer persistence of notifier state.
"""

from .persistence import CacheData, PersistenceManager

__all__ = ['CacheData', 'PersistenceManager']
