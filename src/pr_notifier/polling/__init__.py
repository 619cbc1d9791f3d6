"""
Polling Layer

The check scheduler and the reconciliation of fetch results with
persisted dismissed/notified state.
"""

from .reconciler import Reconciler, Reconciliation, configuration_errors, reconcile
from .scheduler import Scheduler

__all__ = ['Reconciler', 'Reconciliation', 'Scheduler', 'configuration_errors', 'reconcile']
