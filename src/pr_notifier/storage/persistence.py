"""
Persistence Manager

JSON-backed cache of the last check: pull request lists, dismissed and
notified identifier sets, last query time and last errors.

Every mutation happens under a single lock and is written back with an
atomic file replacement, so a crash mid-write leaves the previous file intact.
"""

import json
import logging
import os
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Set, Union

from pydantic import BaseModel, Field, ValidationError

from ..models.check import CheckError, CheckErrorModel
from ..models.pull_request import PullRequest, PullRequestModel


logger = logging.getLogger(__name__)


class CacheData(BaseModel):
    """On-disk cache schema"""
    pending_prs: List[PullRequestModel] = Field(default_factory=list)
    authored_prs: List[PullRequestModel] = Field(default_factory=list)
    notified_pr_ids: Set[int] = Field(default_factory=set)
    dismissed_pr_ids: Set[int] = Field(default_factory=set)
    last_query_time: Optional[datetime] = None
    last_check_had_errors: bool = False
    last_check_errors: List[CheckErrorModel] = Field(default_factory=list)


class PersistenceManager:
    """
    Single-writer store for notifier state.

    Args:
        path: Cache file location; parent directories are created on demand
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._cache = self._load()

    def _load(self) -> CacheData:
        try:
            raw = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return CacheData()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache at {self.path}: {e}")
            return CacheData()

        try:
            return CacheData.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable cache at {self.path}: {e.error_count()} validation errors")
            return CacheData()

    def _save(self, cache: CacheData) -> None:
        """Write the cache atomically (temp file in the same directory, then replace)."""
        payload = cache.model_dump(mode='json')
        # Sets serialize in arbitrary order; keep the file stable
        payload['notified_pr_ids'] = sorted(payload['notified_pr_ids'])
        payload['dismissed_pr_ids'] = sorted(payload['dismissed_pr_ids'])

        tmp = self.path.parent / f".{self.path.name}.{uuid.uuid4().hex}.tmp"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError:
            logger.exception(f"Failed to write cache to {self.path}")
            if tmp.exists():
                tmp.unlink()
            raise

    # Read

    def get_cache(self) -> CacheData:
        with self._lock:
            return self._cache.model_copy(deep=True)

    def get_pending_prs(self) -> List[PullRequest]:
        with self._lock:
            return [pr.to_domain() for pr in self._cache.pending_prs]

    def get_authored_prs(self) -> List[PullRequest]:
        with self._lock:
            return [pr.to_domain() for pr in self._cache.authored_prs]

    def get_notified_ids(self) -> Set[int]:
        with self._lock:
            return set(self._cache.notified_pr_ids)

    def get_dismissed_ids(self) -> Set[int]:
        with self._lock:
            return set(self._cache.dismissed_pr_ids)

    def get_last_query_time(self) -> Optional[datetime]:
        with self._lock:
            return self._cache.last_query_time

    def get_last_check_errors(self) -> List[CheckError]:
        with self._lock:
            return [e.to_domain() for e in self._cache.last_check_errors]

    # Write

    def update(self, block: Callable[[CacheData], None]) -> None:
        """
        Apply several mutations and write once.

        The mutations only take effect in memory if the write succeeds.
        """
        with self._lock:
            draft = self._cache.model_copy(deep=True)
            block(draft)
            self._save(draft)
            self._cache = draft

    def set_pending_prs(self, prs: List[PullRequest]) -> None:
        self.update(lambda c: setattr(c, 'pending_prs', [PullRequestModel.from_domain(pr) for pr in prs]))

    def set_authored_prs(self, prs: List[PullRequest]) -> None:
        self.update(lambda c: setattr(c, 'authored_prs', [PullRequestModel.from_domain(pr) for pr in prs]))

    def set_notified_ids(self, ids: Set[int]) -> None:
        self.update(lambda c: setattr(c, 'notified_pr_ids', set(ids)))

    def set_dismissed_ids(self, ids: Set[int]) -> None:
        self.update(lambda c: setattr(c, 'dismissed_pr_ids', set(ids)))

    def set_last_query_time(self, when: Optional[datetime]) -> None:
        self.update(lambda c: setattr(c, 'last_query_time', when))

    def set_last_check_errors(self, errors: List[CheckError]) -> None:
        def block(cache: CacheData) -> None:
            cache.last_check_errors = [CheckErrorModel.from_domain(e) for e in errors]
            cache.last_check_had_errors = bool(errors)
        self.update(block)

    def add_dismissed_id(self, pr_id: int) -> None:
        self.update(lambda c: c.dismissed_pr_ids.add(pr_id))

    def remove_dismissed_id(self, pr_id: int) -> None:
        self.update(lambda c: c.dismissed_pr_ids.discard(pr_id))

    def add_notified_id(self, pr_id: int) -> None:
        self.update(lambda c: c.notified_pr_ids.add(pr_id))
