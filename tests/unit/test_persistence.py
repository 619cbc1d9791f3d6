"""
Unit tests for the JSON persistence layer.
"""

import json
from datetime import datetime

import pytest

from pr_notifier.models.check import CheckError, ErrorKind
from pr_notifier.storage.persistence import PersistenceManager

from conftest import make_pr


class TestPersistenceManager:

    def test_missing_file_loads_empty(self, tmp_path):
        manager = PersistenceManager(tmp_path / "absent" / "cache.json")

        assert manager.get_dismissed_ids() == set()
        assert manager.get_pending_prs() == []
        assert manager.get_last_query_time() is None

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json", encoding='utf-8')

        manager = PersistenceManager(path)

        assert manager.get_notified_ids() == set()

    def test_wrong_shape_loads_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({'dismissed_pr_ids': "everything"}), encoding='utf-8')

        assert PersistenceManager(path).get_dismissed_ids() == set()

    def test_state_survives_reload(self, tmp_path):
        path = tmp_path / "cache.json"
        when = datetime(2024, 5, 1, 12, 30)
        manager = PersistenceManager(path)
        manager.set_pending_prs([make_pr(1), make_pr(2)])
        manager.set_authored_prs([make_pr(3, is_authored=True)])
        manager.set_dismissed_ids({2})
        manager.set_notified_ids({1, 2})
        manager.set_last_query_time(when)
        manager.set_last_check_errors([CheckError(kind=ErrorKind.NETWORK, message="down")])

        reloaded = PersistenceManager(path)

        assert [pr.id for pr in reloaded.get_pending_prs()] == [1, 2]
        assert reloaded.get_authored_prs()[0].is_authored is True
        assert reloaded.get_dismissed_ids() == {2}
        assert reloaded.get_notified_ids() == {1, 2}
        assert reloaded.get_last_query_time() == when
        assert reloaded.get_last_check_errors()[0].kind == ErrorKind.NETWORK
        assert reloaded.get_cache().last_check_had_errors is True

    def test_file_is_written_atomically(self, tmp_path):
        path = tmp_path / "cache.json"
        manager = PersistenceManager(path)

        manager.set_dismissed_ids({3, 1, 2})

        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]
        assert json.loads(path.read_text(encoding='utf-8'))['dismissed_pr_ids'] == [1, 2, 3]

    def test_add_and_remove(self, persistence):
        persistence.add_dismissed_id(5)
        persistence.add_notified_id(6)
        persistence.remove_dismissed_id(5)
        persistence.remove_dismissed_id(99)

        assert persistence.get_dismissed_ids() == set()
        assert persistence.get_notified_ids() == {6}

    def test_update_writes_once(self, persistence, tmp_path):
        def block(cache):
            cache.dismissed_pr_ids = {1}
            cache.notified_pr_ids = {1, 2}

        persistence.update(block)

        data = json.loads((tmp_path / "cache.json").read_text(encoding='utf-8'))
        assert data['dismissed_pr_ids'] == [1]
        assert data['notified_pr_ids'] == [1, 2]

    def test_getters_return_copies(self, persistence):
        persistence.set_dismissed_ids({1})

        persistence.get_dismissed_ids().add(2)
        persistence.get_cache().dismissed_pr_ids.add(3)

        assert persistence.get_dismissed_ids() == {1}

    def test_undecodable_file_loads_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_bytes(b'\xff\xfe{"dismissed_pr_ids": [1]}')

        assert PersistenceManager(path).get_dismissed_ids() == set()

    def test_directory_in_place_of_file_loads_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.mkdir()

        assert PersistenceManager(path).get_notified_ids() == set()

    def test_parent_is_a_file_loads_empty(self, tmp_path):
        (tmp_path / "state").write_text("not a directory", encoding='utf-8')

        assert PersistenceManager(tmp_path / "state" / "cache.json").get_pending_prs() == []

    def test_failed_write_keeps_previous_state(self, tmp_path):
        manager = PersistenceManager(tmp_path / "state" / "cache.json")
        manager.set_dismissed_ids({1})
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory", encoding='utf-8')
        manager.path = blocker / "cache.json"

        with pytest.raises(OSError):
            manager.update(lambda c: c.dismissed_pr_ids.add(2))

        assert manager.get_dismissed_ids() == {1}
        assert manager.get_cache().dismissed_pr_ids == {1}
