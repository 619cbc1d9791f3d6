"""
Unit tests for data models, configuration, secrets and notification payloads.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

import pytest
from pydantic import ValidationError

from pr_notifier.auth.secrets import AuthMethod, InMemorySecretStore, get_active_token
from pr_notifier.config import AppConfig, ConfigManager, LoggingConfig, PollingConfig, is_configured
from pr_notifier.models.check import CheckError, CheckErrorModel, ErrorKind, PRCheckResult
from pr_notifier.models.device_flow import DeviceCodeGrant, DeviceFlowOutcome, DeviceFlowState
from pr_notifier.models.pull_request import (
    PullRequestModel,
    ReviewInfo,
    ReviewState,
)
from pr_notifier.notifications.notifier import (
    CallbackNotifier,
    pull_request_notification,
    summary_notification,
)

from conftest import VALID_TOKEN, make_config, make_pr


class TestPullRequest:

    def test_valid_pull_request(self):
        pr = make_pr(1, 42, repo="octocat/hello")

        assert pr.display_name == "octocat/hello#42"
        assert pr.is_authored is False

    def test_invalid_number(self):
        with pytest.raises(ValueError, match="PR number must be positive"):
            make_pr(1, number=-1)

    def test_invalid_repo(self):
        with pytest.raises(ValueError, match="owner/repo"):
            make_pr(1, repo="norepo")

    def test_pending_reviewers(self):
        pr = make_pr(1, reviews=[
            ReviewInfo(reviewer_login="a", state=ReviewState.APPROVED),
            ReviewInfo(reviewer_login="b", state=ReviewState.PENDING),
        ])

        assert pr.pending_reviewers == ["b"]

    def test_review_info_requires_login(self):
        with pytest.raises(ValueError):
            ReviewInfo(reviewer_login="", state=ReviewState.PENDING)

    def test_model_round_trip_keeps_reviews(self):
        pr = make_pr(3, is_authored=True, author_login="me", reviews=[
            ReviewInfo(reviewer_login="a", reviewer_name="Ann", state=ReviewState.CHANGES_REQUESTED),
        ])

        assert PullRequestModel.from_domain(pr).to_domain() == pr

    def test_model_rejects_bad_repo(self):
        with pytest.raises(ValidationError):
            PullRequestModel(id=1, number=1, title="t", html_url="u", repo="bad")


class TestCheckModels:

    def test_result_properties(self):
        result = PRCheckResult(
            active_pull_requests=[make_pr(1)],
            dismissed_pull_requests=[make_pr(2)],
            errors=[CheckError(kind=ErrorKind.NETWORK, message="down")],
        )

        assert result.active_ids == [1]
        assert result.dismissed_ids == [2]
        assert result.has_errors is True
        assert PRCheckResult().has_errors is False

    def test_error_model_round_trip(self):
        error = CheckError(kind=ErrorKind.RATE_LIMIT, message="slow", repo_name="o/r", details="wait")

        assert CheckErrorModel.from_domain(error).to_domain() == error


class TestDeviceFlowModels:

    def test_grant_rejects_negative_interval(self):
        with pytest.raises(ValueError):
            DeviceCodeGrant("d", "u", "https://github.com/login/device", 900, -1)

    def test_outcome_must_be_terminal(self):
        with pytest.raises(ValueError):
            DeviceFlowOutcome(state=DeviceFlowState.CODE_READY)

    @pytest.mark.parametrize("state,retry", [
        (DeviceFlowState.EXPIRED, True),
        (DeviceFlowState.ERROR, True),
        (DeviceFlowState.DENIED, False),
        (DeviceFlowState.CANCELLED, False),
        (DeviceFlowState.SUCCESS, False),
    ])
    def test_can_retry(self, state, retry):
        assert DeviceFlowOutcome(state=state).can_retry is retry


class TestConfig:

    def test_defaults(self):
        config = AppConfig()

        assert config.polling.check_interval_minutes == 15
        assert config.polling.enable_notifications is True
        assert config.github.api_base_url == "https://api.github.com"
        assert config.oauth.slow_down_increment == 5

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", VALID_TOKEN)
        monkeypatch.setenv("PR_NOTIFIER_REPOS", "org/a, org/b,,")
        monkeypatch.setenv("PR_NOTIFIER_USERNAME", "octocat")
        monkeypatch.setenv("PR_NOTIFIER_CHECK_INTERVAL", "5")
        monkeypatch.setenv("PR_NOTIFIER_NOTIFICATIONS", "false")

        config = AppConfig.from_env()

        assert config.github.token == VALID_TOKEN
        assert config.polling.repos == ["org/a", "org/b"]
        assert config.polling.username == "octocat"
        assert config.polling.check_interval_minutes == 5
        assert config.polling.enable_notifications is False

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "polling:\n"
            "  repos: [org/repo]\n"
            "  username: octocat\n"
            "  check_interval_minutes: 30\n"
            "debug: true\n",
            encoding='utf-8',
        )

        config = AppConfig.from_yaml(str(path))

        assert config.polling.repos == ["org/repo"]
        assert config.polling.check_interval_minutes == 30
        assert config.debug is True

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.from_yaml(str(tmp_path / "missing.yaml"))

    @pytest.mark.parametrize("polling,fragment", [
        (PollingConfig(repos=["bad"]), "Invalid repository"),
        (PollingConfig(repos=["o/r", "o/r"]), "duplicates"),
        (PollingConfig(username="-bad"), "Invalid username"),
        (PollingConfig(check_interval_minutes=0), "Check interval"),
    ])
    def test_validate_rejects(self, polling, fragment):
        with pytest.raises(ValueError, match=fragment):
            AppConfig(polling=polling).validate()

    def test_validate_allows_missing_token(self):
        AppConfig().validate()

    def test_to_dict_omits_token(self, tmp_path):
        config = make_config(tmp_path)
        config.github.token = VALID_TOKEN

        assert 'token' not in config.to_dict()['github']

    def test_update_config_dotted_keys(self, config_manager):
        config_manager.update_config(**{'polling.check_interval_minutes': 5, 'debug': True})

        assert config_manager.config.polling.check_interval_minutes == 5
        assert config_manager.config.debug is True

    def test_update_config_rejects_invalid_value(self, config_manager):
        with pytest.raises(ValueError):
            config_manager.update_config(**{'polling.check_interval_minutes': 0})

        assert config_manager.config.polling.check_interval_minutes == 15

    def test_update_config_unknown_section(self, config_manager):
        with pytest.raises(KeyError):
            config_manager.update_config(**{'nope.value': 1})

    def test_update_config_replaces_log_file_handler(self, tmp_path):
        log_path = str(tmp_path / "notifier.log")
        config = make_config(tmp_path)
        config.logging = LoggingConfig(file_path=log_path)
        manager = ConfigManager(config)

        def file_handlers():
            return [
                h for h in logging.getLogger().handlers
                if isinstance(h, RotatingFileHandler) and h.baseFilename == os.path.abspath(log_path)
            ]

        try:
            manager.update_config(**{'logging.level': 'DEBUG'})
            manager.update_config(**{'logging.level': 'WARNING'})

            assert file_handlers() == [manager._file_handler]
        finally:
            for handler in file_handlers():
                logging.getLogger().removeHandler(handler)
                handler.close()
            logging.getLogger().setLevel(logging.INFO)

    def test_is_configured(self, tmp_path):
        config = make_config(tmp_path)

        assert is_configured(config, VALID_TOKEN) is True
        assert is_configured(config, None) is False
        assert is_configured(make_config(tmp_path, repos=[]), VALID_TOKEN) is False


class TestSecrets:

    def test_oauth_preferred_without_method(self):
        store = InMemorySecretStore({AuthMethod.PAT: "pat", AuthMethod.OAUTH: "oauth"})

        assert get_active_token(store) == "oauth"
        assert get_active_token(store, "pat") == "pat"

    def test_falls_back_to_pat(self):
        assert get_active_token(InMemorySecretStore({AuthMethod.PAT: "pat"})) == "pat"

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError):
            InMemorySecretStore().set_token(AuthMethod.PAT, "")

    def test_delete(self):
        store = InMemorySecretStore({AuthMethod.OAUTH: "oauth"})
        store.delete_token(AuthMethod.OAUTH)

        assert store.get_token(AuthMethod.OAUTH) is None


class TestNotifications:

    def test_pull_request_notification(self):
        n = pull_request_notification(make_pr(7, 107, repo="org/app", title="Fix crash"))

        assert n.identifier == "pr-7"
        assert n.title == "PR Review Requested: org/app"
        assert n.body == "Fix crash"
        assert n.url == "https://github.com/org/app/pull/107"

    def test_summary_notification(self):
        n = summary_notification(3)

        assert n.identifier == "pr-summary"
        assert n.body == "You have 3 pull request(s) waiting for your review."

    def test_callback_notifier(self):
        sent = []
        notifier = CallbackNotifier(sent.append)

        notifier.notify_pull_request(make_pr(1))
        notifier.notify_summary(2)

        assert [n.identifier for n in sent] == ["pr-1", "pr-summary"]
