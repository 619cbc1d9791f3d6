"""
Configuration Management

시스템 설정 관리
"""

import os
import yaml
from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Any, List
from pathlib import Path
import logging

from .validation import (
    validate_check_interval,
    validate_github_token,
    validate_repository,
    validate_username,
)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(',') if item.strip()]


@dataclass
class GitHubConfig:
    """GitHub API 설정"""
    token: Optional[str] = None
    api_base_url: str = "https://api.github.com"
    timeout_seconds: int = 30
    user_agent: str = "PRNotifier/2.0"


@dataclass
class PollingConfig:
    """폴링 설정"""
    repos: List[str] = field(default_factory=list)
    username: str = ""
    check_interval_minutes: int = 15
    enable_notifications: bool = True
    show_sample_prs: bool = False


@dataclass
class OAuthConfig:
    """OAuth device flow 설정"""
    client_id: str = "Ov23li0e346jRMzotPpO"
    scope: str = "repo"
    device_code_url: str = "https://github.com/login/device/code"
    access_token_url: str = "https://github.com/login/oauth/access_token"
    user_url: str = "https://api.github.com/user"
    slow_down_increment: int = 5


@dataclass
class StorageConfig:
    """로컬 저장소 설정"""
    cache_dir: str = str(Path.home() / ".pr-notifier")
    cache_filename: str = "cache.json"
    auth_method: str = ""  # 'pat', 'oauth' or '' (auto)

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir) / self.cache_filename


@dataclass
class LoggingConfig:
    """로깅 설정"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class AppConfig:
    """전체 애플리케이션 설정"""
    github: GitHubConfig = field(default_factory=GitHubConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    oauth: OAuthConfig = field(default_factory=OAuthConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "AppConfig":
        """환경 변수에서 설정 로드"""
        return cls(
            github=GitHubConfig(
                token=os.getenv("GITHUB_TOKEN"),
                api_base_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
                timeout_seconds=int(os.getenv("GITHUB_TIMEOUT", "30")),
                user_agent=os.getenv("GITHUB_USER_AGENT", "PRNotifier/2.0"),
            ),
            polling=PollingConfig(
                repos=_env_list("PR_NOTIFIER_REPOS"),
                username=os.getenv("PR_NOTIFIER_USERNAME", ""),
                check_interval_minutes=int(os.getenv("PR_NOTIFIER_CHECK_INTERVAL", "15")),
                enable_notifications=_env_flag("PR_NOTIFIER_NOTIFICATIONS", True),
                show_sample_prs=_env_flag("PR_NOTIFIER_SAMPLE_PRS", False),
            ),
            oauth=OAuthConfig(
                client_id=os.getenv("PR_NOTIFIER_CLIENT_ID", OAuthConfig.client_id),
                scope=os.getenv("PR_NOTIFIER_OAUTH_SCOPE", "repo"),
            ),
            storage=StorageConfig(
                cache_dir=os.getenv("PR_NOTIFIER_CACHE_DIR", str(Path.home() / ".pr-notifier")),
                auth_method=os.getenv("PR_NOTIFIER_AUTH_METHOD", ""),
            ),
            logging=LoggingConfig(
                level=os.getenv("LOG_LEVEL", "INFO"),
                format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
                file_path=os.getenv("LOG_FILE"),
                max_file_size=int(os.getenv("LOG_MAX_SIZE", str(10 * 1024 * 1024))),
                backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
            ),
            debug=_env_flag("DEBUG", False),
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "AppConfig":
        """YAML 파일에서 설정 로드"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(
            github=GitHubConfig(**config_data.get('github', {})),
            polling=PollingConfig(**config_data.get('polling', {})),
            oauth=OAuthConfig(**config_data.get('oauth', {})),
            storage=StorageConfig(**config_data.get('storage', {})),
            logging=LoggingConfig(**config_data.get('logging', {})),
            debug=config_data.get('debug', False),
        )

    def validate(self) -> None:
        """설정 유효성 검사"""
        errors = []

        # 토큰은 선택 사항 (device flow 로그인 가능)
        if self.github.token and not validate_github_token(self.github.token):
            errors.append("GitHub token format is invalid")

        for repo in self.polling.repos:
            if not validate_repository(repo):
                errors.append(f"Invalid repository: {repo!r}")
        if len(set(self.polling.repos)) != len(self.polling.repos):
            errors.append("Repositories must not contain duplicates")

        if self.polling.username and not validate_username(self.polling.username):
            errors.append(f"Invalid username: {self.polling.username!r}")

        if not validate_check_interval(self.polling.check_interval_minutes):
            errors.append("Check interval must be between 1 and 1440 minutes")

        if self.storage.auth_method not in ("", "pat", "oauth"):
            errors.append(f"Invalid auth method: {self.storage.auth_method}")

        if self.oauth.slow_down_increment <= 0:
            errors.append("slow_down increment must be positive")

        # 로그 레벨 검증
        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid log level: {self.logging.level}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def to_dict(self) -> Dict[str, Any]:
        """설정을 딕셔너리로 변환"""
        return {
            'github': {
                'api_base_url': self.github.api_base_url,
                'timeout_seconds': self.github.timeout_seconds,
                'user_agent': self.github.user_agent,
                # 보안상 토큰은 제외
            },
            'polling': {
                'repos': list(self.polling.repos),
                'username': self.polling.username,
                'check_interval_minutes': self.polling.check_interval_minutes,
                'enable_notifications': self.polling.enable_notifications,
                'show_sample_prs': self.polling.show_sample_prs,
            },
            'oauth': {
                'client_id': self.oauth.client_id,
                'scope': self.oauth.scope,
            },
            'storage': {
                'cache_dir': self.storage.cache_dir,
                'cache_filename': self.storage.cache_filename,
                'auth_method': self.storage.auth_method,
            },
            'logging': {
                'level': self.logging.level,
                'format': self.logging.format,
                'file_path': self.logging.file_path,
                'max_file_size': self.logging.max_file_size,
                'backup_count': self.logging.backup_count,
            },
            'debug': self.debug,
        }


def is_configured(config: AppConfig, token: Optional[str]) -> bool:
    """토큰, 사용자명, 저장소가 모두 설정되었는지 확인"""
    return bool(token) and bool(config.polling.username) and bool(config.polling.repos)


class ConfigManager:
    """설정 관리자"""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config or AppConfig.from_env()
        self._file_handler: Optional[logging.Handler] = None
        self._config.validate()
        self._setup_logging()

    @property
    def config(self) -> AppConfig:
        """현재 설정 반환"""
        return self._config

    def update_config(self, **kwargs) -> None:
        """설정 업데이트"""
        sections = {
            'github': self._config.github,
            'polling': self._config.polling,
            'oauth': self._config.oauth,
            'storage': self._config.storage,
            'logging': self._config.logging,
        }
        top_level = {}

        for key, value in kwargs.items():
            if '.' in key:
                # 중첩된 설정 (예: 'polling.check_interval_minutes')
                section, name = key.split('.', 1)
                if section not in sections:
                    raise KeyError(f"Unknown config section: {section}")
                sections[section] = replace(sections[section], **{name: value})
            else:
                # 최상위 설정
                top_level[key] = value

        candidate = replace(self._config, **sections, **top_level)
        candidate.validate()

        logging_changed = candidate.logging != self._config.logging
        self._config = candidate
        if logging_changed:
            self._setup_logging()

    def _setup_logging(self) -> None:
        """로깅 설정"""
        logging.basicConfig(
            level=getattr(logging, self._config.logging.level.upper()),
            format=self._config.logging.format,
        )
        logging.getLogger().setLevel(getattr(logging, self._config.logging.level.upper()))

        # 이전에 추가한 파일 핸들러 제거
        root_logger = logging.getLogger()
        if self._file_handler is not None:
            root_logger.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None

        # 파일 로깅이 설정된 경우 로테이션 설정
        if self._config.logging.file_path:
            from logging.handlers import RotatingFileHandler

            handler = RotatingFileHandler(
                self._config.logging.file_path,
                maxBytes=self._config.logging.max_file_size,
                backupCount=self._config.logging.backup_count,
            )
            handler.setFormatter(logging.Formatter(self._config.logging.format))

            # 루트 로거에 핸들러 추가
            root_logger.addHandler(handler)
            self._file_handler = handler


# 전역 설정 관리자 인스턴스 (최초 사용 시 생성)
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> AppConfig:
    """현재 설정 반환"""
    return get_config_manager().config


def update_config(**kwargs) -> None:
    """설정 업데이트"""
    get_config_manager().update_config(**kwargs)
