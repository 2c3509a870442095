"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (CODEREF__SECTION__KEY)
3. Repo config (.coderef/config.yaml)
4. Global config (~/.config/coderef/config.yaml)
5. Built-in defaults (lowest priority)
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from coderef.config.models import (
    CodeRefConfig,
    ConsumerConfig,
    DatabaseConfig,
    GitHubConfig,
    LoggingConfig,
    NotificationsConfig,
    ServerConfig,
    TrackingConfig,
    WebhookConfig,
)
from coderef.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/coderef/config.yaml").expanduser()
REPO_CONFIG_PATH = Path(".coderef") / "config.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class CodeRefSettings(BaseSettings):
        """Root config. Env vars: CODEREF__LOGGING__LEVEL, CODEREF__SERVER__PORT, etc."""

        model_config = SettingsConfigDict(
            env_prefix="CODEREF__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        server: ServerConfig = ServerConfig()
        webhook: WebhookConfig = WebhookConfig()
        consumer: ConsumerConfig = ConsumerConfig()
        github: GitHubConfig = GitHubConfig()
        notifications: NotificationsConfig = NotificationsConfig()
        database: DatabaseConfig = DatabaseConfig()
        tracking: TrackingConfig = TrackingConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return CodeRefSettings


def load_config(root: Path | None = None, **kwargs: Any) -> CodeRefConfig:
    """Load config: defaults < global yaml < repo yaml < env vars < kwargs.

    Args:
        root: Directory holding .coderef/config.yaml.
              Defaults to current working directory.
        **kwargs: Override values (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    root = root or Path.cwd()

    yaml_config = _load_yaml(root / REPO_CONFIG_PATH)

    global_config = _load_yaml(GLOBAL_CONFIG_PATH)
    if global_config:
        yaml_config = _deep_merge(global_config, yaml_config)

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return CodeRefConfig.model_validate(settings.model_dump())


def resolve_database_path(config: CodeRefConfig, root: Path | None = None) -> Path:
    """Resolve the configured database path against root."""
    path = Path(config.database.path).expanduser()
    if not path.is_absolute():
        path = (root or Path.cwd()) / path
    return path
