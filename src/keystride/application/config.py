from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


def _config_files() -> list[Path]:
    return [
        Path.home() / ".config/keystride/config.toml",
        Path.home() / ".keystride.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration for keystride.
    Supports loading from:
    1. Config file (~/.config/keystride/config.toml)
    2. Environment variables (KEYSTRIDE_*)
    3. Manual overrides (CLI / API)
    """

    model_config = SettingsConfigDict(
        env_prefix="KEYSTRIDE_",
        extra="ignore",
    )

    # Paths
    state_file: Path = Field(default_factory=lambda: Path.home() / ".config/keystride/progress.json")

    # Learner defaults
    age_group: str | None = None

    # Content generation
    review_probability: float = Field(default=0.3, ge=0.0, le=1.0)
    seed: int | None = None

    # Server
    host: str = "127.0.0.1"
    port: int = 8787

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Earlier sources win: overrides, then env, then the first config file found
        toml_file = next((f for f in _config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("state_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/keystride/config.toml (if exists)
    3. Environment variables (KEYSTRIDE_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
