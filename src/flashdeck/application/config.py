from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class AppConfig(BaseSettings):
    """
    Configuration model for flashdeck.
    Supports loading from:
    1. Environment variables (FLASHDECK_*)
    2. Config file (~/.config/flashdeck/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHDECK_",
        extra="ignore",
    )

    # Paths
    data_file: Path = Field(
        default_factory=lambda: Path.home() / ".config/flashdeck/data.json"
    )
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/flashdeck/logs")

    # Storage
    backend: Literal["json", "memory"] = "json"

    # Study sessions
    persistence_mode: Literal["background", "blocking"] = "background"
    shuffle_seed: int | None = None

    verbose: int = 1

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

        # First existing file wins; home is re-read so tests can move it
        home = Path.home()
        toml_file = None
        for f in (home / ".config/flashdeck/config.toml", home / ".flashdeck.toml"):
            if f.exists():
                toml_file = f
                break

        # Earlier sources take priority: CLI overrides, then env, then file
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_file", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/flashdeck/config.toml (if exists)
    3. Environment variables (FLASHDECK_*)
    4. cli_overrides (passed from Typer); None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
