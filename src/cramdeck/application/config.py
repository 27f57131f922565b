from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cramdeck.domain.constants import (
    CORRECT_FEEDBACK_SECONDS,
    DEFAULT_DEADLINE_DAYS,
    DEFAULT_NEW_CARDS_PER_DAY,
    DEFAULT_REVIEWS_PER_DAY,
    WRONG_FEEDBACK_SECONDS,
)

DEFAULT_CATALOG = Path(__file__).resolve().parent.parent / "data" / "catalog.yaml"


class AppConfig(BaseSettings):
    """
    Configuration model for cramdeck.
    Supports loading from:
    1. Environment variables (CRAMDECK_*)
    2. Config file (~/.config/cramdeck/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAMDECK_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/cramdeck")
    state_file: Path | None = None
    catalog_path: Path = DEFAULT_CATALOG

    # First-run study settings (later edits live in the saved state)
    new_cards_per_day: int = Field(default=DEFAULT_NEW_CARDS_PER_DAY, ge=0)
    reviews_per_day: int = Field(default=DEFAULT_REVIEWS_PER_DAY, ge=0)
    deadline_days: int = Field(default=DEFAULT_DEADLINE_DAYS, ge=0)

    # Feedback windows
    correct_feedback_seconds: float = Field(default=CORRECT_FEEDBACK_SECONDS, ge=0)
    wrong_feedback_seconds: float = Field(default=WRONG_FEEDBACK_SECONDS, ge=0)

    verbose: int = Field(default=0, ge=0)

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

        # Home may be patched in tests, so look the files up again
        toml_files = [
            Path.home() / ".config/cramdeck/config.toml",
            Path.home() / ".cramdeck.toml",
        ]
        toml_file = next((f for f in toml_files if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("data_dir", "catalog_path", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("state_file", mode="before")
    @classmethod
    def resolve_state_file(cls, v: Any) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/cramdeck/config.toml (if exists)
    3. Environment variables (CRAMDECK_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.state_file is None:
        config.state_file = config.data_dir / "progress.json"

    return config
