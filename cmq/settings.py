"""Settings resolution with a 4-step precedence chain and named profile support."""

from collections.abc import Mapping
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import NoReturn

import tomlkit
import typer
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from cmq.mode import parse_calendar_date

CONFIG_PATH = Path.home() / ".config" / "cmq" / "config.toml"


class CmqSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CMQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Tracker selection
    default_tracker: str | None = None  # profile name
    provider: str = "jira"  # "jira" | "snapshot", resolved from active profile

    # Jira
    jira_url: str | None = None  # e.g. https://tracker.moodle.org
    jira_user: str | None = None
    jira_password: SecretStr | None = None

    # Snapshot (local JSON list of issues, mutations kept in memory)
    snapshot_path: Path | None = None

    # Queue policy
    hold_date: date | None = None  # first day holding candidates instead of feeding current
    current_min: int = Field(default=6, ge=0)
    move_max: int = Field(default=3, ge=0)

    # Run bookkeeping
    workspace: Path = Path(".")
    run_id: str = "manual"  # CI build number when scheduled

    # Saved filters and fields on the tracker
    project: str = "MDL"
    candidates_filter: int = 14000
    held_comment_filter: int = 22054
    agreed_after_release_filter: int = 21366
    must_fix_filter: int = 21363
    integration_flag_name: str = "Currently in integration"
    integration_flag_field: str = "customfield_10211"
    integration_priority_field: str = "customfield_12210"
    last_comment_date_field: str = "customfield_13810"
    must_fix_versions_field: str = "customfield_10110"
    promote_transition: str = "CI Global Self-Transition"
    promote_role: str = "Integrators"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Profile values arrive as init kwargs; env vars + .env override them
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @field_validator("hold_date", mode="before")
    @classmethod
    def _strict_hold_date(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_calendar_date(value)
        return value


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/cmq/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def _fail(message: str) -> NoReturn:
    typer.echo(message)
    raise typer.Exit(1)


def get_settings(tracker: str | None = None) -> CmqSettings:
    """Resolve active tracker profile and return a fully validated CmqSettings.

    Precedence (highest to lowest):
    1. tracker argument (--tracker CLI flag)
    2. CMQ_DEFAULT_TRACKER env var
    3. default_tracker key in ~/.config/cmq/config.toml
    4. First profile defined in ~/.config/cmq/config.toml

    Any missing or malformed required value exits before a single tracker call.
    """
    import os

    toml_config = _load_toml()

    active = (
        tracker
        or os.environ.get("CMQ_DEFAULT_TRACKER")
        or toml_config.get("default_tracker")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        elif active not in toml_config:
            profiles = _list_profiles(toml_config)
            _fail(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")

    # env vars + .env always override profile defaults
    try:
        settings = CmqSettings(**profile_defaults)
    except ValidationError as exc:
        errors = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
        _fail(f"Invalid configuration for [{active or 'profile'}]: {errors}")

    section = f"the [{active or 'profile'}] section of {CONFIG_PATH}"
    if settings.hold_date is None:
        _fail(f"Missing hold date. Set CMQ_HOLD_DATE (YYYY-MM-DD) or hold_date in {section}")
    if settings.provider == "jira":
        missing = [name for name in ("jira_url", "jira_user", "jira_password") if not getattr(settings, name)]
        if missing:
            _fail(
                f"Missing Jira configuration: {', '.join(missing)}. "
                f"Set CMQ_{missing[0].upper()} or {missing[0]} in {section}"
            )
    elif settings.provider == "snapshot":
        if not settings.snapshot_path:
            _fail(f"Missing snapshot path. Set CMQ_SNAPSHOT_PATH or snapshot_path in {section}")
    else:
        _fail(f"Unknown provider '{settings.provider}'. Valid: jira, snapshot")

    return settings
