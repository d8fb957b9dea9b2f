"""Unified settings - CLI flags, env vars, TOML and persisted flow config.

Priority chain (highest to lowest):
  1. Init kwargs      - CLI flags passed by Click
  2. Env vars         - ``ARTIFLOW_*`` prefix, ``__`` for nesting
  3. TOML file        - ``artiflow.toml`` discovered via walk-up
  4. Persisted config - ``<root>/.flow-config.json`` from the last run
  5. Code defaults    - baked into :class:`FlowConfig`

Nested sections are deep-merged, so a TOML ``[flow]`` table that sets only
``debounce_ms`` keeps the persisted ``watch_paths``.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from artiflow.config.discovery import discover
from artiflow.config.models import FlowConfig, read_persisted_flow_config


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from an ``artiflow.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


class PersistedFlowSource(PydanticBaseSettingsSource):
    """Feed the last persisted ``.flow-config.json`` into the ``flow`` section."""

    def __init__(self, settings_cls: type[BaseSettings], storage_root: Path | None) -> None:
        super().__init__(settings_cls)
        persisted = read_persisted_flow_config(storage_root) if storage_root else {}
        self._data: dict[str, Any] = {"flow": persisted} if persisted else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for source locations during construction.
_tls = threading.local()


class FlowSettings(BaseSettings):
    """Settings for one pipeline process.

    Attributes:
        storage_root: Resolved storage root (explicit ``--root``, else the
            discovered directory, else CWD).
        config_path: The TOML file that was read, if any.
        flow: Pipeline configuration; see :meth:`flow_config`.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "ARTIFLOW_",
        "env_nested_delimiter": "__",
    }

    storage_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    flow: FlowConfig = Field(default_factory=FlowConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML and persisted-config sources below env vars."""
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
            PersistedFlowSource(settings_cls, getattr(_tls, "storage_root", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        storage_root: Path | None = None,
        **cli_flags: Any,
    ) -> FlowSettings:
        """Construct settings from a CLI invocation.

        An explicit *config_path* is used as-is; otherwise ``artiflow.toml``
        is discovered by walking up from *storage_root* (or CWD).
        """
        toml_path: Path | None = None
        discovered_root: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
                discovered_root = p.parent
        else:
            found = discover(storage_root)
            toml_path = found.toml_path
            discovered_root = found.storage_root

        resolved_root = storage_root or discovered_root or Path.cwd()

        _tls.toml_path = toml_path
        _tls.storage_root = resolved_root
        try:
            return cls(
                storage_root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None
            _tls.storage_root = None

    def flow_config(self) -> FlowConfig:
        """The effective FlowConfig, anchored at :attr:`storage_root`."""
        return self.flow.model_copy(update={"storage_root": self.storage_root})
