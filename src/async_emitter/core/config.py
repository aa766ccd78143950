"""EmitterConfig & ConfigManager — strict/debug settings backed by TOML files."""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from async_emitter.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "async-emitter"
_SECTION = "emitter"


@dataclass(frozen=True)
class EmitterConfig:
    """Behavioural switches consulted by ``Emitter.emit``.

    Attributes:
        strict: Raise on protocol anomalies instead of logging a warning.
        debug: Start a hang detector for every emit.
        debug_timeout: Seconds the hang detector waits before reporting.
    """

    strict: bool = False
    debug: bool = False
    debug_timeout: float = 1.0

    def __post_init__(self) -> None:
        """Validate field types and ranges."""
        for name in ("strict", "debug"):
            if not isinstance(getattr(self, name), bool):
                msg = f"'{name}' must be a boolean, got {getattr(self, name)!r}"
                raise ConfigError(msg)
        timeout = self.debug_timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            msg = f"'debug_timeout' must be a positive number, got {timeout!r}"
            raise ConfigError(msg)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EmitterConfig:
        """Build a config from a plain mapping, ignoring unknown keys.

        Args:
            data: Mapping such as the ``[emitter]`` table of a TOML file.

        Returns:
            A validated ``EmitterConfig``.

        Raises:
            ConfigError: If a known key holds a value of the wrong type.
        """
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown emitter option '%s'", key)
        return cls(**{key: value for key, value in data.items() if key in known})


class ConfigManager:
    """Hierarchical emitter configuration.

    Global defaults come from ``config.toml`` and can be overridden per
    named emitter by ``emitters/<name>.toml``.  Both files keep their
    settings in an ``[emitter]`` table.

    Args:
        config_dir: Root directory for configuration files.
                    Defaults to ``~/.config/async-emitter/``.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialise the config manager.

        Args:
            config_dir: Custom configuration directory.  Uses the
                        platform default if ``None``.
        """
        self._config_dir = config_dir or _DEFAULT_CONFIG_DIR
        self._global: dict[str, Any] = {}
        self._per_emitter: dict[str, dict[str, Any]] = {}

    @property
    def config_dir(self) -> Path:
        """Return the configuration directory path."""
        return self._config_dir

    def load(self) -> None:
        """Load global and per-emitter config from ``config_dir``.

        Missing files are silently skipped.
        """
        global_file = self._config_dir / "config.toml"
        if global_file.is_file():
            self._global = self._read_section(global_file)
            logger.info("Loaded global config from %s", global_file)

        emitters_dir = self._config_dir / "emitters"
        if emitters_dir.is_dir():
            for toml_file in sorted(emitters_dir.glob("*.toml")):
                name = toml_file.stem
                self._per_emitter[name] = self._read_section(toml_file)
                logger.info("Loaded config for emitter '%s'", name)

    def get(self, key: str, *, emitter: str | None = None, default: Any = None) -> Any:
        """Look up one ``[emitter]`` option, preferring a named emitter's file.

        Args:
            key: Option name such as ``"strict"`` or ``"debug_timeout"``.
            emitter: Emitter whose ``emitters/<name>.toml`` is consulted first.
            default: Returned when neither file sets *key*.

        Returns:
            The option value, or *default*.
        """
        if emitter and emitter in self._per_emitter:
            value = self._per_emitter[emitter].get(key)
            if value is not None:
                return value
        return self._global.get(key, default)

    def set_global(self, key: str, value: Any) -> None:
        """Override a global ``[emitter]`` option in memory.

        The override applies to every emitter that does not set *key* in its
        own file.  Nothing is written to disk.

        Args:
            key: Option name such as ``"strict"``.
            value: The option value, validated when a config is resolved.
        """
        self._global[key] = value

    def emitter_config(self, name: str | None = None) -> EmitterConfig:
        """Resolve the effective ``EmitterConfig`` for an emitter.

        Args:
            name: Emitter name whose overrides apply, or ``None`` for
                  the global settings only.

        Returns:
            The merged, validated configuration.
        """
        keys = dict.fromkeys(self._global)
        if name:
            keys.update(dict.fromkeys(self._per_emitter.get(name, {})))
        return EmitterConfig.from_mapping({key: self.get(key, emitter=name) for key in keys})

    @staticmethod
    def _read_section(path: Path) -> dict[str, Any]:
        """Read a TOML file and return its ``[emitter]`` table.

        Args:
            path: Path to the TOML file.

        Returns:
            The table contents, or an empty dict if the file has none.

        Raises:
            ConfigError: If the file is not valid TOML or the table is malformed.
        """
        try:
            with path.open("rb") as fh:
                data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {path}: {exc}"
            raise ConfigError(msg) from exc
        section = data.get(_SECTION, {})
        if not isinstance(section, dict):
            msg = f"'[{_SECTION}]' in {path} must be a table"
            raise ConfigError(msg)
        return section
