"""Configuration management for Turnaround.

Settings come from a user file shared by every project and an optional
project file stored beside the commit graph; see :mod:`.resolver` for the
precedence between them, the environment, and CLI overrides.
"""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml

from turnaround.state import DEFAULT_STATE_DIRNAME

from .exceptions import ConfigError
from .models import TurnaroundConfig
from .resolver import ENV_PREFIX, assign_dotted, env_layer, flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.turnaround/config.yaml")
PROJECT_CONFIG_RELPATH = Path(DEFAULT_STATE_DIRNAME) / "config.yaml"

ConfigScope = Literal["user", "project"]

_HEADERS: dict[str, str] = {
    "user": textwrap.dedent(
        """\
        # Turnaround user configuration
        # Applies to every project; edit with `turnaround config edit` or `turnaround config set`.
        """
    ),
    "project": textwrap.dedent(
        """\
        # Turnaround project configuration
        # Overrides the user configuration for this project only.
        """
    ),
}


class ConfigManager:
    """Read and write the user and project configuration files."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        project_root: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._project_root = project_root.expanduser() if project_root is not None else None
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the user configuration path."""
        return self._config_path

    @property
    def project_config_path(self) -> Path | None:
        if self._project_root is None:
            return None
        return self._project_root / PROJECT_CONFIG_RELPATH

    def path_for(self, scope: ConfigScope) -> Path:
        """Return the file backing ``scope``.

        Raises:
            ConfigError: If ``scope`` is ``project`` and no project root was given.
        """
        if scope == "user":
            return self._config_path
        project_path = self.project_config_path
        if project_path is None:
            raise ConfigError("No project selected for project-scoped configuration.")
        return project_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> TurnaroundConfig:
        """Return the effective configuration for this manager's project.

        Args:
            cli_overrides: Dotted-key overrides given on the command line.
            include_env: Whether ``TURNAROUND__`` variables are applied.
            ensure_file: Create the user file with defaults when missing.
            env_overrides: Environment to read instead of ``os.environ``.
        """
        if ensure_file:
            self.ensure_exists()

        env_data = None
        if include_env:
            env_data = env_layer(env_overrides if env_overrides is not None else self._env)

        project_overrides = None
        if self.project_config_path is not None:
            project_overrides = self.load_file_overrides("project")

        return resolve_with_precedence(
            defaults=TurnaroundConfig(),
            file_overrides=self.load_file_overrides("user"),
            project_overrides=project_overrides,
            env_overrides=env_data or None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self, scope: ConfigScope = "user") -> dict[str, Any]:
        """Return the raw mapping stored for ``scope``; empty when the file is absent."""
        path = self.path_for(scope)
        if not path.exists():
            return {}
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}", source=path) from exc
        if not isinstance(raw, dict):
            raise ConfigError(
                "Configuration file must contain a mapping at the top level.", source=path
            )
        return raw

    def set_value(self, key: str, value: Any, scope: ConfigScope = "user") -> dict[str, Any]:
        """Store ``value`` at dotted ``key`` in the ``scope`` file after validating the result.

        Returns:
            dict[str, Any]: The mapping written to disk.

        Raises:
            ConfigError: If the key is malformed or the resulting settings are invalid.
        """
        data = self.load_file_overrides(scope)
        assign_dotted(data, key, value, layer_name=f"{scope} file")
        self.validate_overrides(data, scope)
        self.save(data, scope)
        return data

    def validate_overrides(self, data: Mapping[str, Any], scope: ConfigScope) -> TurnaroundConfig:
        """Validate ``data`` as the new contents of ``scope`` combined with the other file."""
        if scope == "user":
            project = None
            if self.project_config_path is not None:
                project = self.load_file_overrides("project")
            return resolve_with_precedence(
                defaults=TurnaroundConfig(), file_overrides=data, project_overrides=project
            )
        return resolve_with_precedence(
            defaults=TurnaroundConfig(),
            file_overrides=self.load_file_overrides("user"),
            project_overrides=data,
        )

    def save(
        self, config: TurnaroundConfig | Mapping[str, Any], scope: ConfigScope = "user"
    ) -> None:
        """Write ``config`` to the ``scope`` file with a header and timestamp."""
        if isinstance(config, TurnaroundConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        path = self.path_for(scope)
        if scope == "project" and not path.parent.is_dir():
            raise ConfigError(
                "Project configuration requires an initialised project; run `turnaround init`.",
                source=path,
            )
        path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(data, sort_keys=False) if data else ""
        path.write_text(f"{_HEADERS[scope]}# Last updated: {stamp}\n{body}", encoding="utf-8")

    def ensure_exists(self) -> Path:
        """Create the user file with default values if it does not exist."""
        if not self._config_path.exists():
            self.save(TurnaroundConfig(), "user")
        return self._config_path

    def read_text(self, scope: ConfigScope = "user") -> str:
        path = self.path_for(scope)
        if not path.exists():
            return ""
        return path.read_text(encoding="utf-8")


__all__ = [
    "ConfigError",
    "ConfigManager",
    "ConfigScope",
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
    "PROJECT_CONFIG_RELPATH",
    "TurnaroundConfig",
    "flatten_for_env",
    "resolve_with_precedence",
]
