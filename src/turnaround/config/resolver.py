"""Layered configuration resolution.

Layers are merged in increasing precedence: built-in defaults, the user file
(``~/.turnaround/config.yaml``), the project file
(``<project>/.turnaround/config.yaml``), ``TURNAROUND__`` environment
variables, and finally CLI overrides. Every layer is a nested mapping whose
keys may also be written in dotted form (``watch.debounce_seconds``).
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import TurnaroundConfig

ENV_PREFIX = "TURNAROUND__"

Layer = Tuple[str, Optional[Mapping[str, Any]]]


def resolve_with_precedence(
    *,
    defaults: TurnaroundConfig,
    file_overrides: Mapping[str, Any] | None = None,
    project_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> TurnaroundConfig:
    """Merge configuration layers: defaults < file < project < environment < CLI.

    Raises:
        ConfigError: If a layer is malformed or the merged values fail
            validation. ``keys`` lists the rejected dotted settings.
    """
    layers: Iterable[Layer] = (
        ("user file", file_overrides),
        ("project file", project_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    )
    merged = defaults.model_dump(mode="python")
    for name, layer in layers:
        if layer is not None:
            merged = merge_layers(merged, expand_dotted(layer, layer_name=name))
    return validate_config(merged)


def validate_config(data: Mapping[str, Any]) -> TurnaroundConfig:
    try:
        return TurnaroundConfig.model_validate(data)
    except ValidationError as exc:
        problems = [
            (".".join(str(part) for part in error["loc"]), error["msg"]) for error in exc.errors()
        ]
        keys = tuple(key for key, _ in problems if key)
        summary = "; ".join(f"{key or '<root>'}: {message}" for key, message in problems)
        raise ConfigError(f"Invalid configuration values: {summary}", keys=keys) from exc


def expand_dotted(layer: Mapping[str, Any], *, layer_name: str) -> dict[str, Any]:
    """Return ``layer`` as a nested mapping, expanding dotted keys."""
    if not isinstance(layer, MappingABC):
        raise ConfigError(f"{layer_name} overrides must be a mapping.")
    nested: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str) or not key.strip():
            raise ConfigError(f"{layer_name} override keys must be non-empty strings.")
        if isinstance(value, MappingABC):
            value = expand_dotted(value, layer_name=layer_name)
        assign_dotted(nested, key, value, layer_name=layer_name)
    return nested


def assign_dotted(
    target: dict[str, Any], key: str, value: Any, *, layer_name: str = "configuration"
) -> None:
    """Set ``value`` at dotted ``key`` inside ``target``, creating sections as needed.

    Mapping values are merged into an existing section instead of replacing it.

    Raises:
        ConfigError: If the key is empty or a path segment holds a scalar.
    """
    segments = [segment.strip() for segment in key.split(".")]
    if not all(segments):
        raise ConfigError(
            f"Invalid setting key {key!r}; use a dotted path such as 'watch.debounce_seconds'."
        )
    node = target
    for depth, segment in enumerate(segments[:-1]):
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            blocked = ".".join(segments[: depth + 1])
            raise ConfigError(f"{layer_name} sets {key}, but {blocked} is not a section.")
        node = child
    leaf = segments[-1]
    if isinstance(value, MappingABC) and isinstance(node.get(leaf), dict):
        node[leaf] = merge_layers(node[leaf], value)
    else:
        node[leaf] = deepcopy(value)


def merge_layers(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively overlay ``overrides`` on ``base`` without mutating either."""
    merged = deepcopy(dict(base))
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = merge_layers(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def env_layer(env: Mapping[str, str]) -> dict[str, Any]:
    """Build a layer from ``TURNAROUND__SECTION__KEY`` variables.

    Values are parsed as YAML scalars or flow collections, so
    ``TURNAROUND__TRACKING__MEDIA_EXTENSIONS='[mov, wav]'`` yields a list.
    """
    layer: dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        segments = [part.lower() for part in name[len(ENV_PREFIX) :].split("__") if part]
        if not segments:
            continue
        try:
            value: Any = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        assign_dotted(layer, ".".join(segments), value, layer_name="environment")
    return layer


def flatten_for_env(config: TurnaroundConfig) -> Dict[str, str]:
    """Render ``config`` as the ``TURNAROUND__SECTION__KEY`` variables that reproduce it."""
    flat: Dict[str, str] = {}
    for section, values in config.model_dump(mode="python").items():
        for key, value in values.items():
            name = f"{ENV_PREFIX}{section.upper()}__{key.upper()}"
            if isinstance(value, list):
                flat[name] = yaml.safe_dump(value, default_flow_style=True).strip()
            else:
                flat[name] = "null" if value is None else str(value)
    return flat


__all__ = [
    "ENV_PREFIX",
    "assign_dotted",
    "env_layer",
    "expand_dotted",
    "flatten_for_env",
    "merge_layers",
    "resolve_with_precedence",
    "validate_config",
]
