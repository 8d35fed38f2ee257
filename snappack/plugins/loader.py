"""Versioned plugin configuration loader.

Config files are JSON objects::

    {
      "config_version": 1,
      "plugins": [
        {"entrypoint": "package.module:Factory", "options": {...}, "enabled": true}
      ]
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
import importlib
import json
from pathlib import Path
from typing import Any

from snappack.plugins.base import PLUGIN_API_VERSION, PLUGIN_CONFIG_VERSION
from snappack.plugins.exceptions import PluginConfigError, PluginLoadError
from snappack.plugins.manager import PluginManager

_ENTRY_KEYS = frozenset({"entrypoint", "options", "enabled", "name"})


@dataclass(frozen=True, slots=True)
class PluginSpec:
    """One validated ``plugins[]`` entry."""

    index: int
    entrypoint: str
    options: dict[str, Any] = field(default_factory=dict)
    name: str | None = None

    @property
    def module_name(self) -> str:
        return self.entrypoint.partition(":")[0]

    @property
    def attribute(self) -> str:
        return self.entrypoint.partition(":")[2]


def load_plugin_manager_from_file(path: str | Path) -> PluginManager:
    """Load a plugin manager from a JSON config file."""
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        raise PluginConfigError(f"Invalid plugin config JSON ({config_path}): {error}") from error
    return load_plugin_manager(raw, source=str(config_path))


def load_plugin_manager(raw: Any, *, source: str = "<memory>") -> PluginManager:
    specs = parse_plugin_config(raw, source=source)
    return PluginManager(plugins=tuple(instantiate_plugin(spec) for spec in specs))


def parse_plugin_config(raw: Any, *, source: str = "<memory>") -> list[PluginSpec]:
    if not isinstance(raw, dict):
        raise PluginConfigError(f"Plugin config must be a JSON object ({source}).")

    version = raw.get("config_version")
    if version != PLUGIN_CONFIG_VERSION:
        raise PluginConfigError(
            "Unsupported plugin config version "
            f"{version!r}; expected {PLUGIN_CONFIG_VERSION}."
        )

    entries = raw.get("plugins")
    if not isinstance(entries, list):
        raise PluginConfigError("Plugin config key 'plugins' must be a JSON array.")

    specs: list[PluginSpec] = []
    for index, entry in enumerate(entries, start=1):
        spec = _parse_entry(entry, index=index)
        if spec is not None:
            specs.append(spec)
    return specs


def _parse_entry(entry: Any, *, index: int) -> PluginSpec | None:
    if not isinstance(entry, dict):
        raise PluginConfigError(f"Plugin entry #{index} must be a JSON object.")

    unknown = sorted(set(entry.keys()) - _ENTRY_KEYS)
    if unknown:
        raise PluginConfigError(
            f"Plugin entry #{index} contains unsupported keys: {', '.join(unknown)}"
        )

    enabled = entry.get("enabled", True)
    if not isinstance(enabled, bool):
        raise PluginConfigError(f"Plugin entry #{index} key 'enabled' must be boolean.")
    if not enabled:
        return None

    entrypoint = entry.get("entrypoint")
    if not isinstance(entrypoint, str) or ":" not in entrypoint:
        raise PluginConfigError(
            f"Plugin entry #{index} key 'entrypoint' must be 'module:attribute'."
        )

    options = entry.get("options", {})
    if not isinstance(options, dict):
        raise PluginConfigError(f"Plugin entry #{index} key 'options' must be a JSON object.")

    name = entry.get("name")
    if name is not None and not isinstance(name, str):
        raise PluginConfigError(f"Plugin entry #{index} key 'name' must be a string.")

    return PluginSpec(index=index, entrypoint=entrypoint, options=options, name=name)


def instantiate_plugin(spec: PluginSpec) -> object:
    try:
        module = importlib.import_module(spec.module_name)
    except Exception as error:
        raise PluginLoadError(
            f"Plugin entry #{spec.index} failed to import module '{spec.module_name}': {error}"
        ) from error

    target = getattr(module, spec.attribute, None)
    if target is None:
        raise PluginLoadError(
            f"Plugin entry #{spec.index} could not find attribute '{spec.attribute}' "
            f"in '{spec.module_name}'."
        )

    if callable(target):
        try:
            plugin = target(**spec.options)
        except Exception as error:
            raise PluginLoadError(
                f"Plugin entry #{spec.index} failed to instantiate '{spec.entrypoint}' "
                f"with options {sorted(spec.options.keys())}: {error}"
            ) from error
    elif spec.options:
        raise PluginLoadError(
            f"Plugin entry #{spec.index} uses non-callable '{spec.entrypoint}' "
            "and cannot accept options."
        )
    else:
        plugin = target

    if spec.name is not None:
        try:
            setattr(plugin, "name", spec.name)
        except AttributeError as error:
            raise PluginLoadError(
                f"Plugin entry #{spec.index} '{spec.entrypoint}' does not accept a name override."
            ) from error

    version = str(getattr(plugin, "api_version", PLUGIN_API_VERSION))
    expected_major = PLUGIN_API_VERSION.split(".", 1)[0]
    if version.split(".", 1)[0] != expected_major:
        raise PluginLoadError(
            f"Plugin entry #{spec.index} '{spec.entrypoint}' declares unsupported api_version "
            f"{version!r}; supported major version is {expected_major}."
        )
    return plugin
