"""Selection of the hook sink that snapshot assertions report to.

A ``SnapshotCase`` without an explicit ``plugin_manager`` reports to the
manager active in the current context, falling back to the plugins configured
by ``SNAPSHOT_PLUGIN_CONFIG``. With neither, hooks go nowhere.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
import os
from pathlib import Path
from typing import Iterator

from snappack.config import get_logger
from snappack.plugins.base import PLUGIN_CONFIG_ENV_VAR
from snappack.plugins.loader import load_plugin_manager_from_file
from snappack.plugins.manager import PluginManager

logger = get_logger(__name__)

_CONTEXT_MANAGER: ContextVar[PluginManager | None] = ContextVar(
    "snappack_assertion_hooks",
    default=None,
)
_NO_HOOKS = PluginManager(plugins=())
_LOADED_FROM_ENV: dict[Path, PluginManager] = {}


def get_active_plugin_manager() -> PluginManager:
    """Return the manager that receives assertion and attachment hooks.

    A manager activated with ``use_plugin_manager`` wins. Otherwise the config
    file named by ``SNAPSHOT_PLUGIN_CONFIG`` is loaded once per path and reused
    by every later assertion in the process.

    Raises:
        PluginConfigError: The configured file is not a valid plugin config.
        PluginLoadError: A configured plugin cannot be imported or built.
    """
    manager = _CONTEXT_MANAGER.get()
    if manager is not None:
        return manager

    configured = os.getenv(PLUGIN_CONFIG_ENV_VAR, "").strip()
    if not configured:
        return _NO_HOOKS

    config_path = Path(configured).expanduser().absolute()
    cached = _LOADED_FROM_ENV.get(config_path)
    if cached is not None:
        return cached

    loaded = load_plugin_manager_from_file(config_path)
    logger.debug(
        "loaded %d snapshot plugin(s) from %s=%s",
        len(loaded.plugins),
        PLUGIN_CONFIG_ENV_VAR,
        config_path,
    )
    _LOADED_FROM_ENV[config_path] = loaded
    return loaded


@contextmanager
def use_plugin_manager(manager: PluginManager) -> Iterator[PluginManager]:
    """Send hooks from assertions run inside the block to ``manager``.

    The override is context-local, so concurrently running tests on other
    threads or tasks keep their own sink.
    """
    token = _CONTEXT_MANAGER.set(manager)
    try:
        yield manager
    finally:
        _CONTEXT_MANAGER.reset(token)


@contextmanager
def use_plugins_from_config(path: str | Path) -> Iterator[PluginManager]:
    """Load a plugin config file and make it the hook sink for the block."""
    with use_plugin_manager(load_plugin_manager_from_file(path)) as manager:
        yield manager


def reset_plugin_runtime_cache() -> None:
    """Forget managers loaded from ``SNAPSHOT_PLUGIN_CONFIG`` so the next lookup reloads."""
    _LOADED_FROM_ENV.clear()
