"""Plugin subsystem: host hooks for snapshot assertion outcomes and attachments."""

from snappack.plugins.base import (
    PLUGIN_API_VERSION,
    PLUGIN_CONFIG_ENV_VAR,
    PLUGIN_CONFIG_VERSION,
    AssertionEndEvent,
    AssertionStartEvent,
    AttachmentsEvent,
    SnapshotPlugin,
)
from snappack.plugins.exceptions import PluginConfigError, PluginError, PluginLoadError
from snappack.plugins.loader import (
    PluginSpec,
    load_plugin_manager,
    load_plugin_manager_from_file,
    parse_plugin_config,
)
from snappack.plugins.manager import PluginDiagnostic, PluginManager
from snappack.plugins.reference import AssertionTracePlugin, AttachmentDirectoryPlugin
from snappack.plugins.runtime import (
    get_active_plugin_manager,
    reset_plugin_runtime_cache,
    use_plugin_manager,
    use_plugins_from_config,
)

__all__ = [
    "PLUGIN_API_VERSION",
    "PLUGIN_CONFIG_VERSION",
    "PLUGIN_CONFIG_ENV_VAR",
    "PluginError",
    "PluginConfigError",
    "PluginLoadError",
    "AssertionStartEvent",
    "AttachmentsEvent",
    "AssertionEndEvent",
    "SnapshotPlugin",
    "PluginDiagnostic",
    "PluginManager",
    "PluginSpec",
    "AssertionTracePlugin",
    "AttachmentDirectoryPlugin",
    "load_plugin_manager",
    "load_plugin_manager_from_file",
    "parse_plugin_config",
    "get_active_plugin_manager",
    "use_plugin_manager",
    "use_plugins_from_config",
    "reset_plugin_runtime_cache",
]
