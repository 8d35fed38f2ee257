"""Runtime plugin manager with fault-isolated hook dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
import warnings

from snappack.plugins.base import AssertionEndEvent, AssertionStartEvent, AttachmentsEvent


@dataclass(frozen=True, slots=True)
class PluginDiagnostic:
    plugin_name: str
    hook: str
    error_type: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "plugin_name": self.plugin_name,
            "hook": self.hook,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass(slots=True)
class PluginManager:
    """Executes snapshot plugin hooks and captures plugin failures.

    A failing hook never changes the assertion outcome.
    """

    plugins: tuple[object, ...] = ()
    diagnostics: list[PluginDiagnostic] = field(default_factory=list)

    def clear_diagnostics(self) -> None:
        self.diagnostics.clear()

    def on_assertion_start(self, event: AssertionStartEvent) -> None:
        self._dispatch("on_assertion_start", event)

    def on_attachments(self, event: AttachmentsEvent) -> None:
        self._dispatch("on_attachments", event)

    def on_assertion_end(self, event: AssertionEndEvent) -> None:
        self._dispatch("on_assertion_end", event)

    def _dispatch(self, hook: str, event: object) -> None:
        for plugin in self.plugins:
            callback = getattr(plugin, hook, None)
            if callback is None:
                continue
            try:
                callback(event)
            except Exception as error:
                diagnostic = PluginDiagnostic(
                    plugin_name=_plugin_name(plugin),
                    hook=hook,
                    error_type=error.__class__.__name__,
                    message=str(error),
                )
                self.diagnostics.append(diagnostic)
                warnings.warn(
                    (
                        f"SnapKit plugin failure: plugin={diagnostic.plugin_name} "
                        f"hook={diagnostic.hook} "
                        f"error={diagnostic.error_type}: {diagnostic.message}"
                    ),
                    RuntimeWarning,
                    stacklevel=2,
                )


def _plugin_name(plugin: object) -> str:
    name = getattr(plugin, "name", plugin.__class__.__name__)
    return str(name)
