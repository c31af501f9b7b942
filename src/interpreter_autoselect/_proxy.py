"""Stand-in for the auto-selection service, usable before the real one can be built.

Configuration needs the auto-selected interpreter to resolve the interpreter path, while the service needs
configuration to be built. Configuration therefore talks to this proxy, which answers ``None`` until the service
registers itself.

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ._events import Disposable, EventEmitter

if TYPE_CHECKING:
    from ._interpreter import Interpreter
    from ._service import InterpreterAutoSelectionService
    from ._workspace import Resource


class InterpreterAutoSelectionProxyService:
    def __init__(self) -> None:
        self.on_did_change_auto_selected_interpreter = EventEmitter("on_did_change_auto_selected_interpreter")
        self._instance: InterpreterAutoSelectionService | None = None
        self._subscription: Disposable | None = None

    @property
    def registered(self) -> bool:
        return self._instance is not None

    def register_instance(self, instance: InterpreterAutoSelectionService) -> None:
        if self._instance is not None:
            msg = f"{self.__class__.__name__} already forwards to {self._instance!r}"
            raise RuntimeError(msg)
        self._instance = instance
        self._subscription = instance.on_did_change_auto_selected_interpreter.subscribe(
            self.on_did_change_auto_selected_interpreter.fire,
        )

    def get_auto_selected_interpreter(self, resource: Resource) -> Interpreter | None:
        return None if self._instance is None else self._instance.get_auto_selected_interpreter(resource)

    def dispose(self) -> None:
        if self._subscription is not None:
            self._subscription.dispose()
        self.on_did_change_auto_selected_interpreter.dispose()


__all__ = [
    "InterpreterAutoSelectionProxyService",
]
