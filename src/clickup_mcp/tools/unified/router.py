"""Action routing for the unified tools.

A unified tool exposes one MCP entry point with an ``action`` parameter;
the router maps that action (or one of its aliases) to a handler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence


class ActionRouterError(ValueError):
    """Raised when an action is missing or unsupported.

    Attributes:
        action: The action that was requested
        allowed_actions: Canonical action names the tool supports
    """

    def __init__(self, message: str, *, action: Optional[str], allowed_actions: Sequence[str]):
        super().__init__(message)
        self.action = action
        self.allowed_actions: List[str] = list(allowed_actions)


@dataclass(frozen=True)
class ActionDefinition:
    """One routable action.

    Attributes:
        name: Canonical action name (kebab-case)
        handler: Callable invoked with the dispatch keyword arguments
        summary: One-line description surfaced by ``describe``
        aliases: Alternate names, e.g. the snake_case spelling
    """

    name: str
    handler: Callable[..., Any]
    summary: str = ""
    aliases: Sequence[str] = field(default_factory=tuple)


class ActionRouter:
    """Maps action names to handlers for a single tool."""

    def __init__(self, *, tool_name: str, actions: Iterable[ActionDefinition]):
        self.tool_name = tool_name
        self._actions: Dict[str, ActionDefinition] = {}
        self._lookup: Dict[str, ActionDefinition] = {}

        for definition in actions:
            if definition.name in self._actions:
                raise ValueError(f"Duplicate action '{definition.name}' for tool {tool_name}")
            self._actions[definition.name] = definition
            for key in (definition.name, *definition.aliases):
                if key in self._lookup:
                    raise ValueError(f"Duplicate action '{key}' for tool {tool_name}")
                self._lookup[key] = definition

        if not self._actions:
            raise ValueError(f"Router for {tool_name} needs at least one action")

    def allowed_actions(self) -> List[str]:
        return list(self._actions)

    def describe(self) -> Dict[str, str]:
        return {name: definition.summary for name, definition in self._actions.items()}

    def dispatch(self, *, action: Optional[str], **kwargs: Any) -> Any:
        """Invoke the handler for ``action`` with ``kwargs``.

        Raises:
            ActionRouterError: If ``action`` is empty or unknown
        """
        if not action:
            raise ActionRouterError(
                f"Tool '{self.tool_name}' requires an action",
                action=action,
                allowed_actions=self.allowed_actions(),
            )

        definition = self._lookup.get(action.strip().lower())
        if definition is None:
            raise ActionRouterError(
                f"Unsupported action '{action}' for tool '{self.tool_name}'",
                action=action,
                allowed_actions=self.allowed_actions(),
            )
        return definition.handler(**kwargs)


__all__ = ["ActionDefinition", "ActionRouter", "ActionRouterError"]
