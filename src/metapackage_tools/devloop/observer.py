"""Line-oriented observers for streamed process output."""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

LinePattern = Union[str, re.Pattern, Callable[[str], bool]]
LineAction = Callable[[str], Union[Awaitable[None], None]]


@dataclass(slots=True)
class LineRule:
    """A ``(pattern, action)`` pair evaluated once per received line."""

    pattern: LinePattern
    action: LineAction

    def matches(self, line: str) -> bool:
        pattern = self.pattern
        if isinstance(pattern, str):
            return pattern in line
        if isinstance(pattern, re.Pattern):
            return pattern.search(line) is not None
        return bool(pattern(line))


class LineObserver:
    """Dispatches each line to every matching rule in registration order.

    A string pattern matches as a substring, a compiled regex with ``search``
    and a callable as a predicate. Async actions are awaited before the next
    rule runs, so one stream never has two actions in flight.
    """

    def __init__(self) -> None:
        self._rules: list[LineRule] = []

    def on(self, pattern: LinePattern, action: LineAction) -> "LineObserver":
        self._rules.append(LineRule(pattern, action))
        return self

    @property
    def rules(self) -> list[LineRule]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    async def dispatch(self, line: str) -> None:
        for rule in self._rules:
            if not rule.matches(line):
                continue
            result = rule.action(line)
            if inspect.isawaitable(result):
                await result


__all__ = ["LineAction", "LineObserver", "LinePattern", "LineRule"]
