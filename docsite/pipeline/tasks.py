"""Ordered asynchronous task list used to sequence build stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Tuple

from ..logging import get_logger

Task = Callable[[], Awaitable[Any]]


@dataclass
class TaskList:
    """Runs named tasks strictly one after another.

    The first failing task stops the list and its exception propagates to
    the caller; later tasks never start.
    """

    name: str
    tasks: List[Tuple[str, Task]] = field(default_factory=list)

    def add(self, name: str, task: Task) -> "TaskList":
        self.tasks.append((name, task))
        return self

    def names(self) -> List[str]:
        return [name for name, _ in self.tasks]

    async def run(self) -> None:
        logger = get_logger("pipeline")
        for name, task in self.tasks:
            logger.debug("%s: %s", self.name, name)
            await task()

    def __len__(self) -> int:
        return len(self.tasks)


__all__ = ["Task", "TaskList"]
