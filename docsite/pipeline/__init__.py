"""Build stages run by the orchestrator."""

from .finalize import FinalizeStage
from .graphs import GraphStage
from .render import RenderStage
from .tasks import TaskList

__all__ = ["FinalizeStage", "GraphStage", "RenderStage", "TaskList"]
