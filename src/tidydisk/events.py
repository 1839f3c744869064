"""Progress events sent from the background worker to the foreground."""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from tidydisk.models import CategoryTag, RunSummary


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class CategoryStarted(_Event):
    kind: Literal["category_started"] = "category_started"
    category: CategoryTag


class CategoryFinished(_Event):
    kind: Literal["category_finished"] = "category_finished"
    category: CategoryTag
    items: int = 0
    bytes: int = 0
    error: Optional[str] = None


class ChunkCompleted(_Event):
    kind: Literal["chunk_completed"] = "chunk_completed"
    category: CategoryTag
    count: int = Field(0, description="Items removed in this chunk")
    bytes: int = 0
    failed: int = 0
    skipped: int = 0


class OperationTimedOut(_Event):
    kind: Literal["operation_timed_out"] = "operation_timed_out"
    operation: str
    category: Optional[CategoryTag] = None


class Cancelled(_Event):
    kind: Literal["cancelled"] = "cancelled"
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    bytes_freed: int = 0
    summary: Optional[RunSummary] = None


class Finished(_Event):
    kind: Literal["finished"] = "finished"
    summary: RunSummary


class WorkerFailed(_Event):
    kind: Literal["worker_failed"] = "worker_failed"
    error: str


ProgressEvent = Annotated[
    Union[
        CategoryStarted,
        CategoryFinished,
        ChunkCompleted,
        OperationTimedOut,
        Cancelled,
        Finished,
        WorkerFailed,
    ],
    Field(discriminator="kind"),
]

TERMINAL_EVENTS = (Cancelled, Finished, WorkerFailed)
