"""Pydantic schemas for the NFT sync progress stream."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes snake_case fields as camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProgressData(CamelModel):
    """Partial counters attached to a progress event."""

    total_supply: int | None = None
    processed: int | None = None
    updated: int | None = None
    skipped: int | None = None
    not_minted: int | None = None
    percentage: int | None = None
    current_id: int | None = None


class CompleteData(CamelModel):
    """Final counters of one sync invocation."""

    total_supply: int
    processed: int
    updated: int = 0
    skipped: int = 0
    not_minted: int = 0
    resolution_failed: int = 0
    errors: list[str] = Field(default_factory=list)
    errors_dropped: int = 0
    has_more: bool = False
    next_token_id: int | None = None


class ProgressEvent(BaseModel):
    """Informational update; never ends the stream."""

    type: Literal["progress"] = "progress"
    message: str
    data: ProgressData | None = None


class CompleteEvent(BaseModel):
    """Terminal success event."""

    type: Literal["complete"] = "complete"
    message: str
    data: CompleteData


class ErrorEvent(BaseModel):
    """Terminal failure event."""

    type: Literal["error"] = "error"
    message: str


SyncEvent = Annotated[
    ProgressEvent | CompleteEvent | ErrorEvent,
    Field(discriminator="type"),
]

sync_event_adapter: TypeAdapter[SyncEvent] = TypeAdapter(SyncEvent)


def is_terminal(event: ProgressEvent | CompleteEvent | ErrorEvent) -> bool:
    return event.type != "progress"


class CheckpointOut(CamelModel):
    """Current resume cursor of the sync pipeline."""

    last_token_id: int | None
    updated_at: str | None = None


class MissingTokensOut(CamelModel):
    """Token ids without a mirrored row."""

    total_checked: int
    existing_count: int
    missing_count: int
    missing_token_ids: list[int]
    missing_ranges: list[str]
    first_missing: int | None
    percent_complete: str
