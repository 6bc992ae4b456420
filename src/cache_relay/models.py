# SPDX-License-Identifier: MIT
"""Core data models for cache relay."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .constants import AUXILIARY_OPTION_KEYS
from .enums import ClearMethod, SkipReason, SyncStatus
from .exceptions import MalformedRecordError


class ClearEvent(BaseModel):
    """One discrete local cache-clear operation."""

    method: ClearMethod = Field(..., description="Cache-clear operation name")
    data: dict[str, Any] = Field(
        default_factory=dict, description="Method-specific payload"
    )

    @model_validator(mode="after")
    def _check_payload(self) -> "ClearEvent":
        if self.method == ClearMethod.CLEAR_ALL:
            self.data = {}
            return self

        page_id = self.data.get("pageId")
        if isinstance(page_id, bool) or page_id is None:
            raise ValueError(f"{self.method.value} requires a pageId")
        if isinstance(page_id, float) and not page_id.is_integer():
            raise ValueError(f"Invalid pageId: {page_id!r}")
        try:
            self.data["pageId"] = int(page_id)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid pageId: {page_id!r}") from e

        if self.method == ClearMethod.CLEAR_PAGE:
            options = self.data.get("options") or {}
            if not isinstance(options, dict):
                raise ValueError("clearPage options must be a mapping")
            for key in AUXILIARY_OPTION_KEYS:
                paths = options.get(key)
                if paths is None:
                    continue
                if not isinstance(paths, list) or not all(
                    isinstance(path, str) for path in paths
                ):
                    raise ValueError(f"clearPage {key} must be a list of strings")
            self.data["options"] = options
        return self

    @classmethod
    def clear_all(cls) -> "ClearEvent":
        return cls(method=ClearMethod.CLEAR_ALL)

    @classmethod
    def clear_behaviors(cls, page_id: int) -> "ClearEvent":
        return cls(method=ClearMethod.CLEAR_BEHAVIORS, data={"pageId": page_id})

    @classmethod
    def clear_page(
        cls, page_id: int, options: dict[str, Any] | None = None
    ) -> "ClearEvent":
        return cls(
            method=ClearMethod.CLEAR_PAGE,
            data={"pageId": page_id, "options": dict(options or {})},
        )

    @property
    def page_id(self) -> int | None:
        """Page id for page-scoped events, None for clearAll."""
        return self.data.get("pageId")

    @property
    def options(self) -> dict[str, Any]:
        """clearPage options, empty for other methods."""
        return dict(self.data.get("options") or {})

    def engine_options(self) -> dict[str, Any]:
        """clearPage options without the auxiliary filesystem lists."""
        return {
            key: value
            for key, value in self.options.items()
            if key not in AUXILIARY_OPTION_KEYS
        }


class EventBatch(BaseModel):
    """Clear events accumulated during one request, tagged with their origin.

    Serialized as ``{"id": "<instanceId>", "cleared": [...]}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    instance_id: str = Field(..., alias="id", min_length=1)
    events: list[ClearEvent] = Field(..., alias="cleared", min_length=1)

    def to_payload(self) -> str:
        """Serialize the batch for the shared log."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_payload(
        cls, payload: str | bytes, sequence_id: int | None = None
    ) -> "EventBatch":
        """Parse a log payload.

        Raises:
            MalformedRecordError: If the payload is not a valid batch
        """
        try:
            return cls.model_validate_json(payload)
        except ValidationError as e:
            raise MalformedRecordError(
                f"Malformed sync payload: {e.error_count()} validation error(s)",
                sequence_id=sequence_id,
            ) from e


class LogRecord(BaseModel):
    """One row of the shared event log."""

    sequence_id: int = Field(..., description="Store-assigned row id")
    timestamp: float = Field(..., description="Store-assigned insert time (epoch)")
    batch: EventBatch


class Page(BaseModel):
    """A page resolved through the page lookup collaborator."""

    id: int = Field(..., gt=0)
    path: str | None = Field(None, description="URL path of the page, if known")


class BehaviorCounts(BaseModel):
    """Blast radius reported by a behavior-based clear."""

    children: int = Field(0, ge=0)
    family: int = Field(0, ge=0)
    site: int = Field(0, ge=0)


class ReconciliationResult(BaseModel):
    """Outcome of one reconciliation pass."""

    status: SyncStatus
    reason: SkipReason | str | None = None
    replayed: list[ClearEvent] = Field(default_factory=list)
    records_read: int = 0
    records_skipped: int = 0
    records_pruned: int = 0
    failures: int = 0

    @classmethod
    def skipped(cls, reason: SkipReason) -> "ReconciliationResult":
        return cls(status=SyncStatus.SKIPPED, reason=reason)
