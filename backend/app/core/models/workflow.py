from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import ConfigDict, Discriminator, Field, field_validator, model_validator
from pydantic import Tag as UnionTag

from .base import AppBaseModel, TimestampedModel


class MatchMode(str, Enum):
    CONTAINS = "contains"
    EQUALS = "equals"
    REGEX = "regex"


class KeywordField(str, Enum):
    TITLE = "title"
    DESCRIPTION = "description"
    BOTH = "both"


class ConditionLogic(str, Enum):
    AND = "AND"
    OR = "OR"


class EventType(str, Enum):
    """Lifecycle events. The call site guarantees the event occurred."""

    BOOKMARK_CREATED = "bookmark_created"
    BOOKMARK_UPDATED = "bookmark_updated"
    BOOKMARK_DELETED = "bookmark_deleted"
    TITLE_CHANGED = "title_changed"
    DESCRIPTION_ADDED = "description_added"
    BOOKMARK_TAGGED = "bookmark_tagged"


EVENT_TRIGGER_TYPES = frozenset(e.value for e in EventType)


class _StoredConfig(AppBaseModel):
    # Stored configs may carry keys written by other clients.
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _PatternConfig(_StoredConfig):
    match_mode: MatchMode = MatchMode.CONTAINS
    value: str = ""

    @model_validator(mode="after")
    def check_pattern(self):
        if self.match_mode is MatchMode.REGEX:
            try:
                re.compile(self.value)
            except re.error as err:
                raise ValueError(f"Invalid regular expression {self.value!r}: {err}") from err
        return self


class UrlMatchConfig(_PatternConfig):
    pass


class KeywordMatchConfig(_PatternConfig):
    field: KeywordField = KeywordField.TITLE
    case_sensitive: bool = False


class MoveToFolderConfig(_StoredConfig):
    folder_id: int


class UrlMatchTrigger(AppBaseModel):
    trigger_type: Literal["url_match"] = "url_match"
    config: UrlMatchConfig = Field(default_factory=UrlMatchConfig)


class KeywordMatchTrigger(AppBaseModel):
    trigger_type: Literal["keyword_match"] = "keyword_match"
    config: KeywordMatchConfig = Field(default_factory=KeywordMatchConfig)


class EventTrigger(AppBaseModel):
    trigger_type: EventType
    config: dict[str, Any] = Field(default_factory=dict)


class UnknownTrigger(AppBaseModel):
    """Trigger type this version does not understand. Always evaluates false."""

    trigger_type: str
    config: dict[str, Any] = Field(default_factory=dict)


class MoveToFolderAction(AppBaseModel):
    action_type: Literal["move_to_folder"] = "move_to_folder"
    config: MoveToFolderConfig


class UnknownAction(AppBaseModel):
    """Action type this version does not understand. Executes as a no-op."""

    action_type: str
    config: dict[str, Any] = Field(default_factory=dict)


def _kind_of(value: Any, key: str) -> Any:
    kind = value.get(key) if isinstance(value, dict) else getattr(value, key, None)
    return kind.value if isinstance(kind, Enum) else kind


def _trigger_kind(value: Any) -> str:
    kind = _kind_of(value, "trigger_type")
    if kind in ("url_match", "keyword_match"):
        return kind
    if kind in EVENT_TRIGGER_TYPES:
        return "event"
    return "unknown"


def _action_kind(value: Any) -> str:
    return "move_to_folder" if _kind_of(value, "action_type") == "move_to_folder" else "unknown"


Trigger = Annotated[
    Union[
        Annotated[UrlMatchTrigger, UnionTag("url_match")],
        Annotated[KeywordMatchTrigger, UnionTag("keyword_match")],
        Annotated[EventTrigger, UnionTag("event")],
        Annotated[UnknownTrigger, UnionTag("unknown")],
    ],
    Discriminator(_trigger_kind),
]

Action = Annotated[
    Union[
        Annotated[MoveToFolderAction, UnionTag("move_to_folder")],
        Annotated[UnknownAction, UnionTag("unknown")],
    ],
    Discriminator(_action_kind),
]


class WorkflowCreate(AppBaseModel):
    """Input for creating a workflow or replacing one wholesale."""

    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    enabled: bool = True
    condition_logic: ConditionLogic = ConditionLogic.OR
    triggers: list[Trigger] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise ValueError("Workflow name is required")
        return name

    @field_validator("condition_logic", mode="before")
    @classmethod
    def default_logic(cls, v: Any) -> Any:
        if v is None or v == "":
            return ConditionLogic.OR
        return v.upper() if isinstance(v, str) else v


class Workflow(TimestampedModel):
    """Persisted workflow. Triggers and actions are only replaced wholesale."""

    id: int
    name: str
    description: str = ""
    enabled: bool = True
    priority: int = 0
    condition_logic: ConditionLogic = ConditionLogic.OR
    triggers: list[Trigger] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)

    @field_validator("condition_logic", mode="before")
    @classmethod
    def coerce_logic(cls, v: Any) -> Any:
        # Anything other than AND combines with OR.
        if isinstance(v, str) and v.upper() == "AND":
            return ConditionLogic.AND
        if v is ConditionLogic.AND:
            return v
        return ConditionLogic.OR
