"""Messages exchanged between the editing host and preview frames.

Every message is ``{"type": ..., "payload": {...}}`` with camelCase payload
keys. Payload models below validate the frame-originated shapes.
"""

from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from draftboard.models import ParentLayout, WireModel


class MessageType(str, Enum):
    # host -> frame
    INSPECTION_MODE = "inspection-mode"
    FLOW_MODE_STATE = "flow-mode-state"
    FIND_DROP_TARGET = "find-drop-target"
    INSERT_PLACEHOLDER = "insert-placeholder"
    REMOVE_PLACEHOLDER = "remove-placeholder"
    # frame -> host
    INSPECTOR_READY = "inspector-ready"
    ELEMENT_SELECTED = "element-selected"
    SELECTION_REVALIDATED = "selection-revalidated"
    DROP_TARGET_FOUND = "drop-target-found"
    KEYBOARD_EVENT = "keyboard-event"
    NAVIGATION_INTENT = "navigation-intent"


PayloadT = TypeVar("PayloadT", bound=BaseModel)


class Message(BaseModel):
    type: MessageType
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def of(cls, type: MessageType, payload: BaseModel | None = None) -> "Message":
        body = payload.model_dump(by_alias=True, exclude_none=True) if payload is not None else {}
        return cls(type=type, payload=body)

    def parse_payload(self, model: type[PayloadT]) -> PayloadT:
        return model.model_validate(self.payload)


class ToggleState(WireModel):
    enabled: bool


class DropTargetQuery(WireModel):
    x: float
    y: float


class PlaceholderPayload(WireModel):
    x: float
    y: float
    component_name: str


class KeyboardEventPayload(WireModel):
    key: str
    parent_layout: ParentLayout | None = None
    selection_id: str | None = None
    page_id: str | None = None


class NavigationIntent(WireModel):
    target_route: str
    source_route: str | None = None
    page_id: str | None = None
