"""Simulated input state for the reference target."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any

from mechturk.codec import Vector2

DEFAULT_INPUT_MAP: tuple[str, ...] = (
    "ui_accept",
    "ui_cancel",
    "ui_left",
    "ui_right",
    "ui_up",
    "ui_down",
)

EVENT_TYPES = ("key", "mouse_button", "mouse_motion")
MOUSE_BUTTONS = ("left", "right", "middle")


@dataclass
class InputEvent:
    event_type: str
    frame: int
    pressed: bool = True
    key: str | None = None
    keycode: int | None = None
    button: str | None = None
    position: Vector2 | None = None
    relative: Vector2 | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class InputState:
    """Keys, buttons and action strengths as last reported by injected events."""

    actions: tuple[str, ...] = DEFAULT_INPUT_MAP
    history: deque[InputEvent] = field(default_factory=lambda: deque(maxlen=256))
    pressed_keys: set[str] = field(default_factory=set)
    pressed_buttons: set[str] = field(default_factory=set)
    mouse_position: Vector2 = field(default_factory=Vector2)
    action_strengths: dict[str, float] = field(default_factory=dict)

    def has_action(self, action: str) -> bool:
        return action in self.actions

    def is_action_pressed(self, action: str) -> bool:
        return self.action_strengths.get(action, 0.0) > 0.0

    def record(self, event: InputEvent) -> None:
        if event.event_type == "key":
            name = event.key if event.key is not None else str(event.keycode)
            if event.pressed:
                self.pressed_keys.add(name)
            else:
                self.pressed_keys.discard(name)
        elif event.event_type == "mouse_button":
            if event.pressed:
                self.pressed_buttons.add(event.button or "left")
            else:
                self.pressed_buttons.discard(event.button or "left")
            if event.position is not None:
                self.mouse_position = event.position
        elif event.event_type == "mouse_motion":
            if event.position is not None:
                self.mouse_position = event.position
            elif event.relative is not None:
                self.mouse_position = Vector2(
                    x=self.mouse_position.x + event.relative.x,
                    y=self.mouse_position.y + event.relative.y,
                )
        self.history.append(event)

    def apply_action(self, action: str, pressed: bool = True, strength: float = 1.0) -> float:
        """Press or release an input-map action; returns the stored strength."""
        if not self.has_action(action):
            raise KeyError(action)
        value = min(1.0, max(0.0, float(strength))) if pressed else 0.0
        if value > 0.0:
            self.action_strengths[action] = value
        else:
            self.action_strengths.pop(action, None)
        return value
