"""Map-widget signals and controller states."""

from __future__ import annotations

from enum import StrEnum


class ViewportSignal(StrEnum):
    LOAD = "load"
    CAMERA_CHANGE_START = "camera_change_start"
    CAMERA_IDLE = "camera_idle"
    VIEWPORT_SETTLED = "viewport_settled"


class ControllerState(StrEnum):
    IDLE = "idle"
    LOADED_STABLE = "loaded_stable"
    LOADED_CHANGING = "loaded_changing"
    UPDATING = "updating"
