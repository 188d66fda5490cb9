"""Client-side status controls for bookings and facilities"""

from .api import StatusApiClient, UpdateResponse
from .control import ControlState, ControlTimings, Phase, StatusActionControl
from .rendering import render, to_html
from .storage import LocalStatusStore

__all__ = [
    "ControlState",
    "ControlTimings",
    "LocalStatusStore",
    "Phase",
    "StatusActionControl",
    "StatusApiClient",
    "UpdateResponse",
    "render",
    "to_html",
]
