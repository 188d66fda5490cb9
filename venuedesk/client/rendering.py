"""View models (and an HTML fragment) for a status control"""

import html
from dataclasses import dataclass
from typing import Union

from ..statuses import DEFAULT_STATUS_STYLE, PENDING, STATUS_STYLES, EntityKind
from .control import ControlState

BADGE_CLASSES = "inline-flex items-center justify-center rounded-full px-3 py-1 text-sm font-medium"
BUTTON_CLASSES = "rounded-full px-3 py-1 text-sm font-medium text-white transition-colors"
SPINNER_HTML = '<svg class="ml-2 h-4 w-4 animate-spin text-current" aria-label="loading"></svg>'


@dataclass(frozen=True)
class StatusBadge:
    """Read-only badge for any settled status"""

    status: str
    label: str
    css_class: str
    busy: bool


@dataclass(frozen=True)
class ActionButton:
    action: str
    target_status: str
    label: str
    css_class: str
    disabled: bool


@dataclass(frozen=True)
class ActionButtons:
    approve: ActionButton
    reject: ActionButton


View = Union[StatusBadge, ActionButtons]


def render(kind: EntityKind, state: ControlState) -> View:
    if state.current_status != PENDING:
        return StatusBadge(
            status=state.current_status,
            label=state.current_status.capitalize(),
            css_class=STATUS_STYLES.get(state.current_status, DEFAULT_STATUS_STYLE),
            busy=state.busy,
        )

    disabled = state.loading or state.refreshing
    processing = "Processing..." if state.loading else None
    return ActionButtons(
        approve=ActionButton(
            action="approve",
            target_status=kind.approve_status,
            label=processing or "Approve",
            css_class="bg-gray-400" if disabled else "bg-green-600 hover:bg-green-700",
            disabled=disabled,
        ),
        reject=ActionButton(
            action="reject",
            target_status=kind.reject_status,
            label=processing or "Reject",
            css_class="bg-gray-400" if disabled else "bg-red-600 hover:bg-red-700",
            disabled=disabled,
        ),
    )


def to_html(view: View) -> str:
    if isinstance(view, StatusBadge):
        spinner = SPINNER_HTML if view.busy else ""
        return (
            f'<span class="{BADGE_CLASSES} {view.css_class}">'
            f"{html.escape(view.label)}{spinner}</span>"
        )

    buttons = []
    for button in (view.approve, view.reject):
        disabled = " disabled" if button.disabled else ""
        buttons.append(
            f'<button class="{BUTTON_CLASSES} {button.css_class}" '
            f'data-action="{button.action}"{disabled}>{html.escape(button.label)}</button>'
        )
    return f'<div class="flex items-center gap-2">{"".join(buttons)}</div>'


def to_text(view: View) -> str:
    """Terminal rendering used by the CLI"""
    if isinstance(view, StatusBadge):
        return f"[{view.label}]" + (" ⏳" if view.busy else "")
    state = " (disabled)" if view.approve.disabled else ""
    return f"< {view.approve.label} > < {view.reject.label} >{state}"
