"""Construction of the injected power controls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from . import constants
from .dispatcher import Command
from .dom import Element, Event

LOGGER = logging.getLogger(__name__)

ICON_CLASSES = ("shrink-0", "justify-start", "text-black", "dark:text-white")
ICON_STYLE = "font-size: 16px; font-weight: bold; display: inline-block"

ActivateCallback = Callable[[Command], None]
ConfirmCallback = Callable[[str], bool]


@dataclass(frozen=True, slots=True)
class ControlSpec:
    control_id: str
    label: str
    icon: str
    command: Command
    requires_confirmation: bool = False


POWER_ON_SPEC = ControlSpec(
    control_id=constants.POWER_ON_BUTTON_ID,
    label=constants.POWER_ON_LABEL,
    icon=constants.POWER_ON_ICON,
    command=Command.TURN_ON,
    requires_confirmation=False,
)

POWER_OFF_SPEC = ControlSpec(
    control_id=constants.POWER_OFF_BUTTON_ID,
    label=constants.POWER_OFF_LABEL,
    icon=constants.POWER_OFF_ICON,
    command=Command.TURN_OFF,
    requires_confirmation=True,
)

DEFAULT_CONTROL_SPECS: tuple[ControlSpec, ...] = (POWER_ON_SPEC, POWER_OFF_SPEC)


def confirmation_message(label: str) -> str:
    return f'Are you sure you want to send the "{label}" command? This is a 6-second press.'


def build_control(
    template: Element,
    spec: ControlSpec,
    *,
    activate: ActivateCallback,
    confirm: ConfirmCallback,
) -> Element:
    """Clone ``template`` into a new control bound to ``spec.command``.

    The clone keeps the template's classes and structure. Its first ``span``
    gets the new label, the template's ``svg`` icon is dropped, and a text
    glyph is prepended to the ``div.flex`` container. Listeners registered on
    the template by the host page are not carried over.
    """

    control = template.clone(deep=True)
    control.id = spec.control_id

    label_span = control.query_selector("span")
    if label_span is not None:
        label_span.text_content = spec.label

    svg = control.query_selector("svg")
    if svg is not None:
        svg.remove()

    icon = Element(
        "span",
        attributes={"style": ICON_STYLE},
        text=spec.icon,
        document=template.document,
    )
    icon.add_class(*ICON_CLASSES)

    container = control.query_selector("div.flex")
    if container is not None:
        container.insert_before(icon, container.first_child)

    def on_click(_event: Event) -> None:
        if spec.requires_confirmation:
            if not confirm(confirmation_message(spec.label)):
                LOGGER.info("Confirmation declined for [%s]", spec.command.value)
                return
        activate(spec.command)

    control.add_event_listener("click", on_click)
    return control
