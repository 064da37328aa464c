"""Keeps the power controls mounted next to the host page's anchor button."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from . import constants
from .controls import (
    DEFAULT_CONTROL_SPECS,
    ActivateCallback,
    ConfirmCallback,
    ControlSpec,
    build_control,
)
from .dom import Document, Element, MutationRecord, MutationSubscription

LOGGER = logging.getLogger(__name__)


def find_anchor(document: Document, label: str) -> Optional[Element]:
    """Return the first button whose trimmed text is exactly ``label``."""
    for button in document.query_selector_all("button"):
        if button.text_content.strip() == label:
            return button
    return None


def controls_present(document: Document, control_ids: Sequence[str]) -> bool:
    return any(document.get_element_by_id(control_id) is not None for control_id in control_ids)


def inject_controls(
    document: Document,
    specs: Sequence[ControlSpec] = DEFAULT_CONTROL_SPECS,
    *,
    activate: ActivateCallback,
    confirm: ConfirmCallback,
    anchor_label: str = constants.ANCHOR_LABEL,
) -> bool:
    """Insert one wrapped control per spec after the anchor's container.

    Everything is re-read from the document on each call: if the anchor is
    missing, or any of the control ids already exists, nothing is done. The
    check and the insertion run without yielding to the event loop, so two
    mutation callbacks can never both pass the check.

    Returns True when controls were inserted.
    """

    anchor = find_anchor(document, anchor_label)
    if anchor is None:
        LOGGER.debug("%s button not found yet", anchor_label)
        return False

    if controls_present(document, [spec.control_id for spec in specs]):
        return False

    container = anchor.parent
    if container is None or container.parent is None:
        LOGGER.debug("%s button has no container to insert after", anchor_label)
        return False

    insert_point = container
    for spec in specs:
        control = build_control(anchor, spec, activate=activate, confirm=confirm)
        wrapper = container.clone(deep=False)
        wrapper.append_child(control)
        container.parent.insert_after(wrapper, insert_point)
        insert_point = wrapper

    LOGGER.info("Injected %d controls after %s", len(specs), anchor_label)
    return True


class MountObserver:
    """Re-injects the controls whenever the host page re-renders without them.

    Purely reactive: there is no polling or scheduled retry. Each mutation
    batch triggers one :func:`inject_controls` evaluation.
    """

    def __init__(
        self,
        document: Document,
        specs: Sequence[ControlSpec] = DEFAULT_CONTROL_SPECS,
        *,
        activate: ActivateCallback,
        confirm: ConfirmCallback,
        anchor_label: str = constants.ANCHOR_LABEL,
    ) -> None:
        self._document = document
        self._specs = tuple(specs)
        self._activate = activate
        self._confirm = confirm
        self.anchor_label = anchor_label
        self.injections = 0
        self._subscription: Optional[MutationSubscription] = None

    @property
    def running(self) -> bool:
        return self._subscription is not None

    def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = self._document.observe(self._on_mutations)
        LOGGER.info("Watching document for %s button", self.anchor_label)
        self.ensure_mounted()

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.disconnect()
            self._subscription = None

    def ensure_mounted(self) -> bool:
        injected = inject_controls(
            self._document,
            self._specs,
            activate=self._activate,
            confirm=self._confirm,
            anchor_label=self.anchor_label,
        )
        if injected:
            self.injections += 1
        return injected

    def _on_mutations(self, records: list[MutationRecord]) -> None:
        LOGGER.debug("Received %d mutation records", len(records))
        self.ensure_mounted()
