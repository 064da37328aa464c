"""Minimal host document model with batched mutation notifications.

The injected controls live in a page this package does not own. This module
models the small part of that page the core needs: an element tree with
id/class/tag lookup, structural editing, click listeners, and a
MutationObserver-style subscription that reports child insertions and
removals anywhere below ``body``.

Mutation records are batched. When an asyncio loop is running, delivery is
scheduled with ``loop.call_soon`` so callbacks run after the current
callback completes, never concurrently with each other. Without a running
loop, records stay queued until :meth:`Document.flush_mutations` is called.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Sequence

LOGGER = logging.getLogger(__name__)

_SELECTOR_RE = re.compile(r"^(?P<tag>[a-zA-Z][\w-]*)?(?P<rest>(?:[.#][\w-]+)*)$")


@dataclass(slots=True)
class Event:
    type: str
    target: "Element"


EventListener = Callable[[Event], None]


@dataclass(frozen=True, slots=True)
class MutationRecord:
    target: "Element"
    added: tuple["Element", ...] = ()
    removed: tuple["Element", ...] = ()


MutationCallback = Callable[[list[MutationRecord]], None]


@dataclass(frozen=True, slots=True)
class _Selector:
    tag: Optional[str] = None
    element_id: Optional[str] = None
    classes: tuple[str, ...] = field(default_factory=tuple)

    def matches(self, element: "Element") -> bool:
        if self.tag is not None and element.tag != self.tag:
            return False
        if self.element_id is not None and element.id != self.element_id:
            return False
        return all(element.has_class(name) for name in self.classes)


def _parse_selector(selector: str) -> _Selector:
    match = _SELECTOR_RE.match(selector.strip())
    if match is None or not selector.strip():
        raise ValueError(f"Unsupported selector: {selector!r}")

    element_id: Optional[str] = None
    classes: list[str] = []
    for token in re.findall(r"[.#][\w-]+", match.group("rest")):
        if token[0] == "#":
            element_id = token[1:]
        else:
            classes.append(token[1:])

    tag = match.group("tag")
    return _Selector(
        tag=tag.lower() if tag else None,
        element_id=element_id,
        classes=tuple(classes),
    )


class Element:
    """A node of the host document: tag, attributes, own text and children."""

    def __init__(
        self,
        tag: str,
        *,
        attributes: Optional[dict[str, str]] = None,
        text: str = "",
        document: Optional["Document"] = None,
    ) -> None:
        self.tag = tag.lower()
        self.attributes: dict[str, str] = dict(attributes or {})
        self.text = text
        self.children: list[Element] = []
        self.parent: Optional[Element] = None
        self.document = document
        self._listeners: dict[str, list[EventListener]] = {}

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        return f"<Element {self.tag}{ident}>"

    @property
    def id(self) -> str:
        return self.attributes.get("id", "")

    @id.setter
    def id(self, value: str) -> None:
        self.attributes["id"] = value

    @property
    def class_list(self) -> list[str]:
        return self.attributes.get("class", "").split()

    def has_class(self, name: str) -> bool:
        return name in self.class_list

    def add_class(self, *names: str) -> None:
        classes = self.class_list
        for name in names:
            if name not in classes:
                classes.append(name)
        self.attributes["class"] = " ".join(classes)

    @property
    def first_child(self) -> Optional[Element]:
        return self.children[0] if self.children else None

    @property
    def text_content(self) -> str:
        return self.text + "".join(child.text_content for child in self.children)

    @text_content.setter
    def text_content(self, value: str) -> None:
        removed = tuple(self.children)
        for child in removed:
            child.parent = None
        self.children = []
        self.text = value
        if removed:
            self._record(removed=removed)

    @property
    def is_connected(self) -> bool:
        if self.document is None:
            return False
        node: Element = self
        while node.parent is not None:
            node = node.parent
        return node is self.document.body

    def iter_descendants(self) -> Iterator[Element]:
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def query_selector_all(self, selector: str) -> list[Element]:
        parsed = _parse_selector(selector)
        return [node for node in self.iter_descendants() if parsed.matches(node)]

    def query_selector(self, selector: str) -> Optional[Element]:
        parsed = _parse_selector(selector)
        for node in self.iter_descendants():
            if parsed.matches(node):
                return node
        return None

    def append_child(self, child: Element) -> Element:
        return self.insert_before(child, None)

    def insert_before(self, child: Element, reference: Optional[Element]) -> Element:
        if child is self or child in self._ancestors():
            raise ValueError("Cannot insert an element into its own subtree")
        if reference is not None and reference.parent is not self:
            raise ValueError("Reference element is not a child of this element")

        if child.parent is not None:
            child.parent.remove_child(child)

        index = len(self.children) if reference is None else self.children.index(reference)
        self.children.insert(index, child)
        child.parent = self
        child._adopt(self.document)
        self._record(added=(child,))
        return child

    def insert_after(self, child: Element, reference: Element) -> Element:
        if reference.parent is not self:
            raise ValueError("Reference element is not a child of this element")
        index = self.children.index(reference)
        following = self.children[index + 1] if index + 1 < len(self.children) else None
        return self.insert_before(child, following)

    def remove_child(self, child: Element) -> Element:
        if child.parent is not self:
            raise ValueError("Element is not a child of this element")
        self.children.remove(child)
        child.parent = None
        self._record(removed=(child,))
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def clone(self, deep: bool = True) -> Element:
        """Copy tag, attributes and text; listeners are never copied."""
        copy = Element(
            self.tag,
            attributes=self.attributes,
            text=self.text,
            document=self.document,
        )
        if deep:
            for child in self.children:
                clone = child.clone(deep=True)
                copy.children.append(clone)
                clone.parent = copy
        return copy

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def dispatch_event(self, event_type: str) -> None:
        event = Event(type=event_type, target=self)
        for listener in list(self._listeners.get(event_type, ())):
            listener(event)

    def click(self) -> None:
        self.dispatch_event("click")

    def _ancestors(self) -> Iterator[Element]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def _adopt(self, document: Optional["Document"]) -> None:
        if document is None or self.document is document:
            return
        self.document = document
        for child in self.children:
            child._adopt(document)

    def _record(
        self,
        *,
        added: Sequence[Element] = (),
        removed: Sequence[Element] = (),
    ) -> None:
        if self.document is not None and self.is_connected:
            self.document._queue(
                MutationRecord(target=self, added=tuple(added), removed=tuple(removed))
            )


class MutationSubscription:
    """Handle returned by :meth:`Document.observe`."""

    def __init__(self, document: "Document", callback: MutationCallback) -> None:
        self._document = document
        self.callback = callback
        self.active = True

    def disconnect(self) -> None:
        if self.active:
            self.active = False
            self._document._unsubscribe(self)


class Document:
    def __init__(self) -> None:
        self.body = Element("body", document=self)
        self._subscriptions: list[MutationSubscription] = []
        self._pending: list[MutationRecord] = []
        self._delivery_scheduled = False

    def create_element(
        self,
        tag: str,
        *,
        text: str = "",
        attributes: Optional[dict[str, str]] = None,
        classes: Sequence[str] = (),
    ) -> Element:
        element = Element(tag, attributes=attributes, text=text, document=self)
        if classes:
            element.add_class(*classes)
        return element

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        for node in self.body.iter_descendants():
            if node.id == element_id:
                return node
        return None

    def query_selector_all(self, selector: str) -> list[Element]:
        return self.body.query_selector_all(selector)

    def query_selector(self, selector: str) -> Optional[Element]:
        return self.body.query_selector(selector)

    def observe(self, callback: MutationCallback) -> MutationSubscription:
        """Subscribe to child insertions and removals at any depth below ``body``."""
        subscription = MutationSubscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    @property
    def pending_mutations(self) -> int:
        return len(self._pending)

    def flush_mutations(self) -> int:
        """Deliver queued records now; returns how many were delivered."""
        return self._deliver()

    def _unsubscribe(self, subscription: MutationSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        if not self._subscriptions:
            self._pending.clear()

    def _queue(self, record: MutationRecord) -> None:
        if not self._subscriptions:
            return
        self._pending.append(record)
        self._schedule_delivery()

    def _schedule_delivery(self) -> None:
        if self._delivery_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._delivery_scheduled = True
        loop.call_soon(self._deliver)

    def _deliver(self) -> int:
        self._delivery_scheduled = False
        records, self._pending = self._pending, []
        if not records:
            return 0

        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.callback(list(records))
            except Exception:
                LOGGER.exception("Mutation callback failed")
        return len(records)
