from pathlib import Path

import pytest

from kvm_switchbot import constants
from kvm_switchbot.config import CredentialStore
from kvm_switchbot.dom import Document, Element


def build_toolbar(document: Document, anchor_label: str = constants.ANCHOR_LABEL) -> Element:
    """Build a toolbar shaped like the KVM panel's: wrapper > button > div.flex > svg + span."""
    toolbar = document.create_element("div", classes=["toolbar"])
    for label in ("Paste text", anchor_label, "Settings"):
        wrapper = document.create_element(
            "div", classes=["toolbar-item"], attributes={"data-slot": "item"}
        )
        button = document.create_element("button", classes=["btn", "btn-ghost"])
        row = document.create_element("div", classes=["flex", "items-center", "gap-x-2"])
        row.append_child(document.create_element("svg", classes=["icon"]))
        row.append_child(document.create_element("span", text=label))
        button.append_child(row)
        wrapper.append_child(button)
        toolbar.append_child(wrapper)
    return toolbar


class FakePrompt:
    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.alerts: list[str] = []
        self.confirmations: list[str] = []

    def alert(self, message: str) -> None:
        self.alerts.append(message)

    def confirm(self, message: str) -> bool:
        self.confirmations.append(message)
        return self.answer


@pytest.fixture
def document() -> Document:
    return Document()


@pytest.fixture
def host_document(document: Document) -> Document:
    document.body.append_child(build_toolbar(document))
    return document


@pytest.fixture
def prompt() -> FakePrompt:
    return FakePrompt()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "kvm-switchbot.cfg"


@pytest.fixture
def configured_store(config_path: Path) -> CredentialStore:
    store = CredentialStore(config_path)
    store.set(constants.TOKEN_KEY, "token-abc")
    store.set(constants.SECRET_KEY, "secret-xyz")
    store.set(constants.DEVICE_ID_KEY, "C0FFEE123456")
    return store
