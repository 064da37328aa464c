"""Tests for CommandDispatcher and response classification."""

import asyncio
import json
from unittest.mock import MagicMock

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from kvm_switchbot.config import ConfigurationMissingError, Credentials
from kvm_switchbot.dispatcher import (
    Command,
    CommandDispatcher,
    build_command_body,
    classify_response,
    command_url,
)
from kvm_switchbot.results import (
    CommandSuccess,
    DomainError,
    ParseError,
    TransportError,
)
from kvm_switchbot.signing import SigningError, sign

CREDENTIALS = Credentials(token="token-abc", secret="secret-xyz", device_id="C0FFEE123456")
COMMAND_PATH = "/v1.1/devices/C0FFEE123456/commands"


class TestClassifyResponse:
    def test_plain_success(self):
        raw = json.dumps({"statusCode": 100, "message": "success", "body": {}})

        result = classify_response(Command.TURN_ON, raw)

        assert isinstance(result, CommandSuccess)
        assert result.plain is True
        assert result.command == "turnOn"
        assert result.format_message() == "✅ [turnOn] Success!"

    def test_success_with_detail(self):
        payload = {"statusCode": 100, "message": "success", "body": {"x": 1}}

        result = classify_response(Command.TURN_ON, json.dumps(payload))

        assert isinstance(result, CommandSuccess)
        assert result.plain is False
        assert result.payload == payload
        assert result.format_message().startswith("✅ [turnOn] Success:\n")
        assert '"x": 1' in result.format_message()

    def test_success_with_other_message_is_detailed(self):
        payload = {"statusCode": 100, "message": "ok", "body": {}}

        result = classify_response("turnOff", json.dumps(payload))

        assert isinstance(result, CommandSuccess)
        assert result.plain is False

    def test_success_with_empty_list_body_is_plain(self):
        raw = json.dumps({"statusCode": 100, "message": "success", "body": []})

        result = classify_response("turnOn", raw)

        assert isinstance(result, CommandSuccess)
        assert result.plain is True

    def test_success_without_body_is_detailed(self):
        result = classify_response("turnOn", json.dumps({"statusCode": 100, "message": "success"}))

        assert isinstance(result, CommandSuccess)
        assert result.plain is False

    def test_domain_error(self):
        payload = {"statusCode": 190, "message": "Device internal error", "body": {}}

        result = classify_response(Command.TURN_OFF, json.dumps(payload))

        assert isinstance(result, DomainError)
        assert result.status_code == 190
        assert result.payload == payload
        assert not result.ok
        assert result.format_message().startswith("❌ [turnOff] Error:\n")

    def test_missing_status_code_is_domain_error(self):
        result = classify_response("turnOn", json.dumps({"message": "Unauthorized"}))

        assert isinstance(result, DomainError)
        assert result.status_code is None

    def test_unparsable_text(self):
        result = classify_response("turnOn", "<html>Bad Gateway</html>")

        assert isinstance(result, ParseError)
        assert result.raw == "<html>Bad Gateway</html>"
        assert result.format_message() == (
            "❌ [turnOn] Invalid JSON response:\n<html>Bad Gateway</html>"
        )

    def test_non_object_json_is_parse_error(self):
        assert isinstance(classify_response("turnOn", "[1, 2, 3]"), ParseError)

    def test_unknown_command_rejected(self):
        with pytest.raises(ValueError):
            classify_response("press", "{}")


def test_build_command_body():
    assert build_command_body(Command.TURN_OFF) == {
        "command": "turnOff",
        "parameter": "default",
        "commandType": "command",
    }


def test_command_url_strips_trailing_slash():
    assert command_url("https://api.switch-bot.com/", "ABC") == (
        "https://api.switch-bot.com/v1.1/devices/ABC/commands"
    )


def test_dispatcher_refuses_incomplete_credentials():
    with pytest.raises(ConfigurationMissingError) as excinfo:
        CommandDispatcher(Credentials(token="t", secret="", device_id="d"))

    assert excinfo.value.missing == ["secret"]


@pytest.mark.asyncio
async def test_dispatch_sends_signed_request():
    received: dict = {}

    async def handler(request: web.Request) -> web.StreamResponse:
        received["headers"] = dict(request.headers)
        received["raw"] = await request.text()
        return web.json_response({"statusCode": 100, "message": "success", "body": {}})

    app = web.Application()
    app.router.add_post(COMMAND_PATH, handler)

    async with TestServer(app) as server:
        async with CommandDispatcher(
            CREDENTIALS, base_url=str(server.make_url("/"))
        ) as dispatcher:
            result = await dispatcher.dispatch(Command.TURN_ON)

    assert isinstance(result, CommandSuccess)
    assert result.plain is True

    headers = received["headers"]
    assert headers["Authorization"] == "token-abc"
    assert headers["Content-Type"] == "application/json"
    assert headers["sign"] == sign("token-abc", "secret-xyz", int(headers["t"]), headers["nonce"])
    assert json.loads(received["raw"]) == {
        "command": "turnOn",
        "parameter": "default",
        "commandType": "command",
    }


@pytest.mark.asyncio
async def test_each_dispatch_uses_fresh_nonce():
    nonces: list[str] = []

    async def handler(request: web.Request) -> web.StreamResponse:
        nonces.append(request.headers["nonce"])
        return web.json_response({"statusCode": 100, "message": "success", "body": {}})

    app = web.Application()
    app.router.add_post(COMMAND_PATH, handler)

    async with TestServer(app) as server:
        async with CommandDispatcher(
            CREDENTIALS, base_url=str(server.make_url("/"))
        ) as dispatcher:
            await dispatcher.dispatch(Command.TURN_ON)
            await dispatcher.dispatch(Command.TURN_OFF)

    assert len(nonces) == 2
    assert nonces[0] != nonces[1]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response_factory, expected_type",
    [
        (
            lambda: web.json_response({"statusCode": 100, "message": "success", "body": {"x": 1}}),
            CommandSuccess,
        ),
        (
            lambda: web.json_response({"statusCode": 161, "message": "device offline", "body": {}}),
            DomainError,
        ),
        (
            lambda: web.json_response({"message": "Unauthorized"}, status=401),
            DomainError,
        ),
        (lambda: web.Response(status=502, text="Bad Gateway"), ParseError),
    ],
)
async def test_dispatch_classifies_server_responses(response_factory, expected_type):
    async def handler(request: web.Request) -> web.StreamResponse:
        return response_factory()

    app = web.Application()
    app.router.add_post(COMMAND_PATH, handler)

    async with TestServer(app) as server:
        async with CommandDispatcher(
            CREDENTIALS, base_url=str(server.make_url("/"))
        ) as dispatcher:
            result = await dispatcher.dispatch(Command.TURN_OFF)

    assert isinstance(result, expected_type)
    assert result.command == "turnOff"


@pytest.mark.asyncio
async def test_dispatch_network_failure_is_transport_error():
    session = MagicMock(spec=aiohttp.ClientSession)
    session.post = MagicMock(side_effect=aiohttp.ClientConnectionError("connection refused"))

    dispatcher = CommandDispatcher(CREDENTIALS, session=session)
    result = await dispatcher.dispatch(Command.TURN_ON)
    await dispatcher.aclose()

    assert isinstance(result, TransportError)
    assert "connection refused" in result.detail
    assert result.format_message().startswith("❌ Error sending [turnOn]:\n")
    session.close.assert_not_called()


@pytest.mark.asyncio
async def test_dispatch_timeout_is_transport_error():
    async def handler(request: web.Request) -> web.StreamResponse:
        await asyncio.sleep(1.0)
        return web.json_response({"statusCode": 100, "message": "success", "body": {}})

    app = web.Application()
    app.router.add_post(COMMAND_PATH, handler)

    async with TestServer(app) as server:
        async with CommandDispatcher(
            CREDENTIALS, base_url=str(server.make_url("/")), timeout_seconds=0.05
        ) as dispatcher:
            result = await dispatcher.dispatch(Command.TURN_ON)

    assert isinstance(result, TransportError)


@pytest.mark.asyncio
async def test_signing_failure_is_transport_error(monkeypatch):
    def broken_headers(*_args, **_kwargs):
        raise SigningError("key import failed")

    monkeypatch.setattr("kvm_switchbot.dispatcher.build_auth_headers", broken_headers)

    session = MagicMock(spec=aiohttp.ClientSession)
    dispatcher = CommandDispatcher(CREDENTIALS, session=session)

    result = await dispatcher.dispatch(Command.TURN_ON)

    assert isinstance(result, TransportError)
    assert "key import failed" in result.detail
    session.post.assert_not_called()
