import json

import httpx
import pytest

from lerb.errors import ApiError, CredentialError, TransportError
from lerb.telegram import HttpTransport, TelegramClient, inline_button_markup
from tests.telegram_fakes import _FakeTransport, callback_update, message_update


@pytest.mark.anyio
async def test_transport_returns_result() -> None:
    captured: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append((request.url.path, json.loads(request.content)))
        return httpx.Response(
            200, json={"ok": True, "result": {"message_id": 123}}, request=request
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpTransport("123:abc", client=client)
        result = await transport.request("sendMessage", {"chat_id": 1, "text": "hi"})

    assert result == {"message_id": 123}
    assert captured == [("/bot123:abc/sendMessage", {"chat_id": 1, "text": "hi"})]


@pytest.mark.anyio
async def test_transport_raises_api_error_on_not_ok() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401,
            json={"ok": False, "error_code": 401, "description": "Unauthorized"},
            request=request,
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpTransport("123:abc", client=client)
        with pytest.raises(ApiError) as exc_info:
            await transport.request("getMe", {})

    assert exc_info.value.description == "Unauthorized"
    assert exc_info.value.error_code == 401
    assert exc_info.value.method == "getMe"


@pytest.mark.anyio
async def test_transport_raises_on_http_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpTransport("123:abc", client=client)
        with pytest.raises(TransportError, match="HTTP 502"):
            await transport.request("getUpdates", {})


@pytest.mark.anyio
async def test_transport_raises_on_undecodable_ok_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpTransport("123:abc", client=client)
        with pytest.raises(TransportError, match="undecodable"):
            await transport.request("getUpdates", {})


@pytest.mark.anyio
async def test_transport_raises_on_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpTransport("123:abc", client=client)
        with pytest.raises(TransportError) as exc_info:
            await transport.request("getUpdates", {})

    assert not isinstance(exc_info.value, ApiError)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.anyio
async def test_transport_raises_on_token_that_breaks_the_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("request should not be sent")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpTransport("123:abc\n", client=client)
        with pytest.raises(TransportError) as exc_info:
            await transport.request("getMe", {})

        bot = TelegramClient(transport)
        with pytest.raises(CredentialError):
            await bot.verify_identity()

    assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)


def test_transport_empty_token_raises() -> None:
    with pytest.raises(ValueError, match="empty"):
        HttpTransport("")


@pytest.mark.anyio
async def test_close_external_client_is_left_open() -> None:
    async with httpx.AsyncClient() as ext:
        transport = HttpTransport("123:abc", client=ext)
        await transport.close()
        assert not ext.is_closed


@pytest.mark.anyio
async def test_fetch_updates_advances_cursor_past_max_id(
    fake_transport: _FakeTransport,
) -> None:
    fake_transport.script(
        "getUpdates",
        [message_update(5, "a"), message_update(6, "b"), callback_update(9)],
        [],
    )
    client = TelegramClient(fake_transport, poll_timeout=30)

    first = await client.fetch_updates()
    second = await client.fetch_updates()

    assert [u.update_id for u in first] == [5, 6, 9]
    assert second == []
    bodies = fake_transport.bodies("getUpdates")
    assert bodies[0]["offset"] == 0
    assert bodies[0]["timeout"] == 30
    assert bodies[0]["allowed_updates"] == ["message", "callback_query"]
    assert bodies[1]["offset"] == 10
    assert client.offset == 10


@pytest.mark.anyio
async def test_fetch_updates_uses_max_not_last_id(
    fake_transport: _FakeTransport,
) -> None:
    fake_transport.script("getUpdates", [message_update(12, "a"), message_update(11, "b")])
    client = TelegramClient(fake_transport)

    await client.fetch_updates()

    assert client.offset == 13


@pytest.mark.anyio
async def test_failed_fetch_keeps_cursor(fake_transport: _FakeTransport) -> None:
    fake_transport.script(
        "getUpdates",
        [message_update(1, "a"), message_update(2, "b")],
        TransportError("down"),
        [message_update(3, "c")],
        [],
    )
    client = TelegramClient(fake_transport)
    seen: list[int] = []

    seen += [u.update_id for u in await client.fetch_updates()]
    with pytest.raises(TransportError):
        await client.fetch_updates()
    seen += [u.update_id for u in await client.fetch_updates()]
    await client.fetch_updates()

    assert seen == [1, 2, 3]
    offsets = [body["offset"] for body in fake_transport.bodies("getUpdates")]
    assert offsets == [0, 3, 3, 4]


@pytest.mark.anyio
async def test_malformed_update_still_advances_cursor(
    fake_transport: _FakeTransport,
) -> None:
    fake_transport.script(
        "getUpdates",
        [message_update(4, "ok"), {"update_id": 5, "message": {"text": "no ids"}}],
    )
    client = TelegramClient(fake_transport)

    updates = await client.fetch_updates()

    assert [u.update_id for u in updates] == [4]
    assert client.offset == 6


@pytest.mark.anyio
async def test_fetch_updates_rejects_non_list(fake_transport: _FakeTransport) -> None:
    fake_transport.script("getUpdates", {"unexpected": True})
    client = TelegramClient(fake_transport)

    with pytest.raises(TransportError):
        await client.fetch_updates()
    assert client.offset == 0


@pytest.mark.anyio
async def test_verify_identity(fake_transport: _FakeTransport) -> None:
    fake_transport.script(
        "getMe", {"id": 42, "is_bot": True, "first_name": "Sieve", "username": "sieve_bot"}
    )
    client = TelegramClient(fake_transport)

    identity = await client.verify_identity()

    assert identity.id == 42
    assert identity.username == "sieve_bot"


@pytest.mark.anyio
async def test_verify_identity_rejected(fake_transport: _FakeTransport) -> None:
    fake_transport.script("getMe", ApiError("Unauthorized", error_code=401))
    client = TelegramClient(fake_transport)

    with pytest.raises(CredentialError, match="Unauthorized"):
        await client.verify_identity()


@pytest.mark.anyio
async def test_verify_identity_network_failure(fake_transport: _FakeTransport) -> None:
    fake_transport.script("getMe", TransportError("connect failed"))
    client = TelegramClient(fake_transport)

    with pytest.raises(CredentialError, match="connect failed"):
        await client.verify_identity()


@pytest.mark.anyio
async def test_delete_message_failure_is_suppressed(
    fake_transport: _FakeTransport,
) -> None:
    fake_transport.script(
        "deleteMessage", ApiError("Bad Request: message can't be deleted")
    )
    client = TelegramClient(fake_transport)

    result = await client.delete_message(100, 7)

    assert result.ok is False
    assert result.error is not None
    assert result.error.action == "deleteMessage"
    assert "can't be deleted" in str(result.error)
    assert fake_transport.bodies("deleteMessage") == [{"chat_id": 100, "message_id": 7}]


@pytest.mark.anyio
async def test_delete_message_success(fake_transport: _FakeTransport) -> None:
    client = TelegramClient(fake_transport)

    result = await client.delete_message(100, 7)

    assert result.ok is True
    assert result.error is None


@pytest.mark.anyio
async def test_send_message_with_reply_markup(fake_transport: _FakeTransport) -> None:
    client = TelegramClient(fake_transport)
    markup = inline_button_markup("Start Processing", "start_process")

    await client.send_message(100, "hello", markup)
    await client.send_message(100, "plain")

    bodies = fake_transport.bodies("sendMessage")
    assert bodies[0] == {
        "chat_id": 100,
        "text": "hello",
        "reply_markup": {
            "inline_keyboard": [
                [{"text": "Start Processing", "callback_data": "start_process"}]
            ]
        },
    }
    assert "reply_markup" not in bodies[1]


@pytest.mark.anyio
async def test_send_message_propagates_transport_error(
    fake_transport: _FakeTransport,
) -> None:
    fake_transport.script("sendMessage", TransportError("down"))
    client = TelegramClient(fake_transport)

    with pytest.raises(TransportError):
        await client.send_message(100, "hello")


@pytest.mark.anyio
async def test_answer_callback_query(fake_transport: _FakeTransport) -> None:
    client = TelegramClient(fake_transport)

    await client.answer_callback_query("cb-1", "noted")

    assert fake_transport.bodies("answerCallbackQuery") == [
        {"callback_query_id": "cb-1", "text": "noted", "show_alert": True}
    ]


@pytest.mark.anyio
async def test_close_closes_transport(fake_transport: _FakeTransport) -> None:
    client = TelegramClient(fake_transport)

    await client.close()

    assert fake_transport.closed
