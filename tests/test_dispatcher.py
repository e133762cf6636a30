"""Tests for command dispatch."""

from unittest.mock import AsyncMock

import pytest

from goodchild.commands import Command, CommandStore, Dispatcher

CHAT = "120363000000000000@g.us"
SENDER = "15550001234@s.whatsapp.net"


def _make_dispatcher(*commands, prefix="."):
    store = CommandStore()
    for command in commands:
        store.register(command)
    send = AsyncMock()
    return Dispatcher(store, send, prefix=prefix, extras={"answer": 42}), send


def test_parse_splits_token_and_args():
    dispatcher, _ = _make_dispatcher()
    assert dispatcher.parse(".Ping  hello world ") == ("ping", "hello world")
    assert dispatcher.parse(".menu") == ("menu", "")
    assert dispatcher.parse("ping") is None
    assert dispatcher.parse(".") is None


def test_parse_custom_prefix():
    dispatcher, _ = _make_dispatcher(prefix="!")
    assert dispatcher.parse("!kick @bob") == ("kick", "@bob")
    assert dispatcher.parse(".kick") is None


@pytest.mark.asyncio
async def test_dispatch_by_alias_sends_reply():
    seen = {}

    async def handler(ctx):
        seen["ctx"] = ctx
        return f"pong {ctx.args}"

    dispatcher, send = _make_dispatcher(Command(name="ping", aliases=["p"], handler=handler))
    result = await dispatcher.dispatch(CHAT, SENDER, ".p now")

    assert result == "pong now"
    send.assert_awaited_once_with(CHAT, "pong now")
    ctx = seen["ctx"]
    assert ctx.command == "p"
    assert ctx.chat_id == CHAT
    assert ctx.sender == SENDER
    assert ctx.argv == ["now"]
    assert ctx.extras["answer"] == 42


@pytest.mark.asyncio
async def test_unknown_command_is_ignored():
    dispatcher, send = _make_dispatcher()
    assert await dispatcher.dispatch(CHAT, SENDER, ".nothing") is None
    send.assert_not_awaited()


@pytest.mark.asyncio
async def test_plain_message_is_ignored():
    handler = AsyncMock(return_value="x")
    dispatcher, send = _make_dispatcher(Command(name="ping", handler=handler))
    assert await dispatcher.dispatch(CHAT, SENDER, "ping") is None
    handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_handler_failure_reported_to_chat():
    async def handler(ctx):
        raise RuntimeError("database down")

    dispatcher, send = _make_dispatcher(Command(name="weather", handler=handler))
    result = await dispatcher.dispatch(CHAT, SENDER, ".weather paris")

    assert result is None
    send.assert_awaited_once()
    chat, text = send.await_args.args
    assert chat == CHAT
    assert "weather" in text
    assert "database down" not in text


@pytest.mark.asyncio
async def test_handler_returning_none_sends_nothing():
    async def handler(ctx):
        await ctx.reply("sent by handler")
        return None

    dispatcher, send = _make_dispatcher(Command(name="quiet", handler=handler))
    assert await dispatcher.dispatch(CHAT, SENDER, ".quiet") is None
    send.assert_awaited_once_with(CHAT, "sent by handler")


@pytest.mark.asyncio
async def test_command_without_handler_is_skipped():
    dispatcher, send = _make_dispatcher(Command(name="stub"))
    assert await dispatcher.dispatch(CHAT, SENDER, ".stub") is None
    send.assert_not_awaited()


@pytest.mark.asyncio
async def test_mixed_case_name_and_alias_dispatch():
    async def handler(ctx):
        return "group info"

    dispatcher, send = _make_dispatcher(
        Command(name="GroupInfo", aliases=["GInfo"], handler=handler)
    )

    assert await dispatcher.dispatch(CHAT, SENDER, ".GroupInfo") == "group info"
    assert await dispatcher.dispatch(CHAT, SENDER, ".groupinfo") == "group info"
    assert await dispatcher.dispatch(CHAT, SENDER, ".ginfo") == "group info"
    assert send.await_count == 3
    assert dispatcher.store.get("GROUPINFO").name == "GroupInfo"
