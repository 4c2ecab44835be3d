"""
Tests del ciclo de vida: envío, visto, expiración
"""
import asyncio
import pytest

from app.errors import InvalidMessage, InvalidParticipants, NotFound, Unauthorized
from app.services.sweeper import ExpirySweeper


def _assert_invariant(doc):
    assert (doc["expires_at"] is None) == (doc["viewed_at"] is None)
    if doc["viewed_at"] is not None:
        assert doc["expires_at"] == doc["viewed_at"] + doc["duration"]


async def test_send_stamps_metadata(lifecycle, clock):
    doc = await lifecycle.send("x", "y", "text", "hi")
    assert doc["timestamp"] == clock.now
    assert doc["viewed_at"] is None and doc["expires_at"] is None
    assert doc["duration"] == 300000  # duración por defecto
    _assert_invariant(doc)


async def test_send_rejects_same_participant(lifecycle, store):
    with pytest.raises(InvalidParticipants):
        await lifecycle.send("x", "x", "text", "hola")
    assert len(store) == 0


@pytest.mark.parametrize("type_, content, duration", [
    ("video", "hola", None),
    ("text", "", None),
    ("text", "x" * 1001, None),
    ("text", "hola", 12345),
])
async def test_send_rejects_invalid_message(lifecycle, store, type_, content, duration):
    with pytest.raises(InvalidMessage):
        await lifecycle.send("x", "y", type_, content, duration)
    assert len(store) == 0


async def test_send_notifies_both_participants(lifecycle, channel, socket_factory):
    ws_x, ws_y = socket_factory(), socket_factory()
    await channel.connect(ws_x, "x")
    await channel.connect(ws_y, "y")

    doc = await lifecycle.send("x", "y", "image", "aGVsbG8=", 60000)

    for ws in (ws_x, ws_y):
        events = ws.of_type("new_message")
        assert len(events) == 1
        assert events[0]["message"]["id"] == str(doc["_id"])
        assert events[0]["message"]["type"] == "image"


async def test_send_succeeds_when_nobody_is_connected(lifecycle, store):
    doc = await lifecycle.send("x", "y", "text", "hola")
    assert store.find_one(doc["_id"], doc["timestamp"]) is not None


async def test_mark_viewed_sets_expiry(lifecycle, clock):
    doc = await lifecycle.send("x", "y", "text", "hola", 60000)
    clock.advance(10000)
    viewed = await lifecycle.mark_viewed(str(doc["_id"]), "y")
    assert viewed["viewed_at"] == clock.now
    assert viewed["expires_at"] == clock.now + 60000
    _assert_invariant(viewed)


async def test_mark_viewed_is_idempotent(lifecycle, clock, channel, socket_factory):
    ws_x = socket_factory()
    await channel.connect(ws_x, "x")
    doc = await lifecycle.send("x", "y", "text", "hola", 60000)

    first = await lifecycle.mark_viewed(str(doc["_id"]), "y")
    clock.advance(5000)
    second = await lifecycle.mark_viewed(str(doc["_id"]), "y")

    assert second["viewed_at"] == first["viewed_at"]
    assert second["expires_at"] == first["expires_at"]
    assert len(ws_x.of_type("message_updated")) == 1


async def test_sender_cannot_trigger_view(lifecycle):
    doc = await lifecycle.send("x", "y", "text", "hola")
    with pytest.raises(Unauthorized):
        await lifecycle.mark_viewed(str(doc["_id"]), "x")


async def test_sender_gets_current_state_after_view(lifecycle):
    doc = await lifecycle.send("x", "y", "text", "hola")
    viewed = await lifecycle.mark_viewed(str(doc["_id"]), "y")
    again = await lifecycle.mark_viewed(str(doc["_id"]), "x")
    assert again["expires_at"] == viewed["expires_at"]


async def test_third_party_is_rejected(lifecycle):
    doc = await lifecycle.send("x", "y", "text", "hola")
    await lifecycle.mark_viewed(str(doc["_id"]), "y")
    with pytest.raises(Unauthorized):
        await lifecycle.mark_viewed(str(doc["_id"]), "z")


async def test_mark_viewed_unknown_or_malformed_id(lifecycle):
    with pytest.raises(NotFound):
        await lifecycle.mark_viewed("0123456789abcdef01234567", "y")
    with pytest.raises(NotFound):
        await lifecycle.mark_viewed("no-es-un-id", "y")


async def test_mark_viewed_after_expiry_is_not_found(lifecycle, clock):
    doc = await lifecycle.send("x", "y", "text", "hola", 60000)
    await lifecycle.mark_viewed(str(doc["_id"]), "y")
    clock.advance(60000)
    with pytest.raises(NotFound):
        await lifecycle.mark_viewed(str(doc["_id"]), "y")


async def test_message_unreadable_exactly_at_expiry(lifecycle, clock):
    doc = await lifecycle.send("x", "y", "text", "hola", 60000)
    await lifecycle.mark_viewed(str(doc["_id"]), "y")
    clock.advance(59999)
    assert len(lifecycle.get_messages("x", "y")) == 1
    clock.advance(1)
    assert lifecycle.get_messages("x", "y") == []


async def test_scenario_view_then_sweep(lifecycle, store, channel, clock):
    """X envía "hi" a Y (60s); Y lo ve a los 40s; a los 150s ya no existe"""
    sweeper = ExpirySweeper(store, channel, 5, clock)
    clock.set(0)
    doc = await lifecycle.send("X", "Y", "text", "hi", 60000)

    clock.set(30000)
    history = lifecycle.get_messages("X", "Y")
    assert len(history) == 1 and history[0]["viewed_at"] is None

    clock.set(40000)
    viewed = await lifecycle.mark_viewed(str(doc["_id"]), "Y")
    assert viewed["viewed_at"] == 40000
    assert viewed["expires_at"] == 100000

    clock.set(150000)
    assert await sweeper.sweep_once() == 1
    assert lifecycle.get_messages("X", "Y") == []
    assert len(store) == 0


async def test_scenario_unviewed_never_swept(lifecycle, store, channel, clock):
    sweeper = ExpirySweeper(store, channel, 5, clock)
    await lifecycle.send("X", "Y", "text", "hola", 60000)
    clock.advance(10 * 3600000)
    assert await sweeper.sweep_once() == 0
    assert len(lifecycle.get_messages("X", "Y")) == 1


async def test_scenario_concurrent_views_agree(lifecycle, clock, channel, socket_factory):
    ws_y = socket_factory()
    await channel.connect(ws_y, "Y")
    doc = await lifecycle.send("X", "Y", "text", "hola", 60000)

    first, second = await asyncio.gather(
        lifecycle.mark_viewed(str(doc["_id"]), "Y"),
        lifecycle.mark_viewed(str(doc["_id"]), "Y"),
    )

    assert first["expires_at"] == second["expires_at"]
    assert first["viewed_at"] == second["viewed_at"]
    assert len(ws_y.of_type("message_updated")) == 1
