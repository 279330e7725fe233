"""QueueService tests — validation, retention and broadcasting.

Learn: These drive the service directly with a JSON backend in tmp_path
and a FakeClock shared by backend and service, so "24 hours later" is
one clock.advance() call away.
"""

import json

import pytest

from conftest import ORDER, BrokenListener, RecordingListener
from orderqueue.services.queue_service import (
    NotFoundError,
    QueueService,
    ValidationError,
)
from orderqueue.services.retention import HideDoneRetention
from orderqueue.storage.base import StorageError


# ═══════════════════════════════════════════════════════════
# Adding items
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_add_queue_item_defaults(service):
    item = await service.add_queue_item(ORDER)
    assert item.status == "pending"
    assert item.follow_ups == []
    assert item.id
    assert item.notes == ""

    queue = await service.get_queue()
    assert [i.id for i in queue] == [item.id]
    assert queue[0].product_name == "Embroidery"
    assert queue[0].color == "Black"
    assert queue[0].quantity == 2
    assert queue[0].courier == "Grab"


@pytest.mark.asyncio
async def test_add_queue_item_accepts_snake_case_and_string_quantity(service):
    item = await service.add_queue_item({
        "product_id": "p-1",
        "product_name": "DTF",
        "size": "XL",
        "quantity": "3",
        "courier": "J&T",
    })
    assert item.product_id == "p-1"
    assert item.quantity == 3
    assert item.color == ""


@pytest.mark.asyncio
async def test_add_queue_item_status_override(service):
    item = await service.add_queue_item({**ORDER, "status": "next-day"})
    assert item.status == "next-day"


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["productName", "size", "quantity", "courier"])
async def test_add_queue_item_requires_fields(service, json_backend, missing):
    body = {k: v for k, v in ORDER.items() if k != missing}
    with pytest.raises(ValidationError, match="required"):
        await service.add_queue_item(body)
    assert await json_backend.load_queue() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, -1, "two", 1.5])
async def test_add_queue_item_rejects_bad_quantity(service, quantity):
    with pytest.raises(ValidationError):
        await service.add_queue_item({**ORDER, "quantity": quantity})


@pytest.mark.asyncio
async def test_add_queue_item_rejects_unknown_status(service, json_backend):
    with pytest.raises(ValidationError, match="Invalid status"):
        await service.add_queue_item({**ORDER, "status": "shipped"})
    assert await json_backend.load_queue() == []


# ═══════════════════════════════════════════════════════════
# Status changes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_any_status_may_follow_any_status(service):
    item = await service.add_queue_item(ORDER)
    for status in ["done", "pending", "done", "next-day", "in-progress"]:
        item = await service.update_queue_item_status(item.id, status)
        assert item.status == status


@pytest.mark.asyncio
async def test_update_status_unknown_id(service, json_backend):
    await service.add_queue_item(ORDER)
    before = json_backend.queue_path.read_text()
    with pytest.raises(NotFoundError):
        await service.update_queue_item_status("unknown", "done")
    assert json_backend.queue_path.read_text() == before


@pytest.mark.asyncio
async def test_update_status_rejects_unknown_value(service):
    item = await service.add_queue_item(ORDER)
    with pytest.raises(ValidationError):
        await service.update_queue_item_status(item.id, "archived")
    [stored] = await service.get_queue()
    assert stored.status == "pending"


# ═══════════════════════════════════════════════════════════
# Follow-ups
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_follow_ups_in_order(service, clock):
    item = await service.add_queue_item(ORDER)
    clock.advance(minutes=5)
    await service.add_follow_up(item.id, "F1")
    clock.advance(minutes=5)
    updated = await service.add_follow_up(item.id, "F2")

    assert [f.message for f in updated.follow_ups] == ["F1", "F2"]
    assert updated.updated_at == clock.now


@pytest.mark.asyncio
async def test_follow_up_requires_message(service):
    item = await service.add_queue_item(ORDER)
    with pytest.raises(ValidationError):
        await service.add_follow_up(item.id, "   ")


@pytest.mark.asyncio
async def test_follow_up_unknown_item(service):
    with pytest.raises(NotFoundError):
        await service.add_follow_up("unknown", "hello")


# ═══════════════════════════════════════════════════════════
# Deletion
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_delete_is_idempotent(service):
    item = await service.add_queue_item(ORDER)
    assert await service.delete_queue_item(item.id) is True
    assert await service.delete_queue_item(item.id) is False
    assert await service.get_queue() == []


# ═══════════════════════════════════════════════════════════
# Retention
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_old_items_not_done_are_kept(service, clock):
    pending = await service.add_queue_item(ORDER)
    later = await service.add_queue_item(ORDER)
    await service.update_queue_item_status(later.id, "next-day")
    clock.advance(days=30)

    assert {i.id for i in await service.get_queue()} == {pending.id, later.id}


@pytest.mark.asyncio
async def test_done_items_visible_within_window(service, clock):
    item = await service.add_queue_item(ORDER)
    await service.update_queue_item_status(item.id, "done")
    clock.advance(hours=23, minutes=59)
    assert [i.id for i in await service.get_queue()] == [item.id]


@pytest.mark.asyncio
async def test_stale_done_items_are_purged(service, json_backend, clock):
    keep = await service.add_queue_item(ORDER)
    stale = await service.add_queue_item(ORDER)
    await service.update_queue_item_status(stale.id, "done")
    clock.advance(hours=24)

    assert [i.id for i in await service.get_queue()] == [keep.id]
    # Durably removed, not just hidden
    assert [i.id for i in await json_backend.load_queue()] == [keep.id]


@pytest.mark.asyncio
async def test_window_counts_from_last_update(service, clock):
    item = await service.add_queue_item(ORDER)
    await service.update_queue_item_status(item.id, "done")
    clock.advance(hours=20)
    await service.add_follow_up(item.id, "picked up late")
    clock.advance(hours=20)
    assert [i.id for i in await service.get_queue()] == [item.id]


@pytest.mark.asyncio
async def test_hide_done_policy(json_backend, clock):
    service = QueueService(json_backend, retention=HideDoneRetention(), clock=clock)
    done = await service.add_queue_item(ORDER)
    open_item = await service.add_queue_item(ORDER)
    await service.update_queue_item_status(done.id, "done")

    assert [i.id for i in await service.get_queue()] == [open_item.id]
    # Hidden, but still stored
    assert len(await json_backend.load_queue()) == 2


@pytest.mark.asyncio
async def test_default_policy_follows_backend(json_backend, document_backend):
    assert QueueService(json_backend).retention.name == "time-boxed"
    assert QueueService(document_backend).retention.name == "hide-done"


@pytest.mark.asyncio
async def test_failed_purge_does_not_fail_read(service, json_backend, clock, monkeypatch):
    item = await service.add_queue_item(ORDER)
    await service.update_queue_item_status(item.id, "done")
    clock.advance(days=2)

    async def broken_purge(ids):
        raise StorageError("disk full")

    monkeypatch.setattr(json_backend, "purge_queue_items", broken_purge)
    assert await service.get_queue() == []


@pytest.mark.asyncio
async def test_unparseable_record_does_not_block_queue(service, json_backend):
    first = await service.add_queue_item(ORDER)
    stored = json.loads(json_backend.queue_path.read_text())
    stored.append({**stored[0], "id": "legacy", "quantity": None})
    json_backend.queue_path.write_text(json.dumps(stored))

    second = await service.add_queue_item(ORDER)
    assert [i.id for i in await service.get_queue()] == [first.id, second.id]


# ═══════════════════════════════════════════════════════════
# Products
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_add_product_splits_comma_strings(service):
    product = await service.add_product(
        {"name": "Hoodie", "sizes": "S, M ,L", "colors": ["Red", " Blue "]}
    )
    assert product.sizes == ["S", "M", "L"]
    assert product.colors == ["Red", "Blue"]
    assert product.id in {p.id for p in await service.get_products()}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"sizes": ["M"], "colors": ["Red"]},
    {"name": "Hoodie", "colors": ["Red"]},
    {"name": "Hoodie", "sizes": " , ", "colors": ["Red"]},
    {"name": "Hoodie", "sizes": ["M"], "colors": []},
])
async def test_add_product_requires_fields(service, body):
    with pytest.raises(ValidationError):
        await service.add_product(body)


@pytest.mark.asyncio
async def test_products_never_expire(service, clock):
    before = await service.get_products()
    clock.advance(days=365)
    assert [p.id for p in await service.get_products()] == [p.id for p in before]


# ═══════════════════════════════════════════════════════════
# Broadcasting
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_new_item_broadcasts_item_and_snapshot(service, broadcaster):
    screens = [RecordingListener(), RecordingListener()]
    for screen in screens:
        broadcaster.connect(screen)

    item = await service.add_queue_item(ORDER)

    for screen in screens:
        assert screen.types() == ["new-queue-item", "queue-updated"]
        assert screen.messages[0]["data"]["id"] == item.id
        assert [i["id"] for i in screen.messages[1]["data"]] == [item.id]
    assert screens[0].messages == screens[1].messages


@pytest.mark.asyncio
async def test_status_change_broadcasts_delta(service, broadcaster):
    item = await service.add_queue_item(ORDER)
    screen = RecordingListener()
    broadcaster.connect(screen)

    await service.update_queue_item_status(item.id, "in-progress")

    assert screen.types() == ["status-updated", "queue-updated"]
    delta = screen.messages[0]["data"]
    assert delta["id"] == item.id
    assert delta["status"] == "in-progress"
    assert "updatedAt" in delta


@pytest.mark.asyncio
async def test_follow_up_broadcasts_last_follow_up(service, broadcaster):
    item = await service.add_queue_item(ORDER)
    await service.add_follow_up(item.id, "first")
    screen = RecordingListener()
    broadcaster.connect(screen)

    await service.add_follow_up(item.id, "second")

    assert screen.types() == ["follow-up-added", "queue-updated"]
    assert screen.messages[0]["data"]["id"] == item.id
    assert screen.messages[0]["data"]["followUp"]["message"] == "second"


@pytest.mark.asyncio
async def test_delete_broadcasts_only_when_something_was_deleted(service, broadcaster):
    item = await service.add_queue_item(ORDER)
    screen = RecordingListener()
    broadcaster.connect(screen)

    await service.delete_queue_item(item.id)
    await service.delete_queue_item(item.id)

    assert screen.types() == ["queue-item-deleted", "queue-updated"]
    assert screen.messages[0]["data"] == {"id": item.id}
    assert screen.messages[1]["data"] == []


@pytest.mark.asyncio
async def test_product_changes_broadcast_product_list(service, broadcaster):
    screen = RecordingListener()
    broadcaster.connect(screen)

    product = await service.add_product({"name": "Cap", "sizes": ["OS"], "colors": ["Black"]})
    await service.delete_product(product.id)

    assert screen.types() == ["products-updated", "products-updated"]
    assert product.id in [p["id"] for p in screen.messages[0]["data"]]
    assert product.id not in [p["id"] for p in screen.messages[1]["data"]]


@pytest.mark.asyncio
async def test_failed_validation_broadcasts_nothing(service, broadcaster):
    screen = RecordingListener()
    broadcaster.connect(screen)
    with pytest.raises(ValidationError):
        await service.add_queue_item({"size": "M"})
    with pytest.raises(NotFoundError):
        await service.update_queue_item_status("unknown", "done")
    assert screen.messages == []


@pytest.mark.asyncio
async def test_broken_listener_does_not_fail_writes(service, broadcaster):
    good = RecordingListener()
    broadcaster.connect(BrokenListener())
    broadcaster.connect(good)

    await service.add_queue_item(ORDER)

    assert good.types() == ["new-queue-item", "queue-updated"]
    assert broadcaster.connection_count == 1
