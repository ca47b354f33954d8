import asyncio
import json

import pytest

from src.backend.crud import documents
from src.backend.utils.live import ChangeFeed, feed


async def test_subscriber_sees_writes_to_its_collection_only(db):
    async with feed.subscribe("organizations") as sub:
        await documents.set_document(db, "organizations", "o1", {"name": "Org"})
        await documents.set_document(db, "tiles", "go", {"tileName": "Go"})
        await documents.update_document(db, "organizations", "o1", {"name": "Org 2"})
        await documents.delete_document(db, "organizations", "o1")

        kinds = [(await sub.get(timeout=1)).to_payload() for _ in range(3)]
        assert [k["type"] for k in kinds] == ["create", "update", "delete"]
        assert kinds[1]["data"] == {"id": "o1", "name": "Org 2"}
        assert kinds[2]["data"] is None

        with pytest.raises(asyncio.TimeoutError):
            await sub.get(timeout=0.05)

    assert feed.subscriber_count("organizations") == 0


async def test_lagging_subscriber_drops_instead_of_blocking(db):
    small = ChangeFeed(maxsize=1)
    sub = small.subscribe("organizations")
    from src.backend.schemas.document import DocumentSnapshot, WriteEvent

    for i in range(3):
        after = DocumentSnapshot("organizations", f"o{i}", {"n": i})
        small.publish(WriteEvent("organizations", f"o{i}", DocumentSnapshot("organizations", f"o{i}", None), after))

    first = await sub.get(timeout=1)
    assert first.doc_id == "o0"
    with pytest.raises(asyncio.TimeoutError):
        await sub.get(timeout=0.05)
    sub.close()
    assert small.subscriber_count("organizations") == 0


# -------- /api/database/stream --------
class _StreamRequest:
    def __init__(self):
        self.disconnected = False

    async def is_disconnected(self):
        return self.disconnected


def test_stream_requires_login(client):
    resp = client.get("/api/database/stream?collection=tiles")
    assert resp.status_code == 401


async def test_stream_sends_ready_then_writes_for_its_collection(db):
    from src.backend.routes import database_api

    req = _StreamRequest()
    resp = await database_api.stream_collection(req, collection="tiles", current_user=None)
    assert resp.media_type == "text/event-stream"
    events = resp.body_iterator

    ready = await events.__anext__()
    assert ready.startswith("event: ready\n")
    assert json.loads(ready.split("data: ", 1)[1]) == {"collection": "tiles"}

    await documents.set_document(db, "organizations", "o1", {"name": "Org"})
    await documents.set_document(db, "tiles", "go", {"tileName": "Go"})

    write = await asyncio.wait_for(events.__anext__(), timeout=1)
    assert write.startswith("event: write\n")
    payload = json.loads(write.split("data: ", 1)[1])
    assert payload["type"] == "create"
    assert payload["data"] == {"id": "go", "tileName": "Go"}

    req.disconnected = True
    with pytest.raises(StopAsyncIteration):
        await events.__anext__()
    assert feed.subscriber_count("tiles") == 0


async def test_stream_keepalive_and_teardown_on_close(monkeypatch):
    from src.backend.routes import database_api

    monkeypatch.setattr(database_api, "KEEPALIVE_SECONDS", 0.01)
    resp = await database_api.stream_collection(_StreamRequest(), collection="scans", current_user=None)
    events = resp.body_iterator

    await events.__anext__()
    assert await asyncio.wait_for(events.__anext__(), timeout=1) == ": keepalive\n\n"
    assert feed.subscriber_count("scans") == 1

    await events.aclose()
    assert feed.subscriber_count("scans") == 0
