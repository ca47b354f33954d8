import json
import os

import pytest

from src.backend.crud import documents
from src.backend.crud.seed import DEFAULT_ORG_ID, build_seed_writes, load_config, seed_from_config
from src.backend.utils.triggers import triggers

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "..", "assets", "config.json")


def test_bundled_config_builds_org_and_businesses():
    config = load_config(CONFIG_PATH)
    writes = build_seed_writes(config)

    collection, org_id, org = writes[0]
    assert (collection, org_id) == ("organizations", DEFAULT_ORG_ID)
    assert org["settings"]["is_active"] is True

    businesses = writes[1:]
    assert len(businesses) == len(config["businesses"])
    _, biz_id, biz = businesses[0]
    assert biz["org_id"] == DEFAULT_ORG_ID
    assert biz["qr_code_secret"] == f"secret_{biz_id}"
    assert biz["total_scans"] == 0
    assert biz["address"].endswith("NE 68005")
    assert isinstance(biz["lat"], float)


def test_load_config_rejects_bad_shape(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"nope": []}))
    with pytest.raises(ValueError):
        load_config(path)


async def test_seed_only_geocodes_rows_without_coordinates(db, geocoder):
    config = {
        "businesses": [
            {"id": "a", "name": "A", "street": "1 Elm", "city": "Bellevue", "state": "NE", "zip": "68005",
             "latitude": 41.1, "longitude": -95.9},
            {"id": "b", "name": "B", "street": "2 Oak", "city": "Bellevue", "state": "NE", "zip": "68005"},
        ]
    }
    written = await seed_from_config(db, config)
    await triggers.drain()

    assert [s.id for s in written] == [DEFAULT_ORG_ID, "a", "b"]
    assert geocoder.calls == ["2 Oak, Bellevue, NE 68005"]
    assert (await documents.get_document(db, "businesses", "a")).get("lat") == 41.1
