import json
from decimal import Decimal

import pytest

from freightfee.repositories.corridor_repo import upsert_corridor
from scripts.seed_corridors import load_corridor_file, normalize_corridor


def _item(**kwargs):
    item = {
        "origin_region": "Addis Ababa",
        "destination_region": "Djibouti",
        "direction": "BIDIRECTIONAL",
        "distance_km": 910,
        "shipper_price_per_km": 2.5,
        "carrier_price_per_km": 1.5,
    }
    item.update(kwargs)
    return item


def test_normalize_converts_numbers_to_decimal():
    row = normalize_corridor(_item(shipper_promo_flag=True, shipper_promo_pct="10"))
    assert row["distance_km"] == Decimal("910")
    assert row["shipper_price_per_km"] == Decimal("2.5")
    assert row["shipper_promo_pct"] == Decimal("10")
    assert row["direction"] == "BIDIRECTIONAL"


def test_direction_defaults_to_one_way():
    item = _item()
    del item["direction"]
    assert normalize_corridor(item)["direction"] == "ONE_WAY"


@pytest.mark.parametrize(
    "overrides",
    [
        {"origin_region": "Mombasa"},
        {"direction": "SIDEWAYS"},
        {"distance_km": None},
        {"carrier_price_per_km": -1},
        {"shipper_price_per_km": "cheap"},
    ],
)
def test_normalize_rejects_bad_items(overrides):
    with pytest.raises(ValueError):
        normalize_corridor(_item(**overrides))


def test_load_file_reports_item_index(tmp_path):
    path = tmp_path / "corridors.json"
    path.write_text(json.dumps([_item(), _item(destination_region="Nowhere")]))
    with pytest.raises(ValueError, match="item 1"):
        load_corridor_file(path)


def test_upsert_is_keyed_on_route_and_direction(db, tmp_path):
    path = tmp_path / "corridors.json"
    path.write_text(json.dumps([_item()]))
    rows = load_corridor_file(path)

    corridor, created = upsert_corridor(db, rows[0])
    db.commit()
    assert created is True

    updated, created = upsert_corridor(db, {**rows[0], "carrier_price_per_km": Decimal("2")})
    db.commit()
    assert created is False
    assert updated.id == corridor.id
    assert updated.carrier_price_per_km == Decimal("2")
    assert updated.name == "Addis Ababa - Djibouti"
