################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from oasis_agbridge.dosing.prescription_map import PrescriptionMap
from oasis_agbridge.dosing.prescription_map import PrescriptionMapError
from oasis_agbridge.dosing.prescription_map import PrescriptionStore
from oasis_agbridge.dosing.prescription_map import feature_rate


_LOG: logging.Logger = logging.getLogger(__name__)


def _square(
    min_lon: float, min_lat: float, size: float, properties: dict[str, Any]
) -> dict[str, Any]:
    max_lon: float = min_lon + size
    max_lat: float = min_lat + size
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {
            "type": "Polygon",
            "coordinates": [
                [
                    [min_lon, min_lat],
                    [max_lon, min_lat],
                    [max_lon, max_lat],
                    [min_lon, max_lat],
                    [min_lon, min_lat],
                ]
            ],
        },
    }


def _collection(*features: dict[str, Any]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def test_first_matching_zone_wins() -> None:
    prescription: PrescriptionMap = PrescriptionMap.from_geojson(
        _collection(
            _square(0.0, 0.0, 2.0, {"SemillasxMetro": 10, "Name": "low"}),
            _square(1.0, 1.0, 2.0, {"SemillasxMetro": 30, "Name": "high"}),
        )
    )

    # Inside both squares
    assert prescription.rate_at(1.5, 1.5) == 10.0
    assert prescription.rate_at(1.5, 1.5) == 10.0

    # Inside only the second one
    assert prescription.rate_at(2.5, 2.5) == 30.0

    zone = prescription.zone_at(0.5, 0.5)
    assert zone is not None
    assert zone.name == "low"


def test_point_outside_every_zone() -> None:
    prescription: PrescriptionMap = PrescriptionMap.from_geojson(
        _collection(_square(0.0, 0.0, 1.0, {"Rate": 5}))
    )

    assert prescription.zone_at(-1.0, -1.0) is None
    assert prescription.rate_at(-1.0, -1.0) == 0.0


def test_boundary_counts_as_inside() -> None:
    prescription: PrescriptionMap = PrescriptionMap.from_geojson(
        _collection(_square(0.0, 0.0, 1.0, {"Rate": 5}))
    )

    assert prescription.rate_at(0.0, 0.5) == 5.0


def test_coordinates_are_lon_lat() -> None:
    prescription: PrescriptionMap = PrescriptionMap.from_geojson(
        _collection(_square(10.0, 0.0, 1.0, {"Rate": 5}))
    )

    assert prescription.rate_at(0.5, 10.5) == 5.0
    assert prescription.rate_at(10.5, 0.5) == 0.0


def test_non_polygon_features_are_skipped() -> None:
    point_feature: dict[str, Any] = {
        "type": "Feature",
        "properties": {"Rate": 9},
        "geometry": {"type": "Point", "coordinates": [0.5, 0.5]},
    }

    prescription: PrescriptionMap = PrescriptionMap.from_geojson(
        _collection(point_feature, _square(0.0, 0.0, 1.0, {"Rate": 5}))
    )

    assert len(prescription) == 1
    assert prescription.rate_at(0.5, 0.5) == 5.0


def test_document_without_features_is_rejected() -> None:
    with pytest.raises(PrescriptionMapError):
        PrescriptionMap.from_geojson({"type": "FeatureCollection"})

    with pytest.raises(PrescriptionMapError):
        PrescriptionMap.from_geojson([])


def test_feature_rate_property_precedence() -> None:
    assert feature_rate({"SemillasxMetro": 12, "KilosxHectarea": 80}) == 12.0
    assert feature_rate({"SemillasxMetro": 0, "KilosxHectarea": 80}) == 80.0
    assert feature_rate({"KilosxHectarea": "abc", "Rate": "4.5"}) == 4.5
    assert feature_rate({"Name": "zone"}) == 0.0
    assert feature_rate(None) == 0.0


def test_store_loads_and_reloads(tmp_path: Path) -> None:
    path: Path = tmp_path / "map.json"
    path.write_text(json.dumps(_collection(_square(0.0, 0.0, 1.0, {"Rate": 5}))))

    store = PrescriptionStore(path, _LOG)

    assert store.current() is None
    assert store.reload()

    current = store.current()
    assert current is not None
    assert current.rate_at(0.5, 0.5) == 5.0

    path.write_text(json.dumps(_collection(_square(0.0, 0.0, 1.0, {"Rate": 8}))))

    assert store.reload()

    current = store.current()
    assert current is not None
    assert current.rate_at(0.5, 0.5) == 8.0


def test_store_keeps_previous_map_on_bad_file(tmp_path: Path) -> None:
    path: Path = tmp_path / "map.json"
    path.write_text(json.dumps(_collection(_square(0.0, 0.0, 1.0, {"Rate": 5}))))

    store = PrescriptionStore(path, _LOG)
    assert store.reload()
    previous = store.current()

    path.write_text("{ not json")

    assert not store.reload()
    assert store.current() is previous


def test_store_missing_file(tmp_path: Path) -> None:
    store = PrescriptionStore(tmp_path / "missing.json", _LOG)

    assert not store.reload()
    assert store.current() is None
