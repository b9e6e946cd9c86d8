################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Variable-rate prescription maps loaded from GeoJSON feature collections."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Mapping
from typing import Optional

from shapely.errors import ShapelyError
from shapely.geometry import Point
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry
from shapely.prepared import prep

from oasis_agbridge.implement.implement_types import coerce_float


# Rate properties in lookup order: seeds per meter, kilos per hectare, generic
RATE_PROPERTIES: tuple[str, ...] = ("SemillasxMetro", "KilosxHectarea", "Rate")


class PrescriptionMapError(Exception):
    """Raised when a prescription document cannot be parsed."""


def feature_rate(properties: Optional[Mapping[str, Any]]) -> float:
    """Return the first non-zero numeric rate among the recognized properties."""
    if not properties:
        return 0.0

    for name in RATE_PROPERTIES:
        rate: float = coerce_float(properties.get(name), 0.0)
        if rate != 0.0:
            return rate

    return 0.0


@dataclass(frozen=True)
class PrescriptionZone:
    """One polygon of the map and its rate."""

    geometry: BaseGeometry
    prepared: PreparedGeometry
    rate: float
    name: str = ""


class PrescriptionMap:
    """Ordered polygon zones; the first zone covering a point wins."""

    def __init__(self, zones: tuple[PrescriptionZone, ...]) -> None:
        self._zones: tuple[PrescriptionZone, ...] = zones

    def __len__(self) -> int:
        return len(self._zones)

    @property
    def zones(self) -> tuple[PrescriptionZone, ...]:
        return self._zones

    @classmethod
    def from_geojson(cls, document: Any) -> PrescriptionMap:
        """
        Build a map from a GeoJSON FeatureCollection.

        Features without a polygonal geometry are skipped.

        :raises PrescriptionMapError: If the document has no feature list
        """
        if not isinstance(document, Mapping):
            raise PrescriptionMapError("Prescription document must be an object")

        features: Any = document.get("features")
        if not isinstance(features, list):
            raise PrescriptionMapError("Prescription document has no feature list")

        zones: list[PrescriptionZone] = []
        for feature in features:
            if not isinstance(feature, Mapping):
                continue

            geometry_doc: Any = feature.get("geometry")
            if not isinstance(geometry_doc, Mapping):
                continue

            try:
                geometry: BaseGeometry = shape(geometry_doc)
            except (
                ShapelyError,
                ValueError,
                TypeError,
                IndexError,
                KeyError,
            ) as err:
                raise PrescriptionMapError(f"Invalid feature geometry: {err}") from err

            if geometry.geom_type not in ("Polygon", "MultiPolygon"):
                continue

            properties: Any = feature.get("properties")
            if not isinstance(properties, Mapping):
                properties = {}

            zones.append(
                PrescriptionZone(
                    geometry=geometry,
                    prepared=prep(geometry),
                    rate=feature_rate(properties),
                    name=str(properties.get("Name", "")),
                )
            )

        return cls(tuple(zones))

    @classmethod
    def from_file(cls, path: Path) -> PrescriptionMap:
        """
        Load a map from a GeoJSON file.

        :raises PrescriptionMapError: If the file cannot be read or parsed
        """
        try:
            with open(path, "r", encoding="utf-8") as file:
                document: Any = json.load(file)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as err:
            raise PrescriptionMapError(f"Failed to read {path}: {err}") from err

        return cls.from_geojson(document)

    def zone_at(self, latitude: float, longitude: float) -> Optional[PrescriptionZone]:
        """Return the first zone covering the point, boundary included."""
        point: Point = Point(longitude, latitude)
        for zone in self._zones:
            if zone.prepared.covers(point):
                return zone
        return None

    def rate_at(self, latitude: float, longitude: float) -> float:
        """Return the prescribed rate at a point, or 0 outside every zone."""
        zone: Optional[PrescriptionZone] = self.zone_at(latitude, longitude)
        return zone.rate if zone is not None else 0.0


class PrescriptionStore:
    """
    Holds the active prescription map and swaps it whole on reload.

    A failed reload keeps the previous map.
    """

    def __init__(self, path: Path, logger: logging.Logger) -> None:
        self._path: Path = path
        self._log: logging.Logger = logger
        self._lock = threading.Lock()
        self._map: Optional[PrescriptionMap] = None

    @property
    def path(self) -> Path:
        return self._path

    def current(self) -> Optional[PrescriptionMap]:
        with self._lock:
            return self._map

    def reload(self) -> bool:
        """
        Load the map file and publish it if it parses.

        :return: True if a new map was installed
        """
        if not self._path.exists():
            self._log.debug(f"No prescription map at {self._path}")
            return False

        try:
            new_map: PrescriptionMap = PrescriptionMap.from_file(self._path)
        except PrescriptionMapError as err:
            self._log.error(f"Keeping previous prescription map: {err}")
            return False

        with self._lock:
            self._map = new_map

        self._log.info(f"Prescription map loaded: {len(new_map)} zones")
        return True
