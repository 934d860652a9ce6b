#!/usr/bin/env python3
"""Load event and animal sampling tables and derive the mapped site set."""
from __future__ import annotations

import html
import json
import math
import os
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

ENV_DATA_DIR = "SITE_MAP_DATA_DIR"
DATA_DIR = Path("data")
EVENTS_FILE = Path("sample") / "event_short.csv"
ANIMALS_FILE = Path("sample") / "animal_short.csv"
POLYGONS_FILE = Path("GIS") / "country_polygons" / "USA" / "gadm36_USA_1.geojson"

EVENT_KEY = "GAINS4_EventID"
ANIMAL_KEY = "GAINS4_AnimalID"
SITE_NAME = "SiteName"
STATE_PROV = "StateProv"
DISTRICT = "District"
LATITUDE = "SiteLatitude"
LONGITUDE = "SiteLongitude"
SITE_KEY = [SITE_NAME, STATE_PROV, DISTRICT, LATITUDE, LONGITUDE]
JOIN_SUFFIXES = (".x", ".y")

MISSING_TEXT = "NA"


def load_env_value(name: str, env_path: str | Path | None = None) -> str | None:
    value = os.getenv(name)
    if value:
        return value
    env_path = Path(env_path) if env_path else Path(__file__).resolve().parent / ".env"
    if not env_path.exists():
        return None
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw = line.split("=", 1)
        if key.strip() == name:
            return raw.strip().strip('"').strip("'")
    return None


def data_dir() -> Path:
    override = load_env_value(ENV_DATA_DIR)
    return Path(override) if override else DATA_DIR


def _read_table(path: str | Path, required: list[str], label: str) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing {path}")
    frame = pd.read_csv(path)
    missing = [column for column in required if column not in frame.columns]
    if missing:
        raise KeyError(f"{label} file {path} missing columns: {missing}")
    return frame


def load_events(path: str | Path) -> pd.DataFrame:
    """Read the event table; one row per recorded event."""
    return _read_table(path, [EVENT_KEY, *SITE_KEY], "event")


def load_animals(path: str | Path) -> pd.DataFrame:
    """Read the animal table; rows reference their event by ``GAINS4_EventID``."""
    return _read_table(path, [ANIMAL_KEY, EVENT_KEY], "animal")


def has_site_location(animals: pd.DataFrame) -> bool:
    return LATITUDE in animals.columns and LONGITUDE in animals.columns


def join_animals_to_events(animals: pd.DataFrame, events: pd.DataFrame) -> pd.DataFrame:
    """Left join event attributes onto each animal row.

    Every animal row is kept in its original order. Animals whose event id has
    no match get null event columns. Columns present in both tables (other than
    the key) are suffixed ``.x`` (animal) and ``.y`` (event). Duplicate event
    ids in ``events`` break the many-to-one relation and raise ``ValueError``.
    """
    for label, frame in (("animal", animals), ("event", events)):
        if EVENT_KEY not in frame.columns:
            raise KeyError(f"{label} table has no {EVENT_KEY} column")
    duplicated = events[EVENT_KEY][events[EVENT_KEY].duplicated()].unique().tolist()
    if duplicated:
        raise ValueError(f"Duplicate {EVENT_KEY} values in event table: {duplicated[:10]}")
    return animals.merge(
        events,
        on=EVENT_KEY,
        how="left",
        suffixes=JOIN_SUFFIXES,
        validate="many_to_one",
    )


def attach_site_locations(animals: pd.DataFrame, events: pd.DataFrame) -> pd.DataFrame:
    # Exports that already carry site coordinates on the animal rows need no join.
    if has_site_location(animals):
        return animals
    # Partial site columns on the animal side would shadow the event location.
    partial = [column for column in SITE_KEY if column in animals.columns]
    return join_animals_to_events(animals.drop(columns=partial), events)


def format_value(value: Any) -> str:
    if value is None:
        return MISSING_TEXT
    if isinstance(value, float):
        if math.isnan(value):
            return MISSING_TEXT
        if value.is_integer():
            return str(int(value))
    if value is pd.NA or value is pd.NaT:
        return MISSING_TEXT
    return html.escape(str(value), quote=False)


def site_popup(site: Mapping[str, Any]) -> str:
    parts = [
        f"Site name: {format_value(site.get(SITE_NAME))}",
        f"No. of events: {format_value(site.get('n'))}",
        f"StateProv: {format_value(site.get(STATE_PROV))}",
        f"District: {format_value(site.get(DISTRICT))}",
        f"Latitude: {format_value(site.get(LATITUDE))}",
        f"Longitude: {format_value(site.get(LONGITUDE))}",
    ]
    return "<br>".join(parts)


def summarize_sites(events: pd.DataFrame) -> pd.DataFrame:
    """Collapse events to unique sites so overlapping markers are drawn once.

    Returns one row per distinct site key with ``n`` (event count) and
    ``site_info`` (popup HTML). Rows with a missing key value are grouped
    together rather than dropped.
    """
    sites = (
        events.groupby(SITE_KEY, dropna=False, sort=True)
        .size()
        .reset_index(name="n")
    )
    sites["site_info"] = [site_popup(row) for row in sites.to_dict("records")]
    return sites


def located(frame: pd.DataFrame) -> pd.DataFrame:
    return frame.dropna(subset=[LATITUDE, LONGITUDE])


def load_polygons(path: str | Path) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or "type" not in data:
        raise ValueError(f"{path} is not a GeoJSON object")
    return data
