#!/usr/bin/env python3
"""Render sampling sites, animals and country regions as an interactive Leaflet map."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import folium
import pandas as pd
from folium.plugins import MarkerCluster

from site_data import (
    ANIMALS_FILE,
    EVENTS_FILE,
    LATITUDE,
    LONGITUDE,
    POLYGONS_FILE,
    attach_site_locations,
    data_dir,
    load_animals,
    load_events,
    load_polygons,
    located,
    summarize_sites,
)

OUTPUT_HTML = "map_sites_animal.html"

# Leaflet-providers name; see http://leaflet-extras.github.io/leaflet-providers/preview/
BASEMAP = "Esri.NatGeoWorldMap"
BASEMAP_GROUP = "NatGeo"
POLYGON_GROUP = "USA regions"
SITE_GROUP = "Sites"
ANIMAL_GROUP = "Animal clusters"

MARKER_COLOR = "#03F"
MARKER_FILL_OPACITY = 0.2
POLYGON_COLOR = "green"
POLYGON_WEIGHT = 5
POLYGON_OPACITY = 0.5
POLYGON_FILL_OPACITY = 0.2

SITE_RADIUS = 4
SITE_WEIGHT = 3
SITE_OPACITY = 0.7
ANIMAL_RADIUS = 4
ANIMAL_WEIGHT = 2
ANIMAL_OPACITY = 0.5
POPUP_MAX_WIDTH = 300


def polygon_style(color: str) -> dict:
    return {
        "color": color,
        "weight": POLYGON_WEIGHT,
        "opacity": POLYGON_OPACITY,
        "fillColor": color,
        "fillOpacity": POLYGON_FILL_OPACITY,
    }


def add_polygons(fmap: folium.Map, polygons: dict, color: str = POLYGON_COLOR) -> folium.GeoJson:
    style = polygon_style(color)
    layer = folium.GeoJson(
        polygons,
        name=POLYGON_GROUP,
        style_function=lambda _feature: style,
    )
    layer.add_to(fmap)
    return layer


def _placed(frame: pd.DataFrame, label: str) -> pd.DataFrame:
    rows = located(frame)
    skipped = len(frame) - len(rows)
    if skipped:
        print(f"Skipping {skipped} {label} without coordinates", file=sys.stderr)
    return rows


def add_site_markers(fmap: folium.Map, sites: pd.DataFrame) -> folium.FeatureGroup:
    group = folium.FeatureGroup(name=SITE_GROUP)
    for site in _placed(sites, "sites").to_dict("records"):
        folium.CircleMarker(
            location=[site[LATITUDE], site[LONGITUDE]],
            radius=SITE_RADIUS,
            weight=SITE_WEIGHT,
            opacity=SITE_OPACITY,
            color=MARKER_COLOR,
            fill=True,
            fill_opacity=MARKER_FILL_OPACITY,
            popup=folium.Popup(site["site_info"], max_width=POPUP_MAX_WIDTH),
        ).add_to(group)
    group.add_to(fmap)
    return group


def add_animal_markers(fmap: folium.Map, animals: pd.DataFrame, cluster: bool = True):
    """Draw one marker per animal; with ``cluster`` nearby markers collapse into counts."""
    if cluster:
        group = MarkerCluster(name=ANIMAL_GROUP)
    else:
        group = folium.FeatureGroup(name=ANIMAL_GROUP)
    rows = _placed(animals, "animals")
    for lat, lon in zip(rows[LATITUDE], rows[LONGITUDE]):
        folium.CircleMarker(
            location=[lat, lon],
            radius=ANIMAL_RADIUS,
            weight=ANIMAL_WEIGHT,
            opacity=ANIMAL_OPACITY,
            color=MARKER_COLOR,
            fill=True,
            fill_opacity=MARKER_FILL_OPACITY,
        ).add_to(group)
    group.add_to(fmap)
    return group


def map_bounds(*frames: pd.DataFrame | None) -> list[list[float]] | None:
    lats: list[float] = []
    lons: list[float] = []
    for frame in frames:
        if frame is None or LATITUDE not in frame.columns or LONGITUDE not in frame.columns:
            continue
        rows = located(frame)
        lats.extend(rows[LATITUDE].astype(float))
        lons.extend(rows[LONGITUDE].astype(float))
    if not lats:
        return None
    return [[min(lats), min(lons)], [max(lats), max(lons)]]


def merge_bounds(*bounds: list[list[float]] | None) -> list[list[float]] | None:
    present = [b for b in bounds if b and None not in b[0] and None not in b[1]]
    if not present:
        return None
    return [
        [min(b[0][0] for b in present), min(b[0][1] for b in present)],
        [max(b[1][0] for b in present), max(b[1][1] for b in present)],
    ]


def build_map(
    sites: pd.DataFrame | None,
    animals: pd.DataFrame | None = None,
    polygons: dict | None = None,
    *,
    tiles: str = BASEMAP,
    polygon_color: str = POLYGON_COLOR,
    cluster_animals: bool = True,
    collapsed: bool = False,
) -> folium.Map:
    """Compose the site map.

    Layers are stacked polygons, sites, then animals, and the layer control
    lists them in that order. A layer with no data is left out entirely.
    """
    fmap = folium.Map(tiles=None)
    folium.TileLayer(tiles, name=BASEMAP_GROUP, control=False).add_to(fmap)

    polygon_bounds = None
    if polygons is not None:
        polygon_bounds = add_polygons(fmap, polygons, polygon_color).get_bounds()
    if sites is not None:
        add_site_markers(fmap, sites)
    if animals is not None:
        add_animal_markers(fmap, animals, cluster=cluster_animals)

    if polygons is not None or sites is not None or animals is not None:
        folium.LayerControl(collapsed=collapsed).add_to(fmap)

    bounds = merge_bounds(map_bounds(sites, animals), polygon_bounds)
    if bounds:
        fmap.fit_bounds(bounds)
    return fmap


def save_map(fmap: folium.Map, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fmap.save(str(path))
    return path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    base = data_dir()
    parser = argparse.ArgumentParser(
        description="Map sampling sites and animals over country regions as a standalone HTML file."
    )
    parser.add_argument("--events", type=Path, default=base / EVENTS_FILE, help="Event CSV file.")
    parser.add_argument("--animals", type=Path, default=base / ANIMALS_FILE, help="Animal CSV file.")
    parser.add_argument(
        "--polygons",
        type=Path,
        default=base / POLYGONS_FILE,
        help="GeoJSON file with the country region polygons.",
    )
    parser.add_argument("--output", type=Path, default=Path(OUTPUT_HTML), help="HTML file to write.")
    parser.add_argument("--tiles", default=BASEMAP, help=f"Base map tiles (default: {BASEMAP}).")
    parser.add_argument(
        "--polygon-color",
        default=POLYGON_COLOR,
        help=f"Outline and fill color of the region polygons (default: {POLYGON_COLOR}).",
    )
    parser.add_argument(
        "--no-cluster",
        action="store_true",
        help="Draw every animal marker instead of aggregating them into clusters.",
    )
    parser.add_argument(
        "--collapsed",
        action="store_true",
        help="Start with the layer control collapsed.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    for path in (args.events, args.animals, args.polygons):
        if not path.exists():
            print(f"Missing {path}.", file=sys.stderr)
            return 1

    try:
        events = load_events(args.events)
        animals = load_animals(args.animals)
        polygons = load_polygons(args.polygons)
        animals = attach_site_locations(animals, events)
    except (KeyError, ValueError) as exc:
        print(f"Failed to load input data: {exc}", file=sys.stderr)
        return 1

    sites = summarize_sites(events)
    print(
        f"Loaded {len(events)} events, {len(animals)} animals at {len(sites)} sites.",
        file=sys.stderr,
    )

    fmap = build_map(
        sites,
        animals,
        polygons,
        tiles=args.tiles,
        polygon_color=args.polygon_color,
        cluster_animals=not args.no_cluster,
        collapsed=args.collapsed,
    )
    out_path = save_map(fmap, args.output)
    print(f"Wrote {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
