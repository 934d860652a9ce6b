import json

import pandas as pd
import pytest


EVENTS = [
    {"GAINS4_EventID": "E1", "SiteName": "A", "StateProv": "S", "District": "D", "SiteLatitude": 10.0, "SiteLongitude": 20.0, "EventDate": "2018-01-01"},
    {"GAINS4_EventID": "E2", "SiteName": "A", "StateProv": "S", "District": "D", "SiteLatitude": 10.0, "SiteLongitude": 20.0, "EventDate": "2018-02-01"},
    {"GAINS4_EventID": "E3", "SiteName": "A", "StateProv": "S", "District": "D", "SiteLatitude": 10.0, "SiteLongitude": 20.0, "EventDate": "2018-03-01"},
    {"GAINS4_EventID": "E4", "SiteName": "B", "StateProv": "S", "District": "K", "SiteLatitude": 11.5, "SiteLongitude": 21.25, "EventDate": "2018-01-05"},
    {"GAINS4_EventID": "E5", "SiteName": "C", "StateProv": "T", "District": "M", "SiteLatitude": 12.0, "SiteLongitude": 22.0, "EventDate": "2018-04-09"},
]

ANIMALS = [
    {"GAINS4_AnimalID": "A1", "GAINS4_EventID": "E1", "Taxagroup": "bats"},
    {"GAINS4_AnimalID": "A2", "GAINS4_EventID": "E4", "Taxagroup": "rodents"},
    {"GAINS4_AnimalID": "A3", "GAINS4_EventID": "E1", "Taxagroup": "bats"},
    {"GAINS4_AnimalID": "A4", "GAINS4_EventID": "E5", "Taxagroup": "primates"},
]

POLYGONS = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {"NAME_1": "Region"},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[19.0, 9.0], [23.0, 9.0], [23.0, 13.0], [19.0, 13.0], [19.0, 9.0]]],
            },
        }
    ],
}


@pytest.fixture
def events():
    return pd.DataFrame(EVENTS)


@pytest.fixture
def animals():
    return pd.DataFrame(ANIMALS)


@pytest.fixture
def polygons():
    return json.loads(json.dumps(POLYGONS))


@pytest.fixture
def input_files(tmp_path, events, animals, polygons):
    events_path = tmp_path / "event_short.csv"
    animals_path = tmp_path / "animal_short.csv"
    polygons_path = tmp_path / "regions.geojson"
    events.to_csv(events_path, index=False)
    animals.to_csv(animals_path, index=False)
    polygons_path.write_text(json.dumps(polygons), encoding="utf-8")
    return events_path, animals_path, polygons_path
