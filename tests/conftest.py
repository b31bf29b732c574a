"""Shared fixtures and raw-row builders for tunebook tests."""

import pytest

from tunebook import db
from tunebook.pipeline import RawInputs


@pytest.fixture
def conn():
    """Fresh in-memory database with schema applied."""
    c = db.get_connection(db_path=":memory:")
    yield c
    c.close()


def tune_row(tune_id="1", setting_id="10", name="Cooley's", type="reel",
             meter="4/4", mode="Edorian", abc="|:EBBA B2EB|", date="2001-05-14 20:22:47",
             username="jeremy"):
    return {
        "tune_id": tune_id, "setting_id": setting_id, "name": name, "type": type,
        "meter": meter, "mode": mode, "abc": abc, "date": date, "username": username,
    }


def set_row(tuneset="5", settingorder="1", tune_id="1", setting_id="10",
            name="Cooley's", type="reel", date="2010-02-01 10:00:00",
            username="fiddler", member_id="42"):
    return {
        "tuneset": tuneset, "date": date, "member_id": member_id,
        "username": username, "settingorder": settingorder, "name": name,
        "tune_id": tune_id, "setting_id": setting_id, "type": type,
        "meter": "4/4", "mode": "Edorian", "abc": "|:EBBA B2EB|",
    }


def recording_row(id="100", artist="Altan", recording="Harvest Storm", track="1",
                  number="1", tune="Cooley's", tune_id="1"):
    return {
        "id": id, "artist": artist, "recording": recording, "track": track,
        "number": number, "tune": tune, "tune_id": tune_id,
    }


def session_row(id="7", name="Hughes' Bar", address="Chapel Street",
                town="Dublin", area="Dublin", country="Ireland",
                latitude="53.348", longitude="-6.274", date="2005-03-01 09:00:00"):
    return {
        "id": id, "name": name, "address": address, "town": town, "area": area,
        "country": country, "latitude": latitude, "longitude": longitude,
        "date": date,
    }


def alias_row(tune_id="1", alias="Cooley's Reel", name="Cooley's"):
    return {"tune_id": tune_id, "alias": alias, "name": name}


def popularity_row(tune_id="1", tunebooks="1200", name="Cooley's"):
    return {"name": name, "tune_id": tune_id, "tunebooks": tunebooks}


def sample_inputs():
    """A small, fully valid export touching every entity type."""
    return RawInputs(
        tunes=[
            tune_row(tune_id="1", setting_id="10"),
            tune_row(tune_id="1", setting_id="11", username="ceolas"),
            tune_row(tune_id="2", setting_id="20", name="The Kesh", type="jig",
                     meter="6/8", mode="Gmajor", abc="K:Gmaj\nM:6/8\nGAG GAB"),
        ],
        sets=[
            set_row(tuneset="5", settingorder="2", tune_id="2", setting_id="20",
                    name="The Kesh", type="jig"),
            set_row(tuneset="5", settingorder="1"),
        ],
        recordings=[
            recording_row(id="100", track="1", number="1"),
            recording_row(id="101", track="1", number="2", tune="The Kesh", tune_id="2"),
        ],
        sessions=[session_row()],
        aliases=[alias_row(), alias_row(tune_id="2", alias="Kesh Jig", name="The Kesh")],
        popularity=[popularity_row(), popularity_row(tune_id="2", tunebooks="900")],
    )


@pytest.fixture
def inputs():
    return sample_inputs()
