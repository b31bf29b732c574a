"""Field names of the raw TheSession.org export rows.

Rows are plain dicts straight out of ``json.load``; every value is a string
in the real dump.  One row per:

    tune: one setting (arrangement) of a tune; many rows share tune_id
    set: one (set, position, tune) membership
    recording: one (recording, track, tune) appearance
    session: one venue
    alias: one alternate name of a tune
    popularity: how many member tunebooks include a tune
"""

TUNE_FIELDS = ("tune_id", "setting_id", "name", "type", "meter", "mode",
               "abc", "date", "username")

SET_FIELDS = ("tuneset", "date", "member_id", "username", "settingorder",
              "name", "tune_id", "setting_id", "type", "meter", "mode", "abc")

RECORDING_FIELDS = ("id", "artist", "recording", "track", "number", "tune",
                    "tune_id")

SESSION_FIELDS = ("id", "name", "address", "town", "area", "country",
                  "latitude", "longitude", "date")

ALIAS_FIELDS = ("tune_id", "alias", "name")

POPULARITY_FIELDS = ("name", "tune_id", "tunebooks")

# Natural key of each row kind (used to label errors)
ROW_KEYS = {
    "tune": "tune_id",
    "set": "tuneset",
    "recording": "id",
    "session": "id",
    "alias": "tune_id",
}


def row_id(row, entity_type):
    """Natural-key value of a raw row as a string ("" if absent)."""
    if not isinstance(row, dict):
        return ""
    value = row.get(ROW_KEYS[entity_type])
    return "" if value is None else str(value)
