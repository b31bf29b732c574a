"""Group flat export rows into canonical entities.

Each normalize_* function takes raw rows (plain dicts) and returns
``(entities, errors)``.  A row that fails coercion becomes one RowError and
contributes nothing to the output; the run never aborts on a bad row.

Grouping is first-seen ordered everywhere:
- tunes by tune_id, each owning its settings in input order
- sets by set id, compositions sorted by position after all rows are read
- recordings by (artist, album), tracks by track number, tunes per track
- sessions one-to-one with rows
- artist ids and user ids are assigned 1, 2, 3... on first sighting
"""

import math
import re
import time
from datetime import datetime

from tunebook.config import PROGRESS_INTERVAL
from tunebook.features import extract_features
from tunebook.http_utils import progress_line
from tunebook.models import (
    Coordinates,
    NormalizedRecording,
    NormalizedSession,
    NormalizedSetting,
    NormalizedTune,
    NormalizedTuneSet,
    RecordingTrack,
    RowError,
    SessionLocation,
    SetComposition,
    TrackTune,
    User,
)
from tunebook.records import row_id


class Registry:
    """Insertion-ordered map from natural key to entity.

    The only way entities get created during grouping is get_or_create(),
    so the first row seen for a key always wins and iteration order is
    first-seen order.
    """

    def __init__(self):
        self._items = {}

    def __contains__(self, key):
        return key in self._items

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items.values())

    def get(self, key, default=None):
        return self._items.get(key, default)

    def get_or_create(self, key, factory):
        """Return the entity for key, calling factory() to create it if new."""
        if key not in self._items:
            self._items[key] = factory()
        return self._items[key]

    def values(self):
        return list(self._items.values())


# ── Coercion helpers ───────────────────────────────────────────────────

def parse_int(value):
    """Strict integer parse of an id/position field ("12" → 12, "12a" raises)."""
    if isinstance(value, bool):
        raise TypeError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"expected an integer string, got {value!r}")


def parse_float(value):
    """Strict parse of a decimal-degree string; NaN and infinities raise."""
    if isinstance(value, bool):
        raise TypeError(f"expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        result = float(value.strip())
    else:
        raise TypeError(f"expected a number string, got {value!r}")
    if not math.isfinite(result):
        raise ValueError(f"not a finite number: {value!r}")
    return result


def parse_date(value):
    """Parse an ISO-8601 timestamp ("2001-05-14 20:22:47", "...T...Z")."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise TypeError(f"expected a date string, got {value!r}")
    s = value.strip()
    if not s:
        raise ValueError("empty date")
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


def _text(value):
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _error(entity_type, row, action, exc):
    return RowError.from_row(
        entity_type, row_id(row, entity_type),
        f"Failed to {action}: {exc}", row,
    )


# ── Tunes ──────────────────────────────────────────────────────────────

def index_aliases(raw_aliases):
    """Build {tune_id: [alias, ...]} in input order.

    Returns (index, errors); rows with a non-integer tune id are reported
    under entity type "alias".
    """
    index = {}
    errors = []
    for row in raw_aliases:
        try:
            tune_id = parse_int(row["tune_id"])
            alias = row["alias"]
            if not isinstance(alias, str):
                raise TypeError(f"alias must be a string, got {alias!r}")
        except Exception as e:
            errors.append(_error("alias", row, "index alias", e))
            continue
        index.setdefault(tune_id, []).append(alias)
    return index, errors


def normalize_tunes(raw_tunes, raw_aliases, verbose=True):
    """Group setting rows into tunes, attaching aliases and musical features.

    Returns (tunes, errors).  Duplicate (tune_id, setting_id) rows are kept
    as separate settings.
    """
    if verbose:
        print("Normalizing tunes...")
    alias_index, errors = index_aliases(raw_aliases)
    tunes = Registry()

    total = len(raw_tunes)
    processed = 0
    t_start = time.monotonic()

    for row in raw_tunes:
        try:
            tune_id = parse_int(row["tune_id"])
            created_at = parse_date(row["date"])
            abc = _text(row.get("abc"))
            setting = NormalizedSetting(
                setting_id=parse_int(row["setting_id"]),
                tune_id=tune_id,
                abc_notation=abc,
                contributor_username=_text(row.get("username")),
                created_at=created_at,
                musical_features=extract_features(abc),
            )
        except Exception as e:
            errors.append(_error("tune", row, "normalize tune", e))
            continue

        tune = tunes.get_or_create(tune_id, lambda: NormalizedTune(
            tune_id=tune_id,
            canonical_name=_text(row.get("name")),
            type=_text(row.get("type")),
            meter=_text(row.get("meter")),
            mode=_text(row.get("mode")),
            created_at=created_at,
            aliases=list(alias_index.get(tune_id, [])),
        ))
        tune.settings.append(setting)

        processed += 1
        if verbose and processed % PROGRESS_INTERVAL == 0:
            elapsed = time.monotonic() - t_start
            print(f"    {progress_line(processed, total, elapsed)} "
                  f"settings with musical features")

    result = tunes.values()
    if verbose:
        print(f"  Normalized {len(result)} unique tunes with {processed} settings "
              f"({len(errors)} errors)")
    return result, errors


# ── Sets ───────────────────────────────────────────────────────────────

def normalize_sets(raw_sets, verbose=True):
    """Group membership rows into sets ordered by position.

    Returns (sets, errors).  Duplicate positions are kept; the sort is
    stable so equal positions stay in input order.
    """
    if verbose:
        print("Normalizing tune sets...")
    errors = []
    sets = Registry()

    for row in raw_sets:
        try:
            set_id = parse_int(row["tuneset"])
            created_at = parse_date(row["date"])
            composition = SetComposition(
                set_id=set_id,
                tune_id=parse_int(row["tune_id"]),
                setting_id=parse_int(row["setting_id"]),
                position_in_set=parse_int(row["settingorder"]),
                tune_name=_text(row.get("name")),
                tune_type=_text(row.get("type")),
            )
        except Exception as e:
            errors.append(_error("set", row, "normalize set", e))
            continue

        tune_set = sets.get_or_create(set_id, lambda: NormalizedTuneSet(
            set_id=set_id,
            creator_username=_text(row.get("username")),
            created_at=created_at,
        ))
        tune_set.compositions.append(composition)

    for tune_set in sets:
        tune_set.compositions.sort(key=lambda c: c.position_in_set)

    result = sets.values()
    if verbose:
        print(f"  Normalized {len(result)} unique sets ({len(errors)} errors)")
    return result, errors


# ── Recordings ─────────────────────────────────────────────────────────

def _find_track(recording, track_number):
    for track in recording.tracks:
        if track.track_number == track_number:
            return track
    return None


def normalize_recordings(raw_recordings, verbose=True):
    """Group track rows into recordings → tracks → tunes.

    Returns (recordings, errors).  A recording is identified by
    (artist, album) and takes its id from the first row seen.  Rows with
    an empty tune_id still create their track but add no tune to it.
    """
    if verbose:
        print("Normalizing recordings...")
    errors = []
    artists = Registry()
    recordings = Registry()

    for row in raw_recordings:
        try:
            row_number = parse_int(row["id"])
            track_number = parse_int(row["track"])
            track_id = int(f"{row_number}{track_number}")
            artist_name = _text(row.get("artist"))
            album_name = _text(row.get("recording"))
            track_tune = None
            raw_tune_id = row.get("tune_id")
            if raw_tune_id is not None and _text(raw_tune_id) != "":
                track_tune = TrackTune(
                    tune_id=parse_int(raw_tune_id),
                    tune_name=_text(row.get("tune")),
                    position_in_track=parse_int(row["number"]),
                )
        except Exception as e:
            errors.append(_error("recording", row, "normalize recording", e))
            continue

        artist_id = artists.get_or_create(artist_name, lambda: len(artists) + 1)
        recording = recordings.get_or_create(
            (artist_name, album_name),
            lambda: NormalizedRecording(
                recording_id=row_number,
                album_name=album_name,
                artist_name=artist_name,
                artist_id=artist_id,
            ),
        )

        track = _find_track(recording, track_number)
        if track is None:
            track = RecordingTrack(
                track_id=track_id,
                track_number=track_number,
                track_name=f"Track {track_number}",
            )
            recording.tracks.append(track)

        if track_tune is not None:
            track.tunes.append(track_tune)

    result = recordings.values()
    if verbose:
        print(f"  Normalized {len(result)} unique recordings from "
              f"{len(artists)} artists ({len(errors)} errors)")
    return result, errors


# ── Sessions ───────────────────────────────────────────────────────────

_EMPTY_PART_RE = re.compile(r",(?: ,)+")


def build_full_address(address, town, area, country):
    """Join address parts with ", " and collapse the ", ," left by blanks."""
    joined = ", ".join(_text(p) for p in (address, town, area, country))
    return _EMPTY_PART_RE.sub(",", joined)


def normalize_sessions(raw_sessions, verbose=True):
    """Map venue rows to sessions; rows with bad ids/coordinates/dates are dropped.

    Returns (sessions, errors).
    """
    if verbose:
        print("Normalizing sessions...")
    errors = []
    sessions = []

    for row in raw_sessions:
        try:
            town = _text(row.get("town"))
            area = _text(row.get("area"))
            country = _text(row.get("country"))
            session = NormalizedSession(
                session_id=parse_int(row["id"]),
                venue_name=_text(row.get("name")),
                full_address=build_full_address(row.get("address"), town, area, country),
                location=SessionLocation(
                    town=town,
                    area=area,
                    country=country,
                    coordinates=Coordinates(
                        latitude=parse_float(row["latitude"]),
                        longitude=parse_float(row["longitude"]),
                    ),
                ),
                created_at=parse_date(row["date"]),
            )
        except Exception as e:
            errors.append(_error("session", row, "normalize session", e))
            continue
        sessions.append(session)

    if verbose:
        print(f"  Normalized {len(sessions)} sessions ({len(errors)} errors)")
    return sessions, errors


# ── Users & popularity ─────────────────────────────────────────────────

def extract_users(raw_tunes, raw_sets, verbose=True):
    """Unique contributor usernames (tunes first, then sets) with sequential ids.

    Numeric usernames are taken as their string form; any other non-string
    value is ignored.
    """
    users = Registry()
    for row in list(raw_tunes) + list(raw_sets):
        username = row.get("username") if isinstance(row, dict) else None
        if isinstance(username, (int, float)) and not isinstance(username, bool):
            username = _text(username)
        if isinstance(username, str) and username:
            users.get_or_create(username, lambda: User(len(users) + 1, username))
    result = users.values()
    if verbose:
        print(f"  Extracted {len(result)} unique users")
    return result


def popularity_scores(raw_popularity):
    """Map tune_id → tunebook count.  Returns (scores, errors); first row wins."""
    scores = {}
    errors = []
    for row in raw_popularity:
        try:
            tune_id = parse_int(row["tune_id"])
            count = parse_int(row["tunebooks"])
        except Exception as e:
            errors.append(_error("tune", row, "read popularity", e))
            continue
        scores.setdefault(tune_id, count)
    return scores, errors
