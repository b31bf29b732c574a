"""Canonical entities produced by the normalization pipeline."""

import copy
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import datetime


@dataclass(frozen=True)
class MusicalFeatures:
    key_signature: str
    time_signature: str
    note_count: int
    melodic_contour: tuple  # sign of each step: -1, 0, 1
    intervals: tuple        # signed semitone deltas
    rhythmic_pattern: str


@dataclass
class NormalizedSetting:
    setting_id: int
    tune_id: int
    abc_notation: str
    contributor_username: str
    created_at: datetime
    musical_features: MusicalFeatures = None


@dataclass
class NormalizedTune:
    tune_id: int
    canonical_name: str
    type: str
    meter: str
    mode: str
    created_at: datetime
    aliases: list = field(default_factory=list)
    popularity_score: int = 0
    settings: list = field(default_factory=list)


@dataclass
class SetComposition:
    set_id: int
    tune_id: int
    setting_id: int
    position_in_set: int
    tune_name: str
    tune_type: str


@dataclass
class NormalizedTuneSet:
    set_id: int
    creator_username: str
    created_at: datetime
    is_public: bool = True
    compositions: list = field(default_factory=list)


@dataclass
class TrackTune:
    tune_id: int
    tune_name: str
    position_in_track: int


@dataclass
class RecordingTrack:
    track_id: int
    track_number: int
    track_name: str
    tunes: list = field(default_factory=list)


@dataclass
class NormalizedRecording:
    recording_id: int
    album_name: str
    artist_name: str
    artist_id: int
    tracks: list = field(default_factory=list)


@dataclass
class Coordinates:
    latitude: float
    longitude: float


@dataclass
class SessionLocation:
    town: str
    area: str
    country: str
    coordinates: Coordinates


@dataclass
class NormalizedSession:
    session_id: int
    venue_name: str
    full_address: str
    location: SessionLocation
    created_at: datetime
    is_active: bool = True


@dataclass
class User:
    user_id: int
    username: str


@dataclass
class RowError:
    """One raw row that could not be normalized.

    entity_type is one of tune/set/recording/session/alias; raw_data is a
    copy of the offending row for postmortem debugging.
    """
    entity_type: str
    entity_id: str
    error_message: str
    raw_data: object = None

    @classmethod
    def from_row(cls, entity_type, entity_id, message, row):
        return cls(entity_type, entity_id, message, copy.deepcopy(row))


@dataclass
class ImportStats:
    tunes_processed: int = 0
    sets_processed: int = 0
    recordings_processed: int = 0
    sessions_processed: int = 0
    aliases_processed: int = 0
    errors: list = field(default_factory=list)

    def to_dict(self):
        return to_document(self)


# ── Search annotations ─────────────────────────────────────────────────

@dataclass(frozen=True)
class SearchableTune:
    tune: NormalizedTune
    search_text: str


@dataclass(frozen=True)
class SearchableSession:
    session: NormalizedSession
    search_text: str


# ── Serialization ──────────────────────────────────────────────────────

def _jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def to_document(entity):
    """Convert a dataclass entity to a JSON-ready dict (ISO-8601 dates)."""
    if not is_dataclass(entity):
        raise TypeError(f"not a dataclass instance: {entity!r}")
    return _jsonable(asdict(entity))
