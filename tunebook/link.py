"""Check that set compositions and recording tracks point at known tunes.

The association already exists through the embedded tune_id fields, so a
resolved reference needs no further action.  Unresolved references are
collected and returned; the pipeline reports them, and only turns them into
RowErrors when asked to (strict_links).
"""

from dataclasses import dataclass

from tunebook.models import RowError


@dataclass(frozen=True)
class UnresolvedReference:
    entity_type: str   # "set" or "recording"
    entity_id: int     # set_id or recording_id
    tune_id: int

    def to_error(self):
        return RowError(
            entity_type=self.entity_type,
            entity_id=str(self.entity_id),
            error_message=f"References unknown tune {self.tune_id}",
        )


def tune_lookup(tunes):
    return {t.tune_id: t for t in tunes}


def link_sets_to_tunes(sets, tunes, verbose=True):
    """Return the compositions whose tune_id is not among tunes."""
    if verbose:
        print("Linking sets to tunes...")
    lookup = tune_lookup(tunes)
    unresolved = []
    for tune_set in sets:
        for composition in tune_set.compositions:
            if lookup.get(composition.tune_id) is None:
                unresolved.append(UnresolvedReference(
                    "set", tune_set.set_id, composition.tune_id))
    return unresolved


def link_recordings_to_tunes(recordings, tunes, verbose=True):
    """Return the track tunes whose tune_id is not among tunes."""
    if verbose:
        print("Linking recordings to tunes...")
    lookup = tune_lookup(tunes)
    unresolved = []
    for recording in recordings:
        for track in recording.tracks:
            for track_tune in track.tunes:
                if lookup.get(track_tune.tune_id) is None:
                    unresolved.append(UnresolvedReference(
                        "recording", recording.recording_id, track_tune.tune_id))
    return unresolved
