"""Normalization pipeline: raw export arrays → canonical entities + stats.

Steps, each finishing before the next starts:
1. Normalize tunes (with aliases and musical features)
2. Normalize sets
3. Normalize recordings
4. Normalize sessions
5. Link sets → tunes, then recordings → tunes
6. Generate search text for tunes and sessions
7. Hand the collections (plus the derived user list) to an exporter
8. Return ImportStats

Per-row failures are collected as RowErrors.  Anything else (a loader or
exporter failing) propagates to the caller.
"""

from dataclasses import dataclass, field

from tunebook.config import MAX_ERRORS_SHOWN
from tunebook.link import link_recordings_to_tunes, link_sets_to_tunes
from tunebook.models import ImportStats
from tunebook.normalize import (
    extract_users,
    normalize_recordings,
    normalize_sessions,
    normalize_sets,
    normalize_tunes,
)
from tunebook.search import generate_search_vectors


@dataclass
class RawInputs:
    tunes: list = field(default_factory=list)
    sets: list = field(default_factory=list)
    recordings: list = field(default_factory=list)
    sessions: list = field(default_factory=list)
    aliases: list = field(default_factory=list)
    popularity: list = field(default_factory=list)


@dataclass
class PipelineOutput:
    tunes: list
    sets: list
    recordings: list
    sessions: list
    users: list
    searchable_tunes: list
    searchable_sessions: list
    unresolved: list
    stats: ImportStats


def process(inputs, strict_links=False, verbose=True):
    """Run normalization, linking and search projection over raw inputs.

    With strict_links, references to unknown tunes are added to the error
    list; otherwise they are only reported.
    """
    if verbose:
        print("Starting TheSession data processing...")
    errors = []

    users = extract_users(inputs.tunes, inputs.sets, verbose=verbose)

    tunes, tune_errors = normalize_tunes(inputs.tunes, inputs.aliases, verbose=verbose)
    errors.extend(tune_errors)

    sets, set_errors = normalize_sets(inputs.sets, verbose=verbose)
    errors.extend(set_errors)

    recordings, recording_errors = normalize_recordings(inputs.recordings, verbose=verbose)
    errors.extend(recording_errors)

    sessions, session_errors = normalize_sessions(inputs.sessions, verbose=verbose)
    errors.extend(session_errors)

    unresolved = link_sets_to_tunes(sets, tunes, verbose=verbose)
    unresolved += link_recordings_to_tunes(recordings, tunes, verbose=verbose)
    if unresolved and verbose:
        print(f"  {len(unresolved)} references to unknown tunes")
    if strict_links:
        errors.extend(ref.to_error() for ref in unresolved)

    searchable_tunes, searchable_sessions = generate_search_vectors(
        tunes, sessions, verbose=verbose)

    stats = ImportStats(
        tunes_processed=len(tunes),
        sets_processed=len(sets),
        recordings_processed=len(recordings),
        sessions_processed=len(sessions),
        aliases_processed=len(inputs.aliases),
        errors=errors,
    )
    return PipelineOutput(
        tunes=tunes,
        sets=sets,
        recordings=recordings,
        sessions=sessions,
        users=users,
        searchable_tunes=searchable_tunes,
        searchable_sessions=searchable_sessions,
        unresolved=unresolved,
        stats=stats,
    )


def run(inputs, exporter=None, strict_links=False, verbose=True):
    """Process inputs, pass the output to exporter (if any), return ImportStats.

    A successful return means the run did not raise; check
    ``len(stats.errors)`` for data quality.
    """
    output = process(inputs, strict_links=strict_links, verbose=verbose)
    if exporter is not None:
        exporter(output)
    return output.stats


def print_stats(stats, max_errors=MAX_ERRORS_SHOWN):
    """Print the completion report: counts, then the first few errors."""
    print("\n=== Processing Complete ===")
    print(f"  Tunes:       {stats.tunes_processed}")
    print(f"  Sets:        {stats.sets_processed}")
    print(f"  Recordings:  {stats.recordings_processed}")
    print(f"  Sessions:    {stats.sessions_processed}")
    print(f"  Aliases:     {stats.aliases_processed}")
    print(f"  Errors:      {len(stats.errors)}")

    if stats.errors:
        print("\nErrors:")
        for error in stats.errors[:max_errors]:
            print(f"  - {error.entity_type} {error.entity_id}: {error.error_message}")
        remaining = len(stats.errors) - max_errors
        if remaining > 0:
            print(f"  ... and {remaining} more")
