"""Summary statistics over a processed import.

Grouped counts (by tune type, mode, meter), settings per tune, note counts
from the musical features, and data-quality indicators (duplicate set
positions, unresolved tune references, errors by entity type).
"""

import statistics
from collections import Counter


def count_by(items, attr):
    """Count items by attribute value, most common first; blanks are 'unknown'."""
    counts = Counter(getattr(item, attr) or "unknown" for item in items)
    return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))


def _distribution(values):
    if not values:
        return {"mean": 0.0, "median": 0.0, "max": 0}
    return {
        "mean": statistics.mean(values),
        "median": statistics.median(values),
        "max": max(values),
    }


def duplicate_position_sets(sets):
    """Ids of sets in which two compositions share a position."""
    dupes = []
    for tune_set in sets:
        positions = [c.position_in_set for c in tune_set.compositions]
        if len(positions) != len(set(positions)):
            dupes.append(tune_set.set_id)
    return dupes


def summarize(output):
    """Compute the summary dict for a PipelineOutput."""
    tunes = output.tunes
    settings = [s for t in tunes for s in t.settings]
    note_counts = [s.musical_features.note_count for s in settings
                   if s.musical_features is not None]
    return {
        "tunes": len(tunes),
        "settings": len(settings),
        "by_type": count_by(tunes, "type"),
        "by_mode": count_by(tunes, "mode"),
        "by_meter": count_by(tunes, "meter"),
        "settings_per_tune": _distribution([len(t.settings) for t in tunes]),
        "note_count": _distribution(note_counts),
        "sets_with_duplicate_positions": len(duplicate_position_sets(output.sets)),
        "unresolved_references": len(output.unresolved),
        "errors_by_type": dict(Counter(e.entity_type for e in output.stats.errors)),
    }


def print_summary(summary, top=10):
    print(f"  Tunes:    {summary['tunes']}")
    print(f"  Settings: {summary['settings']}")

    for label, key in (("By type", "by_type"), ("By mode", "by_mode"),
                       ("By meter", "by_meter")):
        counts = summary[key]
        if counts:
            print(f"  {label}:")
            for value, n in list(counts.items())[:top]:
                print(f"    {value:15s} {n}")

    spt = summary["settings_per_tune"]
    print(f"  Settings per tune: mean {spt['mean']:.2f}, "
          f"median {spt['median']:.1f}, max {spt['max']}")
    nc = summary["note_count"]
    print(f"  Notes per setting: mean {nc['mean']:.1f}, "
          f"median {nc['median']:.1f}, max {nc['max']}")
    print(f"  Sets with duplicate positions: {summary['sets_with_duplicate_positions']}")
    print(f"  Unresolved tune references:    {summary['unresolved_references']}")
    if summary["errors_by_type"]:
        print("  Errors by entity type:")
        for entity_type, n in sorted(summary["errors_by_type"].items()):
            print(f"    {entity_type:15s} {n}")
