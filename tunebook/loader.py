"""Load the six raw export arrays from a data directory."""

import json
from pathlib import Path

from tunebook.config import INPUT_FILES
from tunebook.pipeline import RawInputs


def find_input(data_dir, filename):
    """Return the path of an input file, preferring data_dir/json/ over data_dir/.

    Raises FileNotFoundError naming both candidates if neither exists.
    """
    nested = Path(data_dir) / "json" / filename
    flat = Path(data_dir) / filename
    for path in (nested, flat):
        if path.is_file():
            return path
    raise FileNotFoundError(f"{filename} not found (tried {nested} and {flat})")


def load_array(path):
    """Parse a JSON file whose top-level value must be an array."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array, got {type(data).__name__}")
    return data


def load_raw_data(data_dir, verbose=True):
    """Load every input file into a RawInputs.  Any failure propagates."""
    if verbose:
        print(f"Loading raw JSON data from {data_dir}...")
    arrays = {
        name: load_array(find_input(data_dir, filename))
        for name, filename in INPUT_FILES.items()
    }
    inputs = RawInputs(**arrays)
    if verbose:
        print(f"  Loaded: {len(inputs.tunes)} tunes, {len(inputs.sets)} set entries, "
              f"{len(inputs.recordings)} recordings, {len(inputs.sessions)} sessions, "
              f"{len(inputs.aliases)} aliases, {len(inputs.popularity)} popularity rows")
    return inputs
