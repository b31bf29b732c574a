"""Download the TheSession.org data dump.

Files are fetched in parallel (one thread-local requests.Session per worker)
and written atomically into <data_dir>/json/, which is where the loader looks
first.  A file already present and parseable is skipped unless force=True.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from tunebook.cache import read_json, write_bytes
from tunebook.config import (
    DUMP_BASE_URL,
    DUMP_DEFAULT_WORKERS,
    DUMP_RATE_LIMIT,
    DUMP_USER_AGENT,
    INPUT_FILES,
)
from tunebook.http_utils import create_session, get_with_retry

_thread_local = threading.local()


def _thread_session():
    """Get or create a thread-local requests.Session."""
    if not hasattr(_thread_local, "session"):
        _thread_local.session = create_session(DUMP_USER_AGENT)
    return _thread_local.session


def dump_url(filename, base_url=DUMP_BASE_URL):
    return f"{base_url.rstrip('/')}/{filename}"


def _fetch_file(filename, dest_dir, base_url):
    """Fetch one file to dest_dir.  Returns (filename, size_in_bytes)."""
    resp = get_with_retry(_thread_session(), dump_url(filename, base_url),
                          rate_limit=DUMP_RATE_LIMIT)
    path = write_bytes(Path(dest_dir) / filename, resp.content)
    return filename, path.stat().st_size


def download_all(data_dir, filenames=None, force=False, workers=None,
                 base_url=DUMP_BASE_URL, verbose=True):
    """Download the dump files into data_dir/json/.

    Returns (downloaded, skipped, failed) lists of file names.
    """
    dest_dir = Path(data_dir) / "json"
    filenames = list(filenames or INPUT_FILES.values())
    workers = workers or DUMP_DEFAULT_WORKERS

    skipped = []
    to_fetch = []
    for filename in filenames:
        if not force and read_json(dest_dir / filename) is not None:
            skipped.append(filename)
        else:
            to_fetch.append(filename)

    if verbose:
        print(f"  {len(to_fetch)} to download, {len(skipped)} already present")

    downloaded = []
    failed = []
    t_start = time.monotonic()
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {
            pool.submit(_fetch_file, filename, dest_dir, base_url): filename
            for filename in to_fetch
        }
        for future in as_completed(futures):
            filename = futures[future]
            try:
                _, size = future.result()
            except Exception as e:
                failed.append(filename)
                if verbose:
                    print(f"    ERROR on {filename}: {e}")
                continue
            downloaded.append(filename)
            if verbose:
                print(f"    {filename}: {size / 1024 / 1024:.1f} MB")

    if verbose:
        elapsed = time.monotonic() - t_start
        print(f"  Done: {len(downloaded)} downloaded, {len(skipped)} skipped, "
              f"{len(failed)} failed ({elapsed:.0f}s)")
    return sorted(downloaded), skipped, sorted(failed)
