"""HTTP session, retrying GET and progress formatting."""

import time

import requests


def create_session(user_agent):
    """Create a requests.Session with a User-Agent header."""
    s = requests.Session()
    s.headers["User-Agent"] = user_agent
    return s


def _is_retryable(resp):
    return resp.status_code == 429 or resp.status_code >= 500


def _retry_delay(resp, attempt):
    """Seconds to wait before the next try; Retry-After wins when numeric."""
    value = resp.headers.get("Retry-After", "")
    if value.isdigit():
        return int(value)
    return 2 ** attempt


def get_with_retry(session, url, params=None, rate_limit=0.5, max_retries=3,
                   timeout=60):
    """GET url, backing off on 429/5xx up to max_retries times.

    The request after the last retry raises requests.HTTPError if it still
    fails.  Sleeps rate_limit seconds after a success.  Returns the
    requests.Response.
    """
    retries = 0
    while True:
        resp = session.get(url, params=params, timeout=timeout)
        if _is_retryable(resp) and retries < max_retries:
            delay = _retry_delay(resp, retries)
            retries += 1
            print(f"    HTTP {resp.status_code} on {url}, retry {retries}/{max_retries} "
                  f"in {delay}s")
            time.sleep(delay)
            continue
        resp.raise_for_status()
        time.sleep(rate_limit)
        return resp


def progress_line(done, total, elapsed):
    """Format ``[done/total pct% elapsed eta]`` for long-running loops."""
    pct = done * 100 // total if total else 0
    rate = done / elapsed if elapsed > 0 else 0
    eta = (total - done) / rate if rate > 0 else 0
    return f"[{done}/{total} {pct:>3}% {elapsed:.0f}s eta {eta:.0f}s]"
