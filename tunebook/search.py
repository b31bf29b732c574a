"""Flattened, lower-cased search text for tunes and sessions."""

from tunebook.models import SearchableSession, SearchableTune


def tune_search_text(tune):
    parts = [tune.canonical_name, *tune.aliases, tune.type, tune.mode]
    return " ".join(parts).lower()


def session_search_text(session):
    loc = session.location
    return " ".join([session.venue_name, loc.town, loc.area, loc.country]).lower()


def generate_search_vectors(tunes, sessions, verbose=True):
    """Wrap each tune and session with its search text.

    The canonical entities are not modified.  Returns
    (searchable_tunes, searchable_sessions) in input order.
    """
    if verbose:
        print("Generating search vectors...")
    searchable_tunes = [SearchableTune(t, tune_search_text(t)) for t in tunes]
    searchable_sessions = [SearchableSession(s, session_search_text(s)) for s in sessions]
    return searchable_tunes, searchable_sessions
