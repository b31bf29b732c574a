"""Write the processed collections as JSON documents."""

from pathlib import Path

from tunebook.cache import write_json
from tunebook.config import OUTPUT_FILES
from tunebook.models import to_document


def tune_documents(output):
    docs = []
    for item in output.searchable_tunes:
        doc = to_document(item.tune)
        doc["search_text"] = item.search_text
        docs.append(doc)
    return docs


def session_documents(output):
    docs = []
    for item in output.searchable_sessions:
        doc = to_document(item.session)
        doc["search_text"] = item.search_text
        docs.append(doc)
    return docs


def export_processed(output, output_dir, verbose=True):
    """Write processed_*.json files into output_dir.  Returns the written paths."""
    if verbose:
        print(f"Exporting processed data to {output_dir}...")
    collections = {
        "tunes": tune_documents(output),
        "sets": [to_document(s) for s in output.sets],
        "recordings": [to_document(r) for r in output.recordings],
        "sessions": session_documents(output),
        "users": [to_document(u) for u in output.users],
    }
    paths = []
    for name, docs in collections.items():
        path = write_json(Path(output_dir) / OUTPUT_FILES[name], docs, indent=2)
        paths.append(path)
        if verbose:
            print(f"  {path.name}: {len(docs)} documents")
    return paths
