"""JSON document reading and writing.

All data files go through here so parse and serialize failures surface as
DocumentParseError / DocumentSerializeError, distinct from OSError.
"""

import json
import os

from .errors import DocumentParseError, DocumentSerializeError


def load_document(text: str, label: str = "document"):
    """Parse JSON text into a tree of dicts, lists, str, numbers, bool and None."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        snippet = text[:100] if isinstance(text, str) else repr(text)[:100]
        raise DocumentParseError(
            f"Failed to parse {label}: {e}. Content snippet: {snippet!r}") from e


def dump_document(document, label: str = "document") -> str:
    """Serialize a tree back to pretty-printed JSON, keeping non-ASCII text as-is."""
    try:
        return json.dumps(document, ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as e:
        raise DocumentSerializeError(f"Failed to serialize {label}: {e}") from e


def read_text(path: str) -> str:
    """Read a data file as text; undecodable bytes are a parse failure."""
    with open(path, "rb") as f:
        raw = f.read()
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DocumentParseError(
            f"Failed to decode {os.path.basename(path)} as UTF-8: {e}") from e


def read_document(path: str):
    """Load a JSON data file from disk."""
    return load_document(read_text(path), os.path.basename(path))


def write_document(path: str, text: str):
    """Write serialized document text, creating parent folders as needed."""
    os.makedirs(os.path.dirname(path) if os.path.dirname(path) else ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
