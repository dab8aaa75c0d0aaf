"""Data model for extracted / translated text units and reconstruction results."""

import json
import os
from dataclasses import dataclass, field, asdict
from typing import Optional

from .errors import DocumentParseError


@dataclass(frozen=True)
class ExtractedUnit:
    """A single translatable fragment found in a data file."""
    record_id: int         # Owning record id; 0 = document-scoped (System.json, displayName)
    text: str              # Source text, exactly as found
    source_file: str       # e.g. "www/data/Actors.json"
    path: str              # Address inside the document, e.g. "[1].name"


@dataclass
class TranslatedUnit:
    """An ExtractedUnit plus the outcome of translating it."""
    record_id: int
    original_text: str
    translated_text: str
    source_file: str
    path: str
    origin: str = ""              # e.g. "ollama:qwen3:14b", "manual"
    error: Optional[str] = None   # Set when the translation attempt failed

    @classmethod
    def from_extracted(cls, unit: ExtractedUnit, translated_text: str = "",
                       origin: str = "", error: Optional[str] = None) -> "TranslatedUnit":
        return cls(
            record_id=unit.record_id,
            original_text=unit.text,
            translated_text=translated_text,
            source_file=unit.source_file,
            path=unit.path,
            origin=origin,
            error=error,
        )

    @property
    def text_to_write(self) -> str:
        """Text the reconstructor writes back.

        A failed or empty translation is untrustworthy, so the original text
        goes back in its place.
        """
        if self.error is not None or not self.translated_text:
            return self.original_text
        return self.translated_text


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem met while re-applying one unit."""
    source: str            # File label, e.g. "Actors.json"
    record_id: int
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.source}: id {self.record_id} at {self.path!r}: {self.message}"


@dataclass
class Reconstruction:
    """Result of a reconstruction call: the patched document and its warnings."""
    text: str                                   # Serialized (pretty-printed) document
    document: object = None                     # Patched tree value
    diagnostics: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every unit was applied."""
        return not self.diagnostics


# ── Unit list persistence ──────────────────────────────────────────

def save_units(path: str, units: list):
    """Write a list of ExtractedUnit / TranslatedUnit to a JSON file."""
    os.makedirs(os.path.dirname(path) if os.path.dirname(path) else ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([asdict(u) for u in units], f, ensure_ascii=False, indent=2)


def _read_unit_dicts(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise DocumentParseError(f"Failed to parse units file {path}: {e}") from e
    if not isinstance(data, list) or not all(isinstance(u, dict) for u in data):
        raise DocumentParseError(f"Units file {path} is not a JSON array of objects.")
    return data


def _check_unit(unit, path: str):
    """Reject units whose fields have the wrong JSON types."""
    if isinstance(unit.record_id, bool) or not isinstance(unit.record_id, int):
        raise DocumentParseError(
            f"Units file {path}: record_id {unit.record_id!r} is not an integer")
    text_fields = ["source_file", "path"]
    if isinstance(unit, TranslatedUnit):
        text_fields += ["original_text", "translated_text", "origin"]
        if unit.error is not None and not isinstance(unit.error, str):
            raise DocumentParseError(
                f"Units file {path}: error at {unit.path!r} is not a string")
    else:
        text_fields.append("text")
    for name in text_fields:
        if not isinstance(getattr(unit, name), str):
            raise DocumentParseError(
                f"Units file {path}: {name} at {unit.path!r} is not a string")
    return unit


def load_extracted_units(path: str) -> list:
    """Load ExtractedUnit records saved by save_units()."""
    try:
        return [_check_unit(ExtractedUnit(**u), path) for u in _read_unit_dicts(path)]
    except TypeError as e:
        raise DocumentParseError(f"Units file {path} does not hold extracted units: {e}") from e


def load_translated_units(path: str) -> list:
    """Load TranslatedUnit records saved by save_units().

    Files holding plain extracted units are accepted too; they load as
    untranslated units (empty translation, so the original text is kept).
    Every text field must be a string.
    """
    units = []
    for u in _read_unit_dicts(path):
        try:
            if "original_text" in u:
                unit = TranslatedUnit(**u)
            else:
                unit = TranslatedUnit.from_extracted(_check_unit(ExtractedUnit(**u), path))
        except TypeError as e:
            raise DocumentParseError(f"Units file {path} holds a malformed unit: {e}") from e
        units.append(_check_unit(unit, path))
    return units
