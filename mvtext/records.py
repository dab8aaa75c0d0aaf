"""Record-array extraction and reconstruction.

Most RPG Maker database files are a JSON array of records with a ``null``
placeholder at index 0::

    [null, {"id": 1, "name": "...", "description": "..."}, ...]

Extraction emits one ExtractedUnit per non-empty declared field with the
address ``[index].field``.  Reconstruction finds the record again, either by
its ``id`` (tolerant of reordering) or by the index baked into the address
(cross-checked against the id), and writes the text back through the
address grammar in json_path.
"""

import logging
from dataclasses import dataclass

from .documents import dump_document, load_document
from .errors import DocumentParseError, PathNotFound, PathSyntaxError
from .json_path import parse_path, set_string, split_leading_index
from .project_model import Diagnostic, ExtractedUnit, Reconstruction

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordFields:
    """Translatable fields of one record-array category.

    ``fields`` entries are plain field names (``"name"``) or list fan-out
    accessors (``"learnings[].note"``) for text inside a list of sub-objects.
    """
    label: str
    fields: tuple
    id_field: str = "id"


def record_id(record, id_field: str = "id") -> int:
    """Declared identifier of a record; 0 when missing or not an integer."""
    if not isinstance(record, dict):
        return 0
    value = record.get(id_field, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def is_translatable(text) -> bool:
    """Only non-blank strings are worth sending to a translator."""
    return isinstance(text, str) and bool(text.strip())


def iter_field_values(record: dict, accessor: str):
    """Yield (relative_path, value) pairs for one field accessor."""
    if "[]." in accessor:
        list_name, sub_field = accessor.split("[].", 1)
        items = record.get(list_name)
        if not isinstance(items, list):
            return
        for j, item in enumerate(items):
            if isinstance(item, dict):
                yield f"{list_name}[{j}].{sub_field}", item.get(sub_field)
        return
    yield accessor, record.get(accessor)


def extract_record_array(document, source_file: str, declaration: RecordFields) -> list:
    """Extract translatable text from an array-of-records document.

    ``null`` slots, non-object elements and records whose id is 0 are
    skipped.  Units come out in array order, then field-declaration order.

    Raises:
        DocumentParseError: the document is not an array.
    """
    if not isinstance(document, list):
        raise DocumentParseError(f"{declaration.label} is not a JSON array.")

    units = []
    for index, record in enumerate(document):
        if record is None:
            continue
        if not isinstance(record, dict):
            log.debug("%s: skipping non-record element at index %d", declaration.label, index)
            continue
        rid = record_id(record, declaration.id_field)
        if rid == 0:
            continue
        for accessor in declaration.fields:
            for rel_path, value in iter_field_values(record, accessor):
                if is_translatable(value):
                    units.append(ExtractedUnit(
                        record_id=rid,
                        text=value,
                        source_file=source_file,
                        path=f"[{index}].{rel_path}",
                    ))
    return units


# ── Reconstruction ─────────────────────────────────────────────────

def _warn(diagnostics: list, label: str, unit, message: str):
    log.warning("%s: %s (id %s, path %r)", label, message, unit.record_id, unit.path)
    diagnostics.append(Diagnostic(label, unit.record_id, unit.path, message))


def _write(target, rel_path, unit, label: str, diagnostics: list) -> bool:
    """set_string() with resolution failures turned into diagnostics."""
    if not isinstance(unit.text_to_write, str):
        _warn(diagnostics, label, unit, "Unit text is not a string")
        return False
    try:
        set_string(target, rel_path, unit.text_to_write)
        return True
    except (PathNotFound, PathSyntaxError) as exc:
        _warn(diagnostics, label, unit, f"Failed to update path: {exc}")
        return False


def _parse_array(original, label: str) -> list:
    document = load_document(original, label) if isinstance(original, str) else original
    if not isinstance(document, list):
        raise DocumentParseError(f"Failed to parse {label} as array.")
    return document


def apply_by_id(records: list, units: list, label: str = "document",
                id_field: str = "id") -> list:
    """Patch *records* in place, locating each unit's record by identifier.

    The unit path is taken relative to the matched record (``name``).  A
    leading ``[index]`` (``[3].name``) is accepted and ignored, since the
    identifier already says which record is meant.

    Returns:
        List of Diagnostic for units that could not be applied.
    """
    diagnostics = []
    for unit in units:
        target = None
        # Id 0 means no owning record; records without an id never match
        if unit.record_id != 0:
            for record in records:
                if (isinstance(record, dict) and id_field in record
                        and record_id(record, id_field) == unit.record_id):
                    target = record
                    break
        if target is None:
            _warn(diagnostics, label, unit, f"Object with id {unit.record_id} not found")
            continue

        try:
            index, rel_path = split_leading_index(unit.path)
        except PathSyntaxError as exc:
            _warn(diagnostics, label, unit, f"Invalid path: {exc}")
            continue
        if not rel_path:
            _warn(diagnostics, label, unit, "Path lacks a field part after the index")
            continue
        _write(target, rel_path, unit, label, diagnostics)
    return diagnostics


def apply_by_path_index(records: list, units: list, label: str = "document",
                        id_field: str = "id") -> list:
    """Patch *records* in place, locating each unit's record by ``[index]``.

    The record found at the index must carry the unit's identifier; a
    mismatch means the translation set is stale and the unit is skipped.
    Records without an identifier field are patched by position alone.
    """
    diagnostics = []
    for unit in units:
        try:
            index, rel_path = split_leading_index(unit.path)
        except PathSyntaxError as exc:
            _warn(diagnostics, label, unit, f"Invalid path: {exc}")
            continue
        if index is None:
            _warn(diagnostics, label, unit, "Invalid path format (top level index missing)")
            continue
        if index >= len(records) or records[index] is None:
            _warn(diagnostics, label, unit, f"Index {index} out of bounds or null")
            continue
        if not rel_path:
            _warn(diagnostics, label, unit, "Path lacks a field part after the index")
            continue

        record = records[index]
        if isinstance(record, dict) and id_field in record:
            found = record_id(record, id_field)
            if found != unit.record_id:
                _warn(diagnostics, label, unit,
                      f"Mismatched id at index {index}: record has {found}")
                continue
        _write(record, rel_path, unit, label, diagnostics)
    return diagnostics


def apply_at_root(document, units: list, label: str = "document") -> list:
    """Patch *document* in place with each unit's path taken from the root."""
    diagnostics = []
    for unit in units:
        try:
            segments = parse_path(unit.path)
        except PathSyntaxError as exc:
            _warn(diagnostics, label, unit, f"Invalid path: {exc}")
            continue
        _write(document, segments, unit, label, diagnostics)
    return diagnostics


def _finish(document, diagnostics: list, label: str) -> Reconstruction:
    return Reconstruction(
        text=dump_document(document, label),
        document=document,
        diagnostics=diagnostics,
    )


def reconstruct_by_id(original, units: list, label: str = "document",
                      id_field: str = "id") -> Reconstruction:
    """Re-apply translations to an array-of-records document, matching by id.

    Args:
        original: JSON text, or an already parsed array (patched in place).
        units: TranslatedUnit list for this document.

    Raises:
        DocumentParseError: *original* is not a JSON array.
        DocumentSerializeError: the patched array cannot be serialized.
    """
    records = _parse_array(original, label)
    return _finish(records, apply_by_id(records, units, label, id_field), label)


def reconstruct_by_path_index(original, units: list, label: str = "document",
                              id_field: str = "id") -> Reconstruction:
    """Re-apply translations to an array-of-records document, matching by position."""
    records = _parse_array(original, label)
    return _finish(records, apply_by_path_index(records, units, label, id_field), label)


def reconstruct_at_root(original, units: list, label: str = "document") -> Reconstruction:
    """Re-apply translations whose paths are relative to the document root."""
    document = load_document(original, label) if isinstance(original, str) else original
    return _finish(document, apply_at_root(document, units, label), label)
