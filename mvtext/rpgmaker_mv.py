"""RPG Maker MV/MZ data files: per-category extraction and reconstruction.

Each data file is dispatched by name to a Category.  Database arrays go
through the record-array helpers in records.py, event-bearing files
(CommonEvents, Troops, MapXXX) additionally route their command lists
through event_commands.py, and document-scoped strings (System.json, a
map's displayName) are addressed from the document root with record id 0.
"""

import logging
import os
import re
import shutil
from dataclasses import replace
from enum import Enum
from typing import Optional

from .documents import dump_document, load_document, read_document, read_text, write_document
from .errors import DocumentParseError, PathSyntaxError
from .event_commands import extract_from_commands, reconstruct_commands, units_for_commands
from .json_path import format_steps, path_steps
from .project_model import Diagnostic, ExtractedUnit, Reconstruction
from .records import (
    RecordFields, apply_at_root, apply_by_id, apply_by_path_index,
    extract_record_array, is_translatable, record_id,
)

log = logging.getLogger(__name__)

_MAP_FILE_RE = re.compile(r'^Map\d+\.json$', re.IGNORECASE)
# A System.json message key that can be written as one address segment
_PLAIN_KEY_RE = re.compile(r'^[^.\[\]]+$')


class Category(Enum):
    """Known data file kinds, keyed by file stem."""
    ACTORS = "Actors"
    CLASSES = "Classes"
    ITEMS = "Items"
    WEAPONS = "Weapons"
    ARMORS = "Armors"
    SKILLS = "Skills"
    STATES = "States"
    ENEMIES = "Enemies"
    TROOPS = "Troops"
    COMMON_EVENTS = "CommonEvents"
    SYSTEM = "System"
    MAP_INFOS = "MapInfos"
    MAP = "Map"
    UNKNOWN = ""

    @classmethod
    def from_filename(cls, filename: str) -> "Category":
        """Category for a data file name (``Actors.json``, ``Map012.json``, ...).

        Names match case-insensitively, like the Map pattern. Anything
        unrecognised is UNKNOWN, never an error.
        """
        base = os.path.basename(filename)
        if _MAP_FILE_RE.match(base):
            return cls.MAP
        stem, ext = os.path.splitext(base)
        if ext.lower() != ".json":
            return cls.UNKNOWN
        for member in cls:
            if member not in (cls.MAP, cls.UNKNOWN) and member.value.lower() == stem.lower():
                return member
        return cls.UNKNOWN


# Translatable fields per database file
RECORD_FIELDS = {
    Category.ACTORS:        RecordFields("Actors.json", ("name", "nickname", "profile", "note")),
    Category.CLASSES:       RecordFields("Classes.json", ("name", "note", "learnings[].note")),
    Category.ITEMS:         RecordFields("Items.json", ("name", "description", "note")),
    Category.WEAPONS:       RecordFields("Weapons.json", ("name", "description", "note")),
    Category.ARMORS:        RecordFields("Armors.json", ("name", "description", "note")),
    Category.SKILLS:        RecordFields("Skills.json", ("name", "description", "note",
                                                         "message1", "message2")),
    Category.STATES:        RecordFields("States.json", ("name", "note", "message1", "message2",
                                                         "message3", "message4")),
    Category.ENEMIES:       RecordFields("Enemies.json", ("name", "note")),
    Category.MAP_INFOS:     RecordFields("MapInfos.json", ("name",)),
    Category.TROOPS:        RecordFields("Troops.json", ("name",)),
    Category.COMMON_EVENTS: RecordFields("CommonEvents.json", ("name",)),
}

# Stable ids, tolerant of reordering
BY_ID = frozenset({
    Category.ACTORS, Category.ITEMS, Category.WEAPONS,
    Category.ARMORS, Category.SKILLS, Category.ENEMIES,
})
# Position baked into the path, cross-checked against the id
BY_PATH_INDEX = frozenset({Category.CLASSES, Category.STATES, Category.MAP_INFOS})
EVENT_CATEGORIES = frozenset({Category.TROOPS, Category.COMMON_EVENTS, Category.MAP})

# System.json string arrays at the document root
SYSTEM_ROOT_ARRAYS = ("armorTypes", "skillTypes", "weaponTypes", "elements",
                      "equipTypes", "switches", "variables")
SYSTEM_TERM_ARRAYS = ("basic", "commands", "params")
SYSTEM_ROOT_STRINGS = ("gameTitle", "currencyUnit")


# ── Command lists inside event-bearing documents ───────────────────

def iter_command_lists(category: Category, document):
    """Yield ``(owner_id, path_prefix, commands)`` for every command list."""
    if category == Category.COMMON_EVENTS:
        for i, event in enumerate(document):
            rid = record_id(event)
            if rid:
                yield rid, f"[{i}].list", event.get("list")

    elif category == Category.TROOPS:
        for i, troop in enumerate(document):
            rid = record_id(troop)
            if not rid:
                continue
            for p, page in enumerate(troop.get("pages") or []):
                if isinstance(page, dict):
                    yield rid, f"[{i}].pages[{p}].list", page.get("list")

    elif category == Category.MAP:
        for i, event in enumerate(document.get("events") or []):
            rid = record_id(event)
            if not rid:
                continue
            for p, page in enumerate(event.get("pages") or []):
                if isinstance(page, dict):
                    yield rid, f"events[{i}].pages[{p}].list", page.get("list")


# Step shape of a command-list address per category; ``int`` is any index
_COMMAND_LIST_SHAPES = {
    Category.COMMON_EVENTS: (int, "list"),
    Category.TROOPS: (int, "pages", int, "list"),
    Category.MAP: ("events", int, "pages", int, "list"),
}


def _is_command_path(category: Category, path: str) -> bool:
    """True if *path* lies at or inside one of the category's command lists."""
    shape = _COMMAND_LIST_SHAPES[category]
    try:
        steps = path_steps(path)
    except PathSyntaxError:
        return False
    if len(steps) < len(shape):
        return False
    for step, want in zip(steps, shape):
        if want is int:
            if isinstance(step, bool) or not isinstance(step, int):
                return False
        elif step != want:
            return False
    return True


def _apply_command_lists(category: Category, document, units: list, label: str) -> list:
    """Route each command-list unit to the list it names; report orphans."""
    diagnostics = []
    claimed = set()
    for owner_id, prefix, commands in iter_command_lists(category, document):
        mine = units_for_commands(units, owner_id, prefix)
        if not mine or not isinstance(commands, list):
            continue
        claimed.update(id(u) for u in mine)
        diagnostics.extend(reconstruct_commands(commands, owner_id, mine, prefix, label))

    for unit in units:
        if id(unit) not in claimed:
            message = "No command list for this record at this path"
            log.warning("%s: %s (id %s, path %r)", label, message, unit.record_id, unit.path)
            diagnostics.append(Diagnostic(label, unit.record_id, unit.path, message))
    return diagnostics


# ── Extraction ─────────────────────────────────────────────────────

def _require(document, kind, label: str):
    if not isinstance(document, kind):
        what = "array" if kind is list else "object"
        raise DocumentParseError(f"{label} is not a JSON {what}.")
    return document


def _extract_system(document: dict, source_file: str) -> list:
    units = []

    def add(path, value):
        if is_translatable(value):
            units.append(ExtractedUnit(0, value, source_file, path))

    for key in SYSTEM_ROOT_STRINGS:
        add(key, document.get(key))

    for key in SYSTEM_ROOT_ARRAYS:
        values = document.get(key)
        if isinstance(values, list):
            for i, value in enumerate(values):
                add(f"{key}[{i}]", value)

    terms = document.get("terms")
    if not isinstance(terms, dict):
        return units
    for key in SYSTEM_TERM_ARRAYS:
        values = terms.get(key)
        if isinstance(values, list):
            for i, value in enumerate(values):
                add(f"terms.{key}[{i}]", value)

    # Object keyed by message name in MV, plain array in MZ
    messages = terms.get("messages")
    if isinstance(messages, dict):
        for key, value in messages.items():
            if _PLAIN_KEY_RE.match(key):
                add(f"terms.messages.{key}", value)
            else:
                log.debug("System: skipping message key %r", key)
    elif isinstance(messages, list):
        for i, value in enumerate(messages):
            add(f"terms.messages[{i}]", value)
    return units


def _extract_map(document: dict, source_file: str) -> list:
    units = []
    display_name = document.get("displayName")
    if is_translatable(display_name):
        units.append(ExtractedUnit(0, display_name, source_file, "displayName"))

    events = document.get("events")
    if isinstance(events, list):
        for i, event in enumerate(events):
            rid = record_id(event)
            if rid and is_translatable(event.get("name")):
                units.append(ExtractedUnit(rid, event["name"], source_file,
                                           f"events[{i}].name"))
    return units


def extract_document(category: Category, document, source_file: str) -> list:
    """Extract every translatable unit from one parsed data file.

    Raises:
        DocumentParseError: the document does not have its category's shape.
    """
    label = os.path.basename(source_file)
    if category == Category.UNKNOWN:
        return []
    if category == Category.SYSTEM:
        return _extract_system(_require(document, dict, label), source_file)

    if category == Category.MAP:
        units = _extract_map(_require(document, dict, label), source_file)
    else:
        units = extract_record_array(_require(document, list, label), source_file,
                                     RECORD_FIELDS[category])

    if category in EVENT_CATEGORIES:
        for owner_id, prefix, commands in iter_command_lists(category, document):
            units.extend(extract_from_commands(commands, owner_id, source_file, prefix))
    return units


# ── Reconstruction ─────────────────────────────────────────────────

def _reconstruct_map(document: dict, units: list, label: str) -> list:
    command_units, event_units, root_units = [], [], []
    for unit in units:
        if _is_command_path(Category.MAP, unit.path):
            command_units.append(unit)
            continue
        try:
            steps = path_steps(unit.path)
        except PathSyntaxError:
            steps = ()
        if steps[:1] == ("events",):
            event_units.append(unit)
        else:
            root_units.append(unit)

    diagnostics = apply_at_root(document, root_units, label)
    diagnostics.extend(_apply_command_lists(Category.MAP, document, command_units, label))

    if event_units:
        events = document.get("events")
        if not isinstance(events, list):
            events = []
        # Event names are addressed from the map root; rebase onto the events array.
        rebased, original_paths = [], {}
        for unit in event_units:
            moved = replace(unit, path=format_steps(path_steps(unit.path)[1:]))
            original_paths[moved.path] = unit.path
            rebased.append(moved)
        for diag in apply_by_path_index(events, rebased, label):
            diagnostics.append(replace(diag, path=original_paths.get(diag.path, diag.path)))
    return diagnostics


def _reconstruct_records(category: Category, records: list, units: list, label: str) -> list:
    if category in BY_ID:
        return apply_by_id(records, units, label)
    if category in BY_PATH_INDEX:
        return apply_by_path_index(records, units, label)

    # Troops / CommonEvents: names by position, the rest through command lists
    command_units = [u for u in units if _is_command_path(category, u.path)]
    record_units = [u for u in units if not _is_command_path(category, u.path)]
    diagnostics = apply_by_path_index(records, record_units, label)
    diagnostics.extend(_apply_command_lists(category, records, command_units, label))
    return diagnostics


def reconstruct_document(category: Category, original, units: list,
                         label: str = "document") -> Reconstruction:
    """Re-apply translated units to one data file.

    Args:
        category: Dispatch category, usually ``Category.from_filename(label)``.
        original: JSON text of the untranslated file (or its parsed value).
        units: TranslatedUnit list for this file.
        label: File name used in diagnostics.

    Returns:
        Reconstruction with the pretty-printed patched document.  An UNKNOWN
        category returns *original* unchanged with a single diagnostic.

    Raises:
        DocumentParseError: *original* is not JSON or not the expected shape.
        DocumentSerializeError: the patched tree cannot be serialized.
    """
    if category == Category.UNKNOWN:
        log.info("%s: unrecognised data file, left unchanged", label)
        text = original if isinstance(original, str) else dump_document(original, label)
        return Reconstruction(text=text, diagnostics=[
            Diagnostic(label, 0, "", "Unrecognised category; document left unchanged")])

    document = load_document(original, label) if isinstance(original, str) else original
    if category == Category.SYSTEM:
        diagnostics = apply_at_root(_require(document, dict, label), units, label)
    elif category == Category.MAP:
        diagnostics = _reconstruct_map(_require(document, dict, label), units, label)
    else:
        diagnostics = _reconstruct_records(category, _require(document, list, label),
                                           units, label)
    return Reconstruction(text=dump_document(document, label), document=document,
                          diagnostics=diagnostics)


# ── Project walker ─────────────────────────────────────────────────

class RPGMakerMVParser:
    """Walks an RPG Maker MV/MZ project's data folder."""

    def __init__(self, backup_suffix: str = "_original"):
        self.backup_suffix = backup_suffix
        self.errors = {}  # source_file -> message for files that failed to parse

    def load_project(self, project_dir: str) -> list:
        """Extract all translatable units from a project.

        Args:
            project_dir: Path to the game folder (parent of 'data/' or 'www/data/').

        Returns:
            List of ExtractedUnit objects, file by file in name order.  Files
            that fail to parse are logged and listed in ``self.errors``.
        """
        data_dir = self._find_data_dir(project_dir)
        if not data_dir:
            raise FileNotFoundError(
                f"No 'data' folder found in {project_dir}. "
                "Please select an RPG Maker MV/MZ project folder."
            )
        engine = self.detect_engine(project_dir)
        log.info("Loading %s project from %s", (engine or "unknown").upper(), data_dir)

        self.errors = {}
        units = []
        for filename in sorted(os.listdir(data_dir)):
            category = Category.from_filename(filename)
            if category == Category.UNKNOWN:
                log.debug("Skipping %s", filename)
                continue
            path = os.path.join(data_dir, filename)
            source_file = os.path.relpath(path, project_dir).replace(os.sep, "/")
            try:
                document = read_document(path)
                found = extract_document(category, document, source_file)
            except DocumentParseError as exc:
                log.error("%s: %s", source_file, exc)
                self.errors[source_file] = str(exc)
                continue
            log.info("%s: %d units", source_file, len(found))
            units.extend(found)
        return units

    def save_project(self, project_dir: str, units: list,
                     output_dir: Optional[str] = None) -> dict:
        """Write translated units back into the project's JSON files.

        A backup of the original data/ folder is created as data_original/
        on the first in-place export, and every file is rebuilt from that
        pristine copy so re-exports never translate already-translated text.

        Args:
            project_dir: Path to the game folder.
            units: TranslatedUnit list, as produced by the translation step.
            output_dir: Write patched files here instead of the live data/
                folder (files keep their names, the folder is created).

        Returns:
            Dict mapping source_file to the list of Diagnostic for that file.
            Files that fail to parse are logged and listed in ``self.errors``.
        """
        data_dir = self._find_data_dir(project_dir)
        if not data_dir:
            raise FileNotFoundError(f"No 'data' folder found in {project_dir}.")

        if output_dir is None:
            self._backup_data_dir(data_dir, self.backup_suffix)
        backup_dir = data_dir + self.backup_suffix
        source_dir = backup_dir if os.path.isdir(backup_dir) else data_dir
        target_dir = output_dir or data_dir

        by_file = {}
        for unit in units:
            by_file.setdefault(unit.source_file, []).append(unit)

        self.errors = {}
        report = {}
        for source_file, file_units in by_file.items():
            rel = os.path.relpath(os.path.join(project_dir, source_file), data_dir)
            if rel.startswith(os.pardir):
                log.warning("%s: not inside %s, skipped", source_file, data_dir)
                report[source_file] = [Diagnostic(source_file, 0, "",
                                                  "File is outside the data folder")]
                continue
            source_path = os.path.join(source_dir, rel)
            if not os.path.exists(source_path):
                log.warning("%s: source file missing, skipped", source_file)
                report[source_file] = [Diagnostic(source_file, 0, "", "Source file missing")]
                continue

            label = os.path.basename(rel)
            try:
                original = read_text(source_path)
                result = reconstruct_document(Category.from_filename(label), original,
                                              file_units, label)
            except DocumentParseError as exc:
                log.error("%s: %s", source_file, exc)
                self.errors[source_file] = str(exc)
                continue

            write_document(os.path.join(target_dir, rel), result.text)
            report[source_file] = result.diagnostics
            log.info("%s: %d units applied, %d skipped", source_file,
                     len(file_units) - len(result.diagnostics), len(result.diagnostics))
        return report

    @staticmethod
    def _backup_data_dir(data_dir: str, suffix: str = "_original"):
        """Copy the data/ folder to data_original/ if no backup exists yet."""
        backup_dir = data_dir + suffix
        if os.path.isdir(backup_dir):
            return  # Already backed up
        shutil.copytree(data_dir, backup_dir)

    # ── Static helpers ────────────────────────────────────────────────

    @staticmethod
    def find_content_root(project_dir: str) -> Optional[str]:
        """Return the folder containing data/ and js/ (handles www/ layout).

        For distributed MV games the content lives under www/,
        for MZ (and MV editor projects) it's at the project root.
        """
        for base in (project_dir, os.path.join(project_dir, "www")):
            data = os.path.join(base, "data")
            if not os.path.isdir(data):
                data = os.path.join(base, "Data")
            if os.path.isdir(data):
                return base
        return None

    @staticmethod
    def detect_engine(project_dir: str) -> Optional[str]:
        """Return ``"mv"``, ``"mz"``, or ``None`` judging by the core scripts in js/."""
        content_root = RPGMakerMVParser.find_content_root(project_dir)
        if not content_root:
            return None
        js_dir = os.path.join(content_root, "js")
        if os.path.isfile(os.path.join(js_dir, "rmmz_core.js")):
            return "mz"
        if os.path.isfile(os.path.join(js_dir, "rpg_core.js")):
            return "mv"
        return None

    def _find_data_dir(self, project_dir: str) -> Optional[str]:
        """Locate the data/ directory inside the project."""
        content_root = self.find_content_root(project_dir)
        if content_root:
            for name in ("data", "Data"):
                d = os.path.join(content_root, name)
                if os.path.isdir(d):
                    return d
        return None
