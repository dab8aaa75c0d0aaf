"""Text inside event command lists.

Common events, troop battle pages and map event pages all carry a ``list``
of commands shaped like ``{"code": 401, "indent": 0, "parameters": [...]}``.
The opcode decides which positional parameter, if any, holds player-facing
text.  COMMAND_TEXT_SLOTS is the single table both directions read from.
"""

import logging
from dataclasses import dataclass

from .errors import PathSyntaxError
from .json_path import has_prefix, path_steps
from .project_model import Diagnostic, ExtractedUnit
from .records import is_translatable

log = logging.getLogger(__name__)

# RPG Maker event command codes that contain translatable text
CODE_SHOW_TEXT_HEADER = 101    # Show Text setup; parameters[4] is the speaker name (MZ)
CODE_SHOW_TEXT = 401           # Show Text line; parameters[0] is text
CODE_SHOW_CHOICES = 102        # Show Choices; parameters[0] is a list of strings
CODE_SCROLL_TEXT_HEADER = 105  # Scroll Text setup
CODE_SCROLL_TEXT = 405         # Scroll Text line; parameters[0] is text


@dataclass(frozen=True)
class TextSlot:
    """Where an opcode keeps its text: ``parameters[arg]``, or a list there."""
    arg: int
    is_choice_list: bool = False


COMMAND_TEXT_SLOTS = {
    CODE_SHOW_TEXT_HEADER:   TextSlot(4),
    CODE_SHOW_TEXT:          TextSlot(0),
    CODE_SHOW_CHOICES:       TextSlot(0, is_choice_list=True),
    CODE_SCROLL_TEXT_HEADER: TextSlot(0),
    CODE_SCROLL_TEXT:        TextSlot(0),
}


def _slot_value(command):
    """(slot, value) for a command that has a text slot, else (None, None)."""
    if not isinstance(command, dict):
        return None, None
    slot = COMMAND_TEXT_SLOTS.get(command.get("code"))
    params = command.get("parameters")
    if slot is None or not isinstance(params, list) or slot.arg >= len(params):
        return None, None
    return slot, params[slot.arg]


def extract_from_commands(commands, owner_record_id: int, source_file: str,
                          path_prefix: str) -> list:
    """Extract text units from one command list.

    Args:
        commands: The command array (e.g. ``event["list"]``).
        owner_record_id: Id of the record owning the list, attached to every unit.
        source_file: Source file label for the units.
        path_prefix: Address of *commands* itself, e.g. ``"[1].list"``.

    Returns:
        ExtractedUnit list with paths like ``[1].list[7].parameters[0]``, and
        ``[1].list[3].parameters[0][2]`` for the third choice of a 102.
    """
    units = []
    if not isinstance(commands, list):
        return units

    for i, command in enumerate(commands):
        slot, value = _slot_value(command)
        if slot is None:
            continue
        base = f"{path_prefix}[{i}].parameters[{slot.arg}]"
        if slot.is_choice_list:
            if not isinstance(value, list):
                continue
            for ci, choice in enumerate(value):
                if is_translatable(choice):
                    units.append(ExtractedUnit(owner_record_id, choice, source_file,
                                               f"{base}[{ci}]"))
        elif is_translatable(value):
            units.append(ExtractedUnit(owner_record_id, value, source_file, base))
    return units


def units_for_commands(units, owner_record_id: int, path_prefix: str) -> list:
    """The subset of *units* that belongs to the command list at *path_prefix*."""
    return [u for u in units
            if u.record_id == owner_record_id and has_prefix(u.path, path_prefix)]


def _locate(commands, steps: tuple):
    """Resolve the steps after the list prefix to (container, index, slot).

    Raises:
        LookupError: with a message describing the first bad step.
    """
    if len(steps) not in (3, 4) or not isinstance(steps[0], int) \
            or steps[1] != "parameters" or not all(isinstance(s, int) for s in steps[2:]):
        raise LookupError("Path does not address a command parameter")

    cmd_index, arg = steps[0], steps[2]
    if cmd_index >= len(commands):
        raise LookupError(f"Command index {cmd_index} out of bounds ({len(commands)})")
    command = commands[cmd_index]
    if not isinstance(command, dict):
        raise LookupError(f"Command at index {cmd_index} is not an object")

    slot = COMMAND_TEXT_SLOTS.get(command.get("code"))
    if slot is None or slot.arg != arg:
        raise LookupError(
            f"Command {command.get('code')} at index {cmd_index} has no text at parameters[{arg}]")

    params = command.get("parameters")
    if not isinstance(params, list) or arg >= len(params):
        raise LookupError(f"Parameter index {arg} out of bounds for command {cmd_index}")

    if not slot.is_choice_list:
        if len(steps) != 3:
            raise LookupError(f"Command {command.get('code')} takes a single text parameter")
        return params, arg, slot

    if len(steps) != 4:
        raise LookupError("Choice path lacks a choice index")
    choices = params[arg]
    choice = steps[3]
    if not isinstance(choices, list) or choice >= len(choices):
        raise LookupError(f"Choice index {choice} out of bounds for command {cmd_index}")
    return choices, choice, slot


def reconstruct_commands(commands, owner_record_id: int, units, path_prefix: str,
                         label: str = "document") -> list:
    """Write translated text back into a command list, in place.

    Units whose record id or path prefix do not match are ignored.  A unit
    that points at a missing command or at a parameter that holds no text
    for its opcode is skipped with a diagnostic; the rest still apply.

    Returns:
        List of Diagnostic for skipped units.
    """
    diagnostics = []
    if not isinstance(commands, list):
        return diagnostics

    try:
        prefix_steps = path_steps(path_prefix)
    except PathSyntaxError as exc:
        log.warning("%s: bad command list prefix %r: %s", label, path_prefix, exc)
        return diagnostics

    for unit in units_for_commands(units, owner_record_id, path_prefix):
        try:
            steps = path_steps(unit.path)[len(prefix_steps):]
            container, index, _slot = _locate(commands, steps)
        except (PathSyntaxError, LookupError) as exc:
            log.warning("%s: %s (id %s, path %r)", label, exc, unit.record_id, unit.path)
            diagnostics.append(Diagnostic(label, unit.record_id, unit.path, str(exc)))
            continue
        if not isinstance(unit.text_to_write, str):
            log.warning("%s: unit text is not a string (id %s, path %r)",
                        label, unit.record_id, unit.path)
            diagnostics.append(Diagnostic(label, unit.record_id, unit.path,
                                          "Unit text is not a string"))
            continue
        container[index] = unit.text_to_write
    return diagnostics
