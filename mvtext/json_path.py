"""Address strings for locations inside a parsed JSON document.

An address is a ``.``-separated list of segments.  Each segment is a field
name optionally followed by one or more ``[index]`` steps, or only index
steps when the current position is already an array::

    [1].name
    events[3].pages[0].list[12].parameters[0][2]
    terms.messages.actorDamage

The legacy dotted-bracket form written by older exports,
``[1].list.[0].parameters.[4]``, parses to the same steps.
"""

import re
from dataclasses import dataclass

from .errors import PathNotFound, PathSyntaxError

_SEGMENT_RE = re.compile(r'^([^\[\]]*)((?:\[\d+\])*)$')
_INDEX_RE = re.compile(r'\[(\d+)\]')


@dataclass(frozen=True)
class PathSegment:
    """One address segment: an optional field name plus zero or more indices."""
    name: str = ""
    indices: tuple = ()

    def __str__(self) -> str:
        return self.name + "".join(f"[{i}]" for i in self.indices)

    @property
    def is_bare_index(self) -> bool:
        return not self.name and bool(self.indices)


def parse_segment(text: str) -> PathSegment:
    """Parse ``name``, ``name[i]``, ``name[i][j]`` or ``[i]``."""
    m = _SEGMENT_RE.match(text)
    if not m:
        raise PathSyntaxError(f"Malformed path segment: {text!r}")
    name, idx_part = m.group(1), m.group(2)
    if not name and not idx_part:
        raise PathSyntaxError("Empty path segment")
    return PathSegment(name, tuple(int(i) for i in _INDEX_RE.findall(idx_part)))


def parse_path(path) -> list:
    """Split an address string into PathSegments.

    A list of segments passes through unchanged, so every function here
    accepts either form.
    """
    if isinstance(path, (list, tuple)):
        if not path:
            raise PathSyntaxError("Empty path")
        return list(path)
    if not path:
        raise PathSyntaxError("Empty path")
    return [parse_segment(part) for part in path.split(".")]


def format_path(segments) -> str:
    """Canonical string for a list of segments (no legacy ``.[i]`` form)."""
    out = ""
    for seg in segments:
        text = str(seg)
        if out and seg.name:
            out += "."
        out += text
    return out


def _step_field(node, name: str, seg: PathSegment, path: str):
    if not isinstance(node, dict) or name not in node:
        raise PathNotFound(f"Key {name!r} not found", str(seg), path)
    return node[name]


def _step_index(node, idx: int, seg: PathSegment, path: str):
    if not isinstance(node, list) or idx >= len(node):
        size = len(node) if isinstance(node, list) else "non-array"
        raise PathNotFound(f"Index {idx} out of bounds ({size}) in {str(seg)!r}",
                           str(seg), path)
    return node[idx]


def _walk(node, segments, path: str):
    for seg in segments:
        if seg.name:
            node = _step_field(node, seg.name, seg, path)
        for idx in seg.indices:
            node = _step_index(node, idx, seg, path)
    return node


def resolve(document, path):
    """Return the node at *path*.

    Raises:
        PathSyntaxError: the address is malformed.
        PathNotFound: a field is missing or an index is out of range.
    """
    segments = parse_path(path)
    return _walk(document, segments, path if isinstance(path, str) else format_path(segments))


def set_string(document, path, text: str):
    """Overwrite the node at *path* with the string *text*.

    Everything up to the terminal field / element must already exist; the
    terminal's previous type does not matter.  Never creates new keys.
    """
    segments = parse_path(path)
    path_str = path if isinstance(path, str) else format_path(segments)
    parent = _walk(document, segments[:-1], path_str)

    last = segments[-1]
    if not last.indices:
        if not isinstance(parent, dict) or last.name not in parent:
            raise PathNotFound(f"Key {last.name!r} not found for setting value",
                               str(last), path_str)
        parent[last.name] = text
        return

    container = parent
    if last.name:
        container = _step_field(container, last.name, last, path_str)
    for idx in last.indices[:-1]:
        container = _step_index(container, idx, last, path_str)
    final = last.indices[-1]
    if not isinstance(container, list) or final >= len(container):
        raise PathNotFound(f"Index {final} out of bounds in {str(last)!r} when setting value",
                           str(last), path_str)
    container[final] = text


def split_leading_index(path):
    """Split ``[i].rest`` into ``(i, rest_segments)``.

    ``[i][j].rest`` yields ``(i, [[j], rest...])``.  Returns ``(None, segments)``
    when the address does not start with a bare index.
    """
    segments = parse_path(path)
    first = segments[0]
    if not first.is_bare_index:
        return None, segments
    rest = segments[1:]
    if len(first.indices) > 1:
        rest = [PathSegment("", first.indices[1:])] + rest
    return first.indices[0], rest


def path_steps(path) -> tuple:
    """Flatten an address into navigation steps: str for a field, int for an index.

    ``[1].list[0]`` and the legacy ``[1].list.[0]`` give the same steps,
    ``(1, "list", 0)``.
    """
    steps = []
    for seg in parse_path(path):
        if seg.name:
            steps.append(seg.name)
        steps.extend(seg.indices)
    return tuple(steps)


def format_steps(steps) -> str:
    """Inverse of path_steps(): ``(1, "list", 0)`` -> ``"[1].list[0]"``."""
    out = ""
    for step in steps:
        if isinstance(step, int):
            out += f"[{step}]"
        else:
            out += f".{step}" if out else step
    return out


def has_prefix(path, prefix) -> bool:
    """True if *path* lies inside (or at) the node addressed by *prefix*.

    Malformed addresses never match.
    """
    if not prefix:
        return True
    try:
        steps = path_steps(path)
        prefix_steps = path_steps(prefix)
    except PathSyntaxError:
        return False
    return steps[:len(prefix_steps)] == prefix_steps
