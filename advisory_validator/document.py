"""Typed tree for parsed advisory documents.

Advisories are YAML files, but rules never look at raw PyYAML output.
The parser turns the composed YAML node graph into a small tagged union:

- Scalar: a resolved leaf value, plus its source text
- Sequence: an ordered list of nodes
- Mapping: ordered (key, node) entries with string keys
- Absent: returned by lookups for keys that are not there

Mapping keys keep their source text, so a branch named ``1.10`` stays
``"1.10"`` instead of becoming the float ``1.1``.

Usage:
    from advisory_validator.document import parse_document, is_set

    document = parse_document(text)
    if is_set(document.get("branches")):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

import yaml

from advisory_validator.errors import RecordParseError

_MERGE_TAG = "tag:yaml.org,2002:merge"

# Upper bound on the values of a document once aliases are expanded
MAX_DOCUMENT_NODES = 10_000


@dataclass(frozen=True)
class Absent:
    """Marker for a key that does not exist in its mapping."""

    def __bool__(self) -> bool:
        return False


ABSENT = Absent()


@dataclass(frozen=True)
class Scalar:
    """A leaf value.

    Attributes:
        value: Python value resolved by the YAML safe constructor
            (None, bool, int, float, str, date or datetime).
        text: The scalar exactly as written in the document.
        line: 1-based line number of the scalar.
    """

    value: Any
    text: str
    line: int = 0


@dataclass(frozen=True)
class Sequence:
    """An ordered list of nodes."""

    items: tuple[Node, ...]
    line: int = 0

    def __iter__(self):
        return iter(self.items)


@dataclass(frozen=True)
class Mapping:
    """Ordered key/value entries with string keys."""

    entries: tuple[tuple[str, Node], ...]
    line: int = 0

    def get(self, key: str) -> Node:
        """Return the node stored under key, or ABSENT."""
        for name, node in self.entries:
            if name == key:
                return node
        return ABSENT

    def keys(self) -> list[str]:
        return [name for name, _ in self.entries]

    def items(self) -> list[tuple[str, Node]]:
        return list(self.entries)


Node = Union[Scalar, Sequence, Mapping, Absent]


# =============================================================================
# Accessors
# =============================================================================


def is_null(node: Node) -> bool:
    """True for an explicit null scalar (``~``, ``null`` or an empty value)."""
    return isinstance(node, Scalar) and node.value is None


def is_set(node: Node) -> bool:
    """True when the node exists and is not null."""
    return not isinstance(node, Absent) and not is_null(node)


def as_str(node: Node) -> str | None:
    """Return the string value of a scalar, or None for anything else."""
    if isinstance(node, Scalar) and isinstance(node.value, str):
        return node.value
    return None


def display(node: Node) -> str:
    """Render a node for use inside a finding message."""
    if isinstance(node, Scalar):
        return node.text
    if isinstance(node, Sequence):
        return "[" + ", ".join(display(item) for item in node.items) + "]"
    if isinstance(node, Mapping):
        return "{" + ", ".join(f"{key}: {display(value)}" for key, value in node.entries) + "}"
    return ""


# =============================================================================
# Parsing
# =============================================================================


def parse_document(text: str) -> Mapping:
    """Parse advisory text into a typed tree.

    Args:
        text: Raw YAML text of one advisory.

    Returns:
        The top-level Mapping of the document.

    Raises:
        RecordParseError: If the text is not valid YAML, is empty, contains
            duplicate keys, expands past MAX_DOCUMENT_NODES values through
            aliases, or its top-level value is not a mapping.
    """
    try:
        loader = yaml.SafeLoader(text)
        try:
            root = loader.get_single_node()
            if root is None:
                raise RecordParseError("The document is empty")
            tree, _ = _Converter(loader).convert(root)
        finally:
            loader.dispose()
    except yaml.MarkedYAMLError as exc:
        line = exc.problem_mark.line + 1 if exc.problem_mark is not None else None
        problem = exc.problem or exc.context or "invalid YAML"
        reason = f"{problem} at line {line}" if line is not None else problem
        raise RecordParseError(reason, line=line) from exc
    except yaml.YAMLError as exc:
        raise RecordParseError(" ".join(str(exc).split())) from exc

    if not isinstance(tree, Mapping):
        raise RecordParseError("The top-level value must be a mapping", line=1)
    return tree


class _Converter:
    """Convert one composed PyYAML node graph into the typed tree.

    A node reached through several aliases is converted once and shared.
    The expanded size of the tree is bounded by MAX_DOCUMENT_NODES, so a
    few lines of nested aliases cannot blow up the rules that walk it.
    """

    def __init__(self, loader: yaml.SafeLoader) -> None:
        self._loader = loader
        # id(yaml node) -> (converted node, expanded size)
        self._done: dict[int, tuple[Node, int]] = {}
        self._active: set[int] = set()

    def convert(self, node: yaml.Node) -> tuple[Node, int]:
        key = id(node)
        if key in self._done:
            return self._done[key]

        line = node.start_mark.line + 1
        if key in self._active:
            raise RecordParseError(f"Recursive alias at line {line}", line=line)

        self._active.add(key)
        try:
            result = self._convert(node, line)
        finally:
            self._active.discard(key)

        if result[1] > MAX_DOCUMENT_NODES:
            raise RecordParseError(
                f"The document expands to more than {MAX_DOCUMENT_NODES} values at line {line}",
                line=line,
            )
        self._done[key] = result
        return result

    def _convert(self, node: yaml.Node, line: int) -> tuple[Node, int]:
        if isinstance(node, yaml.ScalarNode):
            try:
                value = self._loader.construct_object(node, deep=True)
            except ValueError:
                # Implicit timestamps such as 2020-13-45 match the resolver
                # but not the calendar; keep them as text for the rules to judge.
                value = node.value
            return Scalar(value=value, text=node.value, line=line), 1

        if isinstance(node, yaml.SequenceNode):
            items: list[Node] = []
            size = 1
            for item_node in node.value:
                item, item_size = self.convert(item_node)
                items.append(item)
                size += item_size
            return Sequence(items=tuple(items), line=line), size

        if isinstance(node, yaml.MappingNode):
            return self._convert_mapping(node, line)

        raise RecordParseError(f"Unsupported node at line {line}", line=line)

    def _convert_mapping(self, node: yaml.MappingNode, line: int) -> tuple[Node, int]:
        own_count = sum(1 for key_node, _ in node.value if key_node.tag != _MERGE_TAG)
        self._loader.flatten_mapping(node)
        inherited_count = len(node.value) - own_count

        entries: dict[str, tuple[Node, int]] = {}
        own_keys: set[str] = set()
        for index, (key_node, value_node) in enumerate(node.value):
            if not isinstance(key_node, yaml.ScalarNode):
                raise RecordParseError(f"Mapping keys must be scalars at line {line}", line=line)
            key = key_node.value
            if index >= inherited_count:
                if key in own_keys:
                    key_line = key_node.start_mark.line + 1
                    raise RecordParseError(
                        f'Duplicate key "{key}" detected at line {key_line}', line=key_line
                    )
                own_keys.add(key)
            entries[key] = self.convert(value_node)

        mapping = Mapping(
            entries=tuple((key, value) for key, (value, _) in entries.items()),
            line=line,
        )
        return mapping, 1 + sum(size for _, size in entries.values())
