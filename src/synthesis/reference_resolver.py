"""Resolution of local ``$ref`` pointers against an in-memory OpenAPI document.

Every consumer in the harness (example synthesis, linting, response
checking) resolves references through this module.  Resolution never
mutates the document: a dereferenced sub-tree is returned as a deep,
independent copy.

Only a single dereference hop happens per ``$ref``: nested references inside
the copied target are left in place for the caller's own recursive descent.
The one exception is a target that is *itself* a bare ``$ref`` (an alias),
which is followed until a concrete node is reached.  The pointers followed
along such a chain are tracked so that ``A -> B -> A`` raises
:class:`CyclicReferenceError` instead of recursing forever.
"""
from __future__ import annotations

import copy
import logging
from typing import Any

from src.shared.constants import REF_KEY
from src.shared.errors import CyclicReferenceError, UnresolvedReferenceError

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Resolves ``$ref`` nodes against a fixed document root."""

    def __init__(self, root: dict[str, Any]) -> None:
        self._root = root

    @property
    def root(self) -> dict[str, Any]:
        return self._root

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, node: Any) -> Any:
        """Return a ref-free copy of *node* (one hop per reference).

        * primitives are returned unchanged;
        * sequences become new lists of resolved elements;
        * a mapping holding ``$ref`` is replaced by a deep copy of its target;
        * any other mapping becomes a new mapping of resolved values.

        Raises:
            UnresolvedReferenceError: A pointer segment does not exist.
            CyclicReferenceError: An alias chain revisits a pointer.
        """
        return self._resolve(node, ())

    def lookup(self, pointer: str) -> Any:
        """Return the node *pointer* designates, without copying it.

        Sequences along the way are indexed by integer segments; ``~1`` and
        ``~0`` escapes are decoded per JSON Pointer.

        Raises:
            UnresolvedReferenceError: When any segment is absent.
        """
        if not pointer.startswith("#"):
            # Only document-local references are supported.
            raise UnresolvedReferenceError(pointer)

        current: Any = self._root
        for segment in split_pointer(pointer):
            if isinstance(current, dict) and segment in current:
                current = current[segment]
            elif isinstance(current, dict) and _is_index(segment) and int(segment) in current:
                # YAML loads unquoted response codes as integers.
                current = current[int(segment)]
            elif isinstance(current, list) and _is_index(segment) and int(segment) < len(current):
                current = current[int(segment)]
            else:
                raise UnresolvedReferenceError(pointer, segment=segment)
        return current

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(self, node: Any, active: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [self._resolve(item, active) for item in node]
        if not isinstance(node, dict):
            return node
        if REF_KEY in node and isinstance(node[REF_KEY], str):
            return self._dereference(node[REF_KEY], active)
        return {key: self._resolve(value, active) for key, value in node.items()}

    def _dereference(self, pointer: str, active: tuple[str, ...]) -> Any:
        if pointer in active:
            logger.debug("Cycle detected at %s (chain: %s)", pointer, " -> ".join(active))
            raise CyclicReferenceError(pointer)

        target = self.lookup(pointer)
        if is_reference(target):
            return self._dereference(target[REF_KEY], active + (pointer,))
        return copy.deepcopy(target)


def is_reference(node: Any) -> bool:
    """Return ``True`` when *node* is a mapping carrying a string ``$ref``."""
    return isinstance(node, dict) and isinstance(node.get(REF_KEY), str)


def split_pointer(pointer: str) -> list[str]:
    """Split ``#/a/b~1c`` into ``["a", "b/c"]``."""
    parts = pointer.lstrip("#").split("/")
    # Drop the leading empty segment produced by the root slash.
    if parts and parts[0] == "":
        parts = parts[1:]
    return [part.replace("~1", "/").replace("~0", "~") for part in parts]


def _is_index(segment: str) -> bool:
    # ASCII only: str.isdigit() also accepts superscripts such as "²".
    return segment.isascii() and segment.isdecimal()


def resolve_reference(node: Any, root: dict[str, Any]) -> Any:
    """Resolve *node* against *root*.  See :meth:`ReferenceResolver.resolve`."""
    return ReferenceResolver(root).resolve(node)
