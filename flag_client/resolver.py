"""
Scope resolution.

Flattens the scope tree of a Snapshot into the single mapping of flags
visible to a scope chain. Precedence, weakest first:

    default < chain[0] < chain[1] < ... < chain[-1]

The last (most specific) scope in the caller's chain wins any conflict and
``default`` only supplies flags nobody else defines.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence

from .flag_value import FlagValue, ScopeNode
from .snapshot import DEFAULT_SCOPE, SCOPE_SEPARATOR, Snapshot


_EMPTY: Mapping[str, FlagValue] = MappingProxyType({})


def in_scope(snapshot: Snapshot, scope: str) -> Mapping[str, FlagValue]:
    """
    Flags stored directly under a scope path such as ``region/eu``.

    A missing segment, or a segment that names a flag instead of a nested
    scope, yields an empty mapping.
    """
    node: FlagValue = snapshot.root
    for segment in scope.split(SCOPE_SEPARATOR):
        if not isinstance(node, ScopeNode):
            return _EMPTY
        child = node.children.get(segment)
        if child is None:
            return _EMPTY
        node = child

    if isinstance(node, ScopeNode):
        return node.children
    return _EMPTY


def defaults(snapshot: Snapshot) -> Mapping[str, FlagValue]:
    return in_scope(snapshot, DEFAULT_SCOPE)


def precedence_order(scopes: Sequence[str]) -> List[str]:
    """Scopes in application order: ``default`` first, empty names dropped."""
    return [DEFAULT_SCOPE] + [scope for scope in scopes if scope]


def merge_scopes(snapshot: Snapshot, scopes: Iterable[str]) -> Mapping[str, FlagValue]:
    """
    Resolve a scope chain into a flat, read-only flag mapping.

    Args:
        snapshot: Flag tree to resolve against
        scopes: Caller scope chain, least specific first

    Returns:
        Read-only mapping of flag name to value
    """
    merged: Dict[str, FlagValue] = {}
    for scope in precedence_order(list(scopes)):
        merged.update(in_scope(snapshot, scope))
    return MappingProxyType(merged)


resolve = merge_scopes
