"""Immutable, path-addressable tree built from extracted document data."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Optional, Union

from registrar.errors import PathNotFoundError
from registrar.ir.path import ArrayMarker, Index, PathAddress, Property


@dataclass(frozen=True, eq=False)
class IRScalar:
    path: PathAddress
    value: Any = None

    def to_data(self) -> Any:
        return self.value


@dataclass(frozen=True, eq=False)
class IRObject:
    path: PathAddress
    entries: Mapping[str, IRNode] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, name: str) -> IRNode | None:
        return self.entries.get(name)

    def keys(self) -> list[str]:
        return list(self.entries)

    def to_data(self) -> dict[str, Any]:
        return {name: node.to_data() for name, node in self.entries.items()}


@dataclass(frozen=True, eq=False)
class IRArray:
    path: PathAddress
    items: tuple[IRNode, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def to_data(self) -> list[Any]:
        return [node.to_data() for node in self.items]


IRNode = Union[IRScalar, IRObject, IRArray]


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


class IRBuilder:
    """Maps plain Python data onto IR nodes. Total: every value has one shape."""

    @classmethod
    def from_data(cls, data: Any, path: PathAddress | None = None) -> IRNode:
        path = PathAddress.root() if path is None else path
        if isinstance(data, Mapping):
            entries = {
                str(key): cls.from_data(value, path.child(str(key)))
                for key, value in data.items()
            }
            return IRObject(path, MappingProxyType(entries))
        if _is_sequence(data):
            items = tuple(cls.from_data(item, path.index(i)) for i, item in enumerate(data))
            return IRArray(path, items)
        return IRScalar(path, data)

    @classmethod
    def rebase(cls, node: IRNode, path: PathAddress) -> IRNode:
        """Return *node* re-addressed under *path* (child paths follow)."""
        if node.path == path:
            return node
        if isinstance(node, IRObject):
            entries = {
                name: cls.rebase(child, path.child(name))
                for name, child in node.entries.items()
            }
            return IRObject(path, MappingProxyType(entries))
        if isinstance(node, IRArray):
            return IRArray(path, tuple(cls.rebase(c, path.index(i)) for i, c in enumerate(node.items)))
        return IRScalar(path, node.value)

    @classmethod
    def array(cls, path: PathAddress, items) -> IRArray:
        """Array at *path* whose items are re-addressed by position."""
        return IRArray(path, tuple(cls.rebase(item, path.index(i)) for i, item in enumerate(items)))


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def resolve(root: IRNode, path: PathAddress | str) -> IRNode:
    """Walk *path* from *root*.

    An array marker with no index broadcasts the remainder of the path over
    every item and returns a synthetic IRArray of the per-item results. Items
    on which the remainder does not resolve are left out.
    """
    path = PathAddress.parse(path)
    return _resolve(root, path.segments, path)


def find(root: IRNode, path: PathAddress | str) -> IRNode | None:
    try:
        return resolve(root, path)
    except PathNotFoundError:
        return None


def _resolve(node: IRNode, segments: tuple, full: PathAddress) -> IRNode:
    if not segments:
        return node
    head, rest = segments[0], segments[1:]

    if isinstance(head, Property):
        if not isinstance(node, IRObject):
            raise PathNotFoundError(str(full), f"{head.name!r} looked up on non-object")
        child = node.get(head.name)
        if child is None:
            raise PathNotFoundError(str(full), f"no property {head.name!r}")
        return _resolve(child, rest, full)

    if isinstance(head, Index):
        if not isinstance(node, IRArray):
            raise PathNotFoundError(str(full), "index applied to non-array")
        if head.index >= len(node.items):
            raise PathNotFoundError(str(full), f"index {head.index} out of range")
        return _resolve(node.items[head.index], rest, full)

    if not isinstance(node, IRArray):
        raise PathNotFoundError(str(full), "[] applied to non-array")
    results: list[IRNode] = []
    for item in node.items:
        try:
            results.append(_resolve(item, rest, full))
        except PathNotFoundError:
            continue
    return IRArray(full, tuple(results))


# ---------------------------------------------------------------------------
# Persistent update
# ---------------------------------------------------------------------------

Updater = Callable[[Optional[IRNode]], IRNode]


def update_at(
    root: IRNode,
    path: PathAddress | str,
    fn: Updater,
    *,
    create: bool = False,
) -> IRNode:
    """Return a new tree where the node at *path* is replaced by ``fn(node)``.

    Only the ancestors of the replaced node are rebuilt; untouched siblings are
    shared by reference with *root*. Array markers apply *fn* to every item;
    items where the rest of the path does not exist are kept unchanged. With
    ``create=True`` missing object properties are created (``fn`` then receives
    ``None``); otherwise a missing path raises PathNotFoundError.
    """
    path = PathAddress.parse(path)
    return _update(root, path.segments, root.path, fn, create, path)


def replace_at(root: IRNode, path: PathAddress | str, data: Any, *, create: bool = False) -> IRNode:
    """Store plain *data* at *path* (convenience over ``update_at``)."""

    def _set(existing: IRNode | None) -> IRNode:
        target = existing.path if existing is not None else PathAddress.root()
        return IRBuilder.from_data(data, target)

    return update_at(root, path, _set, create=create)


def _update(
    node: IRNode | None,
    segments: tuple,
    here: PathAddress,
    fn: Updater,
    create: bool,
    full: PathAddress,
) -> IRNode:
    if not segments:
        new = fn(node)
        return IRBuilder.rebase(new, here)
    head, rest = segments[0], segments[1:]

    if isinstance(head, Property):
        if node is None and create:
            node = IRObject(here)
        if not isinstance(node, IRObject):
            raise PathNotFoundError(str(full), f"cannot descend into {head.name!r}")
        child = node.get(head.name)
        if child is None and not create:
            raise PathNotFoundError(str(full), f"no property {head.name!r}")
        new_child = _update(child, rest, here.child(head.name), fn, create, full)
        entries = dict(node.entries)
        entries[head.name] = new_child
        return IRObject(node.path, MappingProxyType(entries))

    if not isinstance(node, IRArray):
        raise PathNotFoundError(str(full), "array segment applied to non-array")

    if isinstance(head, Index):
        if head.index >= len(node.items):
            raise PathNotFoundError(str(full), f"index {head.index} out of range")
        items = list(node.items)
        items[head.index] = _update(items[head.index], rest, here.index(head.index), fn, create, full)
        return IRArray(node.path, tuple(items))

    assert isinstance(head, ArrayMarker)
    items = []
    for i, item in enumerate(node.items):
        try:
            items.append(_update(item, rest, here.index(i), fn, create, full))
        except PathNotFoundError:
            items.append(item)
    return IRArray(node.path, tuple(items))
