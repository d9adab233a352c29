"""Lexical scope over the IR used while rendering templates."""

from __future__ import annotations

from dataclasses import dataclass

from registrar.errors import PathNotFoundError
from registrar.ir.nodes import IRNode, resolve
from registrar.ir.path import PathAddress


@dataclass(frozen=True)
class TemplateScope:
    """Current cursor plus the ancestors it was entered from (nearest last)."""

    cursor: IRNode
    breadcrumbs: tuple[IRNode, ...] = ()

    @classmethod
    def at_root(cls, root: IRNode) -> TemplateScope:
        return cls(cursor=root)

    def descend(self, node: IRNode) -> TemplateScope:
        """Child scope for one array element; the current cursor becomes an ancestor."""
        return TemplateScope(cursor=node, breadcrumbs=(*self.breadcrumbs, self.cursor))

    def resolve_relative(self, path: PathAddress | str) -> IRNode:
        """Resolve *path* at the cursor, then at each ancestor out to the root.

        Local names shadow outer ones; names only defined further out are still
        reachable. Raises PathNotFoundError when no scope has the path.
        """
        path = PathAddress.parse(path)
        try:
            return resolve(self.cursor, path)
        except PathNotFoundError:
            pass
        for ancestor in reversed(self.breadcrumbs):
            try:
                return resolve(ancestor, path)
            except PathNotFoundError:
                continue
        raise PathNotFoundError(str(path), "not found in any enclosing scope")

    @property
    def depth(self) -> int:
        return len(self.breadcrumbs)
