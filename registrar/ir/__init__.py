"""Path-addressable intermediate representation of document data."""

from registrar.ir.nodes import (
    IRArray,
    IRBuilder,
    IRNode,
    IRObject,
    IRScalar,
    find,
    replace_at,
    resolve,
    update_at,
)
from registrar.ir.path import (
    ARRAY_MARKER,
    ArrayMarker,
    Index,
    PathAddress,
    PathSyntaxError,
    Property,
)
from registrar.ir.scope import TemplateScope

__all__ = [
    "ARRAY_MARKER",
    "ArrayMarker",
    "IRArray",
    "IRBuilder",
    "IRNode",
    "IRObject",
    "IRScalar",
    "Index",
    "PathAddress",
    "PathSyntaxError",
    "Property",
    "TemplateScope",
    "find",
    "replace_at",
    "resolve",
    "update_at",
]
