"""Shared contracts for cross-boundary types.

This package is a LEAF MODULE with no outbound dependencies to core,
graph or export. Settings classes live in buildgraph.core.config.
"""

from buildgraph.contracts.errors import (
    CycleDetectedError,
    DanglingReferenceError,
    ExportError,
    ExportSessionClosedError,
    ForwardReferenceError,
    ReferenceIntegrityError,
)
from buildgraph.contracts.graph import (
    DEPFILE_BINDING,
    RSPFILE_BINDING,
    RSPFILE_CONTENT_BINDING,
    BuildAction,
    BuildNode,
)
from buildgraph.contracts.types import ActionKey, ExportID, NodeKey

__all__ = [
    "DEPFILE_BINDING",
    "RSPFILE_BINDING",
    "RSPFILE_CONTENT_BINDING",
    "ActionKey",
    "BuildAction",
    "BuildNode",
    "CycleDetectedError",
    "DanglingReferenceError",
    "ExportError",
    "ExportID",
    "ExportSessionClosedError",
    "ForwardReferenceError",
    "NodeKey",
    "ReferenceIntegrityError",
]
