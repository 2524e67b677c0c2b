"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of arena keys and export ids.
"""

from typing import NewType

NodeKey = NewType("NodeKey", int)
"""Arena key of a graph node (stable for the lifetime of the graph)."""

ActionKey = NewType("ActionKey", int)
"""Arena key of a build action (stable for the lifetime of the graph)."""

ExportID = NewType("ExportID", int)
"""Positive id assigned to an action in emission order (first id is 1)."""
