"""Export failure taxonomy.

Every failure that prevents a valid document is an ExportError. Its
``reason`` is the text written to the document's FailureReason field.

Hierarchy:
    ExportError
    ├── CycleDetectedError        user-facing: the input graph is not a DAG
    └── ReferenceIntegrityError   internal invariant violations
        ├── DanglingReferenceError
        └── ForwardReferenceError

ExportSessionClosedError is a usage error (RuntimeError), not an export
failure: it signals a session touched after its terminal flush.
"""

from __future__ import annotations

from collections.abc import Sequence


class ExportError(Exception):
    """Base class for failures that abort an export."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class CycleDetectedError(ExportError):
    """Raised when the phony-collapsed action relation contains a cycle.

    Attributes:
        cycle: Action descriptions along the cycle in traversal order.
            The first entry is the action that was revisited.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        path = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else "<unknown>"
        super().__init__(f"Dependency cycle detected: {path}")


class ReferenceIntegrityError(ExportError):
    """An emitted reference would not resolve to an earlier action.

    Unreachable when topological insertion is correct. Raised instead of
    writing a reference that points nowhere.
    """


class DanglingReferenceError(ReferenceIntegrityError):
    """A referenced action was never assigned an id."""

    def __init__(self, referrer: str, target: str) -> None:
        self.referrer = referrer
        self.target = target
        super().__init__(f"Dangling reference: {referrer} refers to {target}, which has no assigned id")


class ForwardReferenceError(ReferenceIntegrityError):
    """A dependency id is not strictly less than its dependent's id."""

    def __init__(self, referrer: str, referrer_id: int, target: str, target_id: int) -> None:
        self.referrer_id = referrer_id
        self.target_id = target_id
        super().__init__(
            f"Forward reference: {referrer} (id {referrer_id}) depends on {target} (id {target_id}); dependencies must have smaller ids"
        )


class ExportSessionClosedError(RuntimeError):
    """Raised when a flushed export session is registered to or flushed again."""
