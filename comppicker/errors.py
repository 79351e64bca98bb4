from __future__ import annotations

class ComponentPickerError(Exception):
    pass

class ResolverCommunicationError(ComponentPickerError):
    """Calling the resolver failed (transport, IPC or backend error)."""

    def __init__(self, operation: str, target: str, reason: str = ""):
        msg = f"{operation}({target}) failed"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.operation = operation
        self.target = target
        self.reason = reason

class StaleReferenceError(ComponentPickerError):
    """A toggle target is not part of the current catalogue."""

    def __init__(self, target: str):
        super().__init__(f"'{target}' is not in the current catalogue")
        self.target = target

class ConfirmationDeclined(ComponentPickerError):
    """The user answered no to a cascading unselect. Not a failure."""

    def __init__(self, target: str, dependants: list):
        super().__init__(f"unselect of '{target}' declined")
        self.target = target
        self.dependants = dependants

class InvariantViolation(ComponentPickerError):
    """selected/required hold ids that the catalogue does not know."""

    def __init__(self, stale_selected, stale_required):
        self.stale_selected = set(stale_selected)
        self.stale_required = set(stale_required)
        super().__init__(
            f"stale ids in selection store: selected={sorted(self.stale_selected)} "
            f"required={sorted(self.stale_required)}"
        )

class CatalogueError(ComponentPickerError):
    """The catalogue could not be fetched or parsed."""
