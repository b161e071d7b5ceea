"""
Core Exceptions

Errors raised by the component tree, mutation engine, clipboard and page tree.

Every error carries a stable ``code`` so the UI layer can decide how to
present a rejected action (toast, inline message) without string matching.
"""


class TreeError(Exception):
    """
    Base class for rejected tree operations.

    Raised synchronously by the operation that was rejected. The tree is
    always left exactly as it was before the call.

    Usage:
        try:
            engine.move(instance_id, new_parent_id, 0)
        except TreeError as exc:
            show_rejection(exc.code, exc.message)
    """

    code = "TreeError"

    def __init__(self, message: str = "Tree operation rejected"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(TreeError):
    """Raised when a referenced instance or page id is absent."""

    code = "NotFound"

    def __init__(self, message: str = "Not found", *, entity_id: object = None):
        self.entity_id = entity_id
        super().__init__(message)


class CycleDetectedError(TreeError):
    """Raised when a move/reparent would make a node its own ancestor."""

    code = "CycleDetected"


class LayoutRequiredError(TreeError):
    """
    Raised when a placement breaks the layout-first rule.

    Non-layout components must sit (transitively) inside a layout, and a
    node can only be placed under a parent that accepts children.
    """

    code = "LayoutRequired"


class OrderMismatchError(TreeError):
    """Raised when a reorder id list does not match the current children."""

    code = "OrderMismatch"


class ManifestUnresolvedError(TreeError):
    """Raised when a (plugin_id, component_id) pair has no manifest."""

    code = "ManifestUnresolved"

    def __init__(self, plugin_id: str, component_id: str):
        self.plugin_id = plugin_id
        self.component_id = component_id
        super().__init__(f"No manifest registered for {plugin_id}/{component_id}")


class InvalidPlacementError(TreeError):
    """Raised when an insert targets a parent that does not exist."""

    code = "InvalidPlacement"


class DuplicateIdError(TreeError):
    """Raised when an inserted subtree or page reuses an id."""

    code = "DuplicateId"
