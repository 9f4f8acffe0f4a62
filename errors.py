"""Error types shared by the document, codec and scene modules."""


class FormatError(ValueError):
    """Malformed document markup or path data.

    Raised to the caller as-is; malformed geometry is never repaired since it
    would corrupt later intersection tests."""


class TreeShapeError(RuntimeError):
    """A mutation would break the scene tree's shape (a programming error)."""
