"""Exception hierarchy for ShelfWise."""


class ShelfwiseError(Exception):
    """Base class for errors raised by ShelfWise."""


class CoverGenerationError(ShelfwiseError):
    """The image model did not produce a usable cover."""
