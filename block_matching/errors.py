class BlockMatchingError(Exception):
    """Base class for errors raised by the block matching engine."""


class InvalidInput(BlockMatchingError, ValueError):
    """Raised when images, sizes or parameters cannot be matched."""
