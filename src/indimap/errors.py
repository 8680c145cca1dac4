class AttributeMapError(Exception):
    """Base class for all errors raised by ``indimap``."""


class InvalidKeyError(AttributeMapError, TypeError):
    """Raised when a key has no string or symbol-like representation."""

    def __init__(self, key: object) -> None:
        super().__init__(f'Cannot use {key!r} ({type(key).__name__}) as an attribute map key')
        self.key = key


class UnknownMemberError(AttributeMapError, AttributeError):
    """Raised when accessor dispatch resolves neither data nor a built-in member."""

    def __init__(self, owner: type, name: str) -> None:
        super().__init__(f"'{owner.__name__}' object has no attribute or key '{name}'")
        self.name = name


class CyclicAssignmentError(AttributeMapError, ValueError):
    """Raised when a map would end up containing itself."""
