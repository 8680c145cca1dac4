from enum import Enum
from typing import Any

from indimap.errors import InvalidKeyError


def normalize_key(key: Any, *, strict: bool = False) -> str:
    """Return the stored form of ``key``.

    ``str`` and ``Enum`` members are the symbol-like forms and are always
    accepted. An ``Enum`` member is stored under its name, except for
    ``str`` mixins such as ``StrEnum``, which are stored under their value so
    that they address the same entry as the equal plain string. Unless
    ``strict`` is set, UTF-8 ``bytes`` and non-bool ``int`` keys are stringified too.

    Raises
    ------
    InvalidKeyError
        When the key has no string representation.
    """
    # Exact str first, this is by far the most common case.
    if type(key) is str:
        return key
    if isinstance(key, str):
        return str.__str__(key)
    if isinstance(key, Enum):
        return key.name

    if not strict:
        if isinstance(key, bytes):
            try:
                return key.decode('utf-8')
            except UnicodeDecodeError as ex:
                raise InvalidKeyError(key) from ex
        if isinstance(key, int) and not isinstance(key, bool):
            return str(key)

    raise InvalidKeyError(key)
