import logging
from dataclasses import dataclass


@dataclass(frozen=True)
class MapOptions:
    """Per-instance behaviour switches of an :class:`~indimap.AttributeMap`.

    Options are attached to a map at construction time and handed down to
    every nested map it creates, whether by conversion, assignment, an
    initializing read or a merge. There is no module-level state.

    Attributes
    ----------
    log_key_conflicts:
        Emit a log record when a stored key has the same name as a built-in
        member of the map class.
    conflict_log_level:
        Level of that log record.
    strict_keys:
        Only accept ``str`` and ``enum.Enum`` keys. Integer and bytes keys
        raise :class:`~indimap.errors.InvalidKeyError`.
    """

    log_key_conflicts: bool = True
    conflict_log_level: int = logging.WARNING
    strict_keys: bool = False


DEFAULT_OPTIONS = MapOptions()
