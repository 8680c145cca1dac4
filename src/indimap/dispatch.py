import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol

from indimap.errors import UnknownMemberError

_BARE_IDENTIFIER = re.compile(r'^[a-z][A-Za-z0-9_]*$')


class AccessorTarget(Protocol):
    """What accessor dispatch needs from a map."""

    @property
    def has_default_supplier(self) -> bool: ...

    def has(self, key: Any) -> bool: ...
    def get(self, key: Any, default: Any = ...) -> Any: ...
    def set(self, key: Any, value: Any) -> Any: ...
    def delete(self, key: Any) -> Any: ...
    def new_child(self) -> Any: ...
    def keys(self) -> Iterable[str]: ...

    @classmethod
    def has_builtin(cls, name: str) -> bool: ...


@dataclass(frozen=True)
class AccessorRule:
    """One row of the accessor dispatch table.

    Attributes
    ----------
    name:
        Short label, used in ``repr`` and debugging output.
    matches:
        ``matches(target, name, nargs)`` decides whether the rule applies.
    apply:
        ``apply(target, name, args)`` produces the result.
    """

    name: str
    matches: Callable[[AccessorTarget, str, int], bool]
    apply: Callable[[AccessorTarget, str, tuple[Any, ...]], Any]


def _has_suffix(name: str, suffix: str) -> bool:
    return len(name) > 1 and name.endswith(suffix)


def _initializing_read(target: AccessorTarget, base: str) -> Any:
    if not target.has(base):
        target.set(base, target.new_child())
    return target.get(base)


ACCESSOR_RULES: tuple[AccessorRule, ...] = (
    AccessorRule(
        'writer',
        lambda target, name, nargs: nargs == 1 and _has_suffix(name, '='),
        lambda target, name, args: target.set(name[:-1], args[0]),
    ),
    AccessorRule(
        'query',
        lambda target, name, nargs: nargs == 0 and _has_suffix(name, '?'),
        lambda target, name, args: target.has(name[:-1]),
    ),
    AccessorRule(
        'initializing_reader',
        lambda target, name, nargs: nargs == 0 and _has_suffix(name, '!'),
        lambda target, name, args: _initializing_read(target, name[:-1]),
    ),
    AccessorRule(
        'stored_reader',
        lambda target, name, nargs: nargs == 0 and target.has(name),
        lambda target, name, args: target.get(name),
    ),
    AccessorRule(
        'default_reader',
        lambda target, name, nargs: (
            nargs == 0
            and target.has_default_supplier
            and _BARE_IDENTIFIER.match(name) is not None
        ),
        lambda target, name, args: target.get(name),
    ),
)
"""Accessor rules in priority order; the first match wins.

Data rules come before the built-in fallback, so a stored key shadows a
built-in member of the same name for :func:`dispatch` (but never for
``AttributeMap.is_structural_capability``).
"""


def find_rule(target: AccessorTarget, name: str, nargs: int) -> AccessorRule | None:
    """Return the first data rule that applies, ``None`` when only the built-in fallback is left."""
    for rule in ACCESSOR_RULES:
        if rule.matches(target, name, nargs):
            return rule
    return None


def dispatch(target: AccessorTarget, name: str, *args: Any) -> Any:
    """Resolve the accessor ``name`` called with ``args`` against ``target``.

    Resolution order:

    1. ``base=`` with one argument stores the argument under ``base``.
    2. ``base?`` queries whether ``base`` is stored.
    3. ``base!`` stores an empty child map under ``base`` when missing and
       returns the value.
    4. A stored ``name`` is returned.
    5. A lowercase identifier is read through the default supplier, when
       the target has one.
    6. The built-in member ``name`` of the target's class is used, called
       with ``args`` when callable.

    Raises
    ------
    UnknownMemberError
        When no rule applies and the class has no member called ``name``.
    """
    rule = find_rule(target, name, len(args))
    if rule is not None:
        return rule.apply(target, name, args)
    return invoke_builtin(target, name, args)


def invoke_builtin(target: AccessorTarget, name: str, args: tuple[Any, ...] = ()) -> Any:
    if not type(target).has_builtin(name):
        raise UnknownMemberError(type(target), name)

    member = getattr(target, name)
    if callable(member):
        return member(*args)
    if args:
        raise TypeError(f"'{type(target).__name__}.{name}' is not callable")
    return member


def is_resolvable(target: AccessorTarget, name: str, nargs: int = 0) -> bool:
    """Whether :func:`dispatch` would resolve ``name`` without raising ``UnknownMemberError``."""
    return find_rule(target, name, nargs) is not None or type(target).has_builtin(name)


class AccessorView:
    """Attribute syntax over :func:`dispatch` for one target.

    ``view.name`` is ``dispatch(target, 'name')``, ``view.name = value`` is
    ``dispatch(target, 'name=', value)`` and ``del view.name`` deletes the
    stored key. Values are returned as stored, so nested maps are reached
    with ``view.user.attrs.name``.

    The view is a separate object so that attribute lookup on the target
    itself, and with it ``hasattr`` and protocol checks, never sees data.
    """

    __slots__ = ('_target',)

    def __init__(self, target: AccessorTarget) -> None:
        object.__setattr__(self, '_target', target)

    def __getattr__(self, name: str) -> Any:
        if name.startswith('__') and name.endswith('__'):
            raise AttributeError(name)
        return dispatch(self._target, name)

    def __setattr__(self, name: str, value: Any) -> None:
        dispatch(self._target, f'{name}=', value)

    def __delattr__(self, name: str) -> None:
        if not self._target.has(name):
            raise UnknownMemberError(type(self._target), name)
        self._target.delete(name)

    def __dir__(self) -> Iterable[str]:
        return sorted(key for key in self._target.keys() if key.isidentifier())

    def __repr__(self) -> str:
        return f'AccessorView({self._target!r})'
