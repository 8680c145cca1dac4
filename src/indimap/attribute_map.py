import copy
import functools
from contextlib import contextmanager
from dataclasses import dataclass
from logging import getLogger
from typing import Any, Callable, Iterable, Iterator, Mapping, MutableMapping, MutableSet, Self

from indimap import dispatch as _dispatch
from indimap.errors import CyclicAssignmentError, InvalidKeyError
from indimap.keys import normalize_key
from indimap.options import DEFAULT_OPTIONS, MapOptions
from indimap.suppliers import DefaultSupplier, wire_supplier

_logger = getLogger(__name__)

_MISSING: Any = object()
_INTERNAL_ATTRIBUTES = frozenset({'_data', '_options', '_default'})


class AttributeMap(MutableMapping[str, Any]):
    """
    String-keyed mapping with indifferent key access and attribute accessors.

    Keys are normalized on every read and write (see
    :func:`~indimap.keys.normalize_key`), so ``Color.red``, ``'red'`` and
    ``b'red'`` all address the same entry. Mapping values are converted into
    nested ``AttributeMap`` instances on assignment, including mappings
    inside lists and tuples.

    Values can be reached three ways:

    - the mapping protocol: ``m['a']``, ``m.get('a')``, ``'a' in m``;
    - :meth:`dispatch`, which applies the accessor rules of
      :mod:`indimap.dispatch` (``'a='``, ``'a?'``, ``'a!'``) and lets stored
      data shadow members of the class;
    - the :attr:`attrs` view, attribute syntax for :meth:`dispatch`:
      ``m.attrs.a``, ``m.attrs.a = 1``, ``del m.attrs.a``.

    Capability checks never look at data. Attribute lookup on the map itself
    (``hasattr``, ``getattr``, runtime checkable protocols) only finds
    members of the class, and so do :meth:`is_structural_capability` and
    :meth:`has_builtin`.

    Parameters
    ----------
    mapping : Mapping[Any, Any] | Iterable[tuple[Any, Any]] | None, optional
        Initial contents, deep-converted.
    default : Callable[..., Any] | None, optional
        Default supplier, invoked on a confirmed miss by ``m[key]``,
        :meth:`get` and the default reader accessor rule. See
        :func:`~indimap.suppliers.wire_supplier` for the accepted forms.
    options : MapOptions | None, optional
        Behaviour switches, inherited by nested maps.
    **kwargs : Any
        Additional entries.

    Examples
    --------
    >>> m = AttributeMap({'user': {'name': 'Ann'}})
    >>> m.attrs.user.attrs.name
    'Ann'
    >>> m.dispatch('user?')
    True
    >>> m.dispatch('settings!').attrs.theme = 'dark'
    >>> m.to_plain_mapping()
    {'user': {'name': 'Ann'}, 'settings': {'theme': 'dark'}}
    """

    _data: dict[str, Any]
    _options: MapOptions
    _default: DefaultSupplier | None

    def __init__(
        self,
        mapping: Mapping[Any, Any] | Iterable[tuple[Any, Any]] | None = None,
        /,
        *,
        default: Callable[..., Any] | None = None,
        options: MapOptions | None = None,
        **kwargs: Any,
    ) -> None:
        # Internal state is set directly; __setattr__ refuses everything else.
        object.__setattr__(self, '_data', {})
        object.__setattr__(self, '_options', options or DEFAULT_OPTIONS)
        object.__setattr__(self, '_default', wire_supplier(default) if default is not None else None)

        if mapping is not None:
            pairs = mapping.items() if isinstance(mapping, Mapping) else mapping
            for key, value in pairs:
                self.set(key, value)
        for key, value in kwargs.items():
            self.set(key, value)

    # Construction

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[Any, Any],
        *,
        default: Callable[..., Any] | None = None,
        options: MapOptions | None = None,
    ) -> Self:
        """Deep-convert ``mapping``; the inverse of :meth:`to_plain_mapping`."""
        if not isinstance(mapping, Mapping):
            raise TypeError(f'Expected a mapping, got {type(mapping).__name__}')
        return cls(mapping, default=default, options=options)

    @classmethod
    def with_default(
        cls,
        supplier: Callable[..., Any],
        mapping: Mapping[Any, Any] | None = None,
        *,
        options: MapOptions | None = None,
    ) -> Self:
        return cls(mapping, default=supplier, options=options)

    def new_child(self) -> Self:
        """Return an empty map carrying this map's options."""
        return type(self)(options=self._options)

    @property
    def options(self) -> MapOptions:
        return self._options

    @property
    def has_default_supplier(self) -> bool:
        return self._default is not None

    # Keyed access

    def _normalize(self, key: Any) -> str:
        return normalize_key(key, strict=self._options.strict_keys)

    def has(self, key: Any) -> bool:
        """Whether a value is stored under ``key``; a stored ``None`` counts.

        Keys that cannot be normalized are never stored, so they yield
        ``False`` instead of raising.
        """
        try:
            return self._normalize(key) in self._data
        except InvalidKeyError:
            return False

    def get(self, key: Any, default: Any = _MISSING) -> Any:
        """Return the stored value, falling back to ``default``, then the supplier, then ``None``."""
        norm = self._normalize(key)
        if norm in self._data:
            return self._data[norm]
        if default is not _MISSING:
            return default
        if self._default is not None:
            return self._default(self, norm)
        return None

    def fetch(self, key: Any, default: Any = _MISSING) -> Any:
        """Return the stored value or ``default``; never consults the supplier.

        Raises
        ------
        KeyError
            When nothing is stored and no ``default`` is given.
        """
        norm = self._normalize(key)
        if norm in self._data:
            return self._data[norm]
        if default is not _MISSING:
            return default
        raise KeyError(norm)

    def set(self, key: Any, value: Any) -> Any:
        """Store ``value`` under ``key`` and return the stored (converted) value.

        Plain mappings become nested maps; lists and tuples are rebuilt with
        their mapping items converted. A map that is already an
        ``AttributeMap`` is stored as is.

        Raises
        ------
        InvalidKeyError
            When ``key`` cannot be normalized.
        CyclicAssignmentError
            When the value contains this map.
        """
        norm = self._normalize(key)
        converted = self._convert(value, set())
        self._ensure_acyclic(converted)
        self._store(norm, converted)
        return converted

    def delete(self, key: Any) -> Any:
        """Remove ``key`` and return its value; ``KeyError`` when absent."""
        norm = self._normalize(key)
        return self._data.pop(norm)

    def dig(self, *keys: Any) -> Any:
        """Follow ``keys`` through nested maps and sequences, ``None`` on the first miss."""
        current: Any = self
        for key in keys:
            if isinstance(current, AttributeMap):
                if not current.has(key):
                    return None
                current = current.fetch(key)
            elif isinstance(current, (list, tuple)) and isinstance(key, int):
                if not -len(current) <= key < len(current):
                    return None
                current = current[key]
            else:
                return None
        return current

    # Mapping protocol

    def __getitem__(self, key: Any) -> Any:
        norm = self._normalize(key)
        try:
            return self._data[norm]
        except KeyError:
            if self._default is None:
                raise
        return self._default(self, norm)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Any) -> None:
        del self._data[self._normalize(key)]

    def __contains__(self, key: object) -> bool:
        return self.has(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def pop(self, key: Any, default: Any = _MISSING) -> Any:
        try:
            norm = self._normalize(key)
        except InvalidKeyError:
            if default is _MISSING:
                raise
            return default
        if default is _MISSING:
            return self._data.pop(norm)
        return self._data.pop(norm, default)

    def setdefault(self, key: Any, default: Any = None) -> Any:
        if self.has(key):
            return self.fetch(key)
        return self.set(key, default)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AttributeMap):
            return self._data == other._data
        if isinstance(other, Mapping):
            try:
                converted = AttributeMap(other, options=MapOptions(log_key_conflicts=False))
            except (InvalidKeyError, CyclicAssignmentError):
                return False
            return self._data == converted._data
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self._data!r})'

    # Accessors

    def dispatch(self, name: str, *args: Any) -> Any:
        """Resolve an accessor by name, see :func:`indimap.dispatch.dispatch`.

        >>> m = AttributeMap()
        >>> m.dispatch('count=', 3)
        3
        >>> m.dispatch('count?'), m.dispatch('count')
        (True, 3)
        """
        return _dispatch.dispatch(self, name, *args)

    def supports_accessor(self, name: str, nargs: int = 0) -> bool:
        """Whether :meth:`dispatch` resolves ``name`` with ``nargs`` arguments.

        This includes stored keys, so it must not be used to decide whether
        the map type offers an operation; use
        :meth:`is_structural_capability` for that.
        """
        return _dispatch.is_resolvable(self, name, nargs)

    @classmethod
    def has_builtin(cls, name: str) -> bool:
        """Whether the class itself defines ``name``, private and dunder names included."""
        return name in _class_members(cls)

    @classmethod
    def is_structural_capability(cls, name: str) -> bool:
        """Whether ``name`` is a public operation of the map type. Independent of stored data."""
        return not name.startswith('_') and cls.has_builtin(name)

    @property
    def attrs(self) -> _dispatch.AccessorView:
        """Attribute-syntax view on the accessors: ``m.attrs.name`` is ``m.dispatch('name')``.

        The map itself never resolves data as attributes, so ``hasattr`` and
        ``getattr`` on a map only ever see members of the class.
        """
        return _dispatch.AccessorView(self)

    def __setattr__(self, name: str, value: Any) -> None:
        if name not in _INTERNAL_ATTRIBUTES:
            raise AttributeError(
                f"Cannot set attribute '{name}' on {type(self).__name__}; "
                'use item access or the attrs view to store data'
            )
        object.__setattr__(self, name, value)

    # Merging

    def deep_update(self, other: Mapping[Any, Any]) -> Self:
        """Merge ``other`` into this map in place and return ``self``.

        Where both sides hold a mapping the merge recurses, everywhere else
        the value of ``other`` wins. Values taken over from ``other`` are
        copied, so later updates to this map do not leak into ``other``.
        Branches of this map that ``other`` does not mention are left
        untouched.

        Every key of ``other``, nested ones included, is normalized and every
        value converted before the first entry is stored, so an invalid key
        or a self-referencing container leaves this map unchanged.
        """
        self._apply_update(self._plan_update(other))
        return self

    def deep_merge(self, other: Mapping[Any, Any]) -> 'AttributeMap':
        """Return a new map holding this map deep-merged with ``other``."""
        merged = self._copy_tree(self)
        merged.deep_update(other)
        return merged

    def __or__(self, other: Any) -> 'AttributeMap':
        if not isinstance(other, Mapping):
            return NotImplemented
        return self.deep_merge(other)

    def __ior__(self, other: Any) -> Self:
        if not isinstance(other, Mapping):
            return NotImplemented
        return self.deep_update(other)

    # Conversion and copies

    def to_plain_mapping(self) -> dict[str, Any]:
        """Recursively unwrap nested maps into plain ``dict`` objects."""
        return {key: to_plain(value) for key, value in self._data.items()}

    to_dict = to_plain_mapping

    def copy(self) -> 'AttributeMap':
        """Shallow copy; nested maps are shared."""
        clone = self._blank_like(self)
        clone._data.update(self._data)
        return clone

    __copy__ = copy

    def deepcopy(self) -> 'AttributeMap':
        return copy.deepcopy(self)

    def __deepcopy__(self, memo: dict[int, Any]) -> 'AttributeMap':
        clone = self._blank_like(self)
        memo[id(self)] = clone
        for key, value in self._data.items():
            clone._data[key] = copy.deepcopy(value, memo)
        return clone

    def __getstate__(self) -> dict[str, Any]:
        return {'data': self._data, 'options': self._options, 'default': self._default}

    def __setstate__(self, state: dict[str, Any]) -> None:
        object.__setattr__(self, '_data', state['data'])
        object.__setattr__(self, '_options', state['options'])
        object.__setattr__(self, '_default', state['default'])

    # Internals

    @staticmethod
    def _blank_like(source: 'AttributeMap', options: MapOptions | None = None) -> 'AttributeMap':
        clone = type(source).__new__(type(source))
        object.__setattr__(clone, '_data', {})
        object.__setattr__(clone, '_options', options or source._options)
        object.__setattr__(clone, '_default', source._default)
        return clone

    def _store(self, norm: str, value: Any) -> None:
        if self._options.log_key_conflicts and self.is_structural_capability(norm):
            _logger.log(
                self._options.conflict_log_level,
                'Key "%s" shadows the %s.%s member; use item access or dispatch() to read it.',
                norm,
                type(self).__name__,
                norm,
            )
        self._data[norm] = value

    def _convert(self, value: Any, active: MutableSet[int], *, copy_maps: bool = False) -> Any:
        """Convert plain mappings, also inside lists and tuples, into maps with this map's options.

        Existing maps are shared, or copied when ``copy_maps`` is set.
        """
        if isinstance(value, AttributeMap):
            return self._copy_tree(value) if copy_maps else value
        if isinstance(value, Mapping):
            with _visiting(value, active):
                child = self.new_child()
                for key, item in value.items():
                    child._store(child._normalize(key), child._convert(item, active, copy_maps=copy_maps))
                return child
        if isinstance(value, list) or type(value) is tuple:
            with _visiting(value, active):
                items = [self._convert(item, active, copy_maps=copy_maps) for item in value]
                return tuple(items) if isinstance(value, tuple) else items
        return value

    def _copy_tree(self, source: 'AttributeMap') -> 'AttributeMap':
        """Copy the map and sequence structure of ``source`` under this map's options; leaves are shared."""
        clone = self._blank_like(source, self._options)
        for key, value in source._data.items():
            if isinstance(value, (AttributeMap, list, tuple)):
                value = self._convert(value, set(), copy_maps=True)
            clone._data[key] = value
        return clone

    def _plan_update(self, other: Mapping[Any, Any], plan: dict[str, Any] | None = None) -> dict[str, Any]:
        """Normalize and convert what ``other`` brings in without touching this map.

        Keys that merge into a stored map get a :class:`_PendingMerge`, all
        others their converted value.
        """
        plan = {} if plan is None else plan
        for key, value in list(other.items()):
            norm = self._normalize(key)
            current = plan.get(norm, self._data.get(norm, _MISSING))
            if isinstance(value, Mapping) and isinstance(current, _PendingMerge):
                current.target._plan_update(value, current.plan)
            elif isinstance(value, Mapping) and isinstance(current, AttributeMap):
                if norm in plan:
                    # A fresh copy made earlier in this plan, not yet stored.
                    current.deep_update(value)
                else:
                    plan[norm] = _PendingMerge(current, current._plan_update(value))
            else:
                plan[norm] = self._convert(value, set(), copy_maps=True)
        return plan

    def _apply_update(self, plan: dict[str, Any]) -> None:
        for norm, value in plan.items():
            if isinstance(value, _PendingMerge):
                value.target._apply_update(value.plan)
            else:
                self._store(norm, value)

    def _ensure_acyclic(self, value: Any) -> None:
        """Raise when ``value`` is, or contains, this map."""
        pending = [value]
        while pending:
            item = pending.pop()
            if item is self:
                raise CyclicAssignmentError(f'Cannot store a {type(self).__name__} inside itself')
            if isinstance(item, AttributeMap):
                pending.extend(item._data.values())
            elif isinstance(item, (list, tuple)):
                pending.extend(item)


@dataclass
class _PendingMerge:
    target: AttributeMap
    plan: dict[str, Any]


@functools.cache
def _class_members(cls: type) -> frozenset[str]:
    return frozenset(dir(cls))


@contextmanager
def _visiting(container: object, active: MutableSet[int]) -> Iterator[None]:
    """Track the containers on the current conversion path to reject self-references."""
    marker = id(container)
    if marker in active:
        raise CyclicAssignmentError('Cannot convert a self-referencing container')
    active.add(marker)
    try:
        yield
    finally:
        active.discard(marker)


def to_plain(value: Any) -> Any:
    """Recursively unwrap maps inside ``value``; other values are returned unchanged."""
    if isinstance(value, AttributeMap):
        return value.to_plain_mapping()
    if isinstance(value, list):
        return [to_plain(item) for item in value]
    if type(value) is tuple:
        return tuple(to_plain(item) for item in value)
    return value
