from typing import Any, Protocol, runtime_checkable

from indimap import AttributeMap


@runtime_checkable
class Sortable(Protocol):
    def sort(self) -> None: ...


@runtime_checkable
class Stateful(Protocol):
    def state_dict(self) -> dict[str, Any]: ...
    def load_state_dict(self, state_dict: dict[str, Any]) -> None: ...


class SortableMap(AttributeMap):
    def sort(self) -> None:
        for key in sorted(self):
            self[key] = self.pop(key)


def test_structural_capability_ignores_data():
    m = AttributeMap()
    assert not m.is_structural_capability('sort')
    m['sort'] = 'asc'
    assert not m.is_structural_capability('sort')
    assert m.supports_accessor('sort')

    assert AttributeMap.is_structural_capability('keys')
    m['keys'] = 1
    assert m.is_structural_capability('keys')
    assert m.supports_accessor('keys')


def test_supports_accessor_follows_the_rules():
    m = AttributeMap()
    assert not m.supports_accessor('sort')
    assert m.supports_accessor('sort?')
    assert m.supports_accessor('sort!')
    assert m.supports_accessor('sort=', 1)
    assert not m.supports_accessor('sort=')
    assert m.supports_accessor('keys')

    assert AttributeMap(default=list).supports_accessor('sort')
    assert not AttributeMap(default=list).supports_accessor('Sort')


def test_protocol_checks_do_not_see_data(supplied: AttributeMap):
    m = AttributeMap(state_dict={'a': 1}, load_state_dict=None, sort='asc')
    assert not isinstance(m, Stateful)
    assert not isinstance(m, Sortable)
    assert not isinstance(supplied, Sortable)


def test_subclass_capabilities_are_structural():
    m = SortableMap(b=2, a=1)
    assert isinstance(m, Sortable)
    assert m.is_structural_capability('sort')
    assert not AttributeMap.is_structural_capability('sort')

    m.sort()
    assert list(m) == ['a', 'b']


def test_has_builtin_includes_private_members():
    assert AttributeMap.has_builtin('__len__')
    assert AttributeMap.has_builtin('_store')
    assert not AttributeMap.is_structural_capability('__len__')
    assert not AttributeMap.has_builtin('missing')


def test_hasattr_does_not_see_data_or_supplier_defaults(supplied: AttributeMap):
    stored = AttributeMap(read='not a file')
    assert not hasattr(stored, 'read')
    assert not hasattr(supplied, 'write')
    assert getattr(supplied, 'write', None) is None

    # The explicit accessor routes still resolve both.
    assert stored.attrs.read == 'not a file'
    assert supplied.attrs.write == []
    assert 'write' not in supplied
