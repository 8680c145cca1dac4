import pytest

from indimap import ACCESSOR_RULES, AttributeMap, UnknownMemberError
from indimap.dispatch import find_rule


def test_rules_are_ordered():
    assert [rule.name for rule in ACCESSOR_RULES] == [
        'writer',
        'query',
        'initializing_reader',
        'stored_reader',
        'default_reader',
    ]


def test_writer_stores_converted_value():
    m = AttributeMap()
    assert m.dispatch('name=', 'Ann') == 'Ann'
    assert m['name'] == 'Ann'

    profile = m.dispatch('profile=', {'age': 3})
    assert isinstance(profile, AttributeMap)
    assert m['profile'] is profile


def test_query_reports_stored_keys_only(supplied: AttributeMap):
    assert supplied.dispatch('name?') is False
    supplied.attrs.name = None
    assert supplied.dispatch('name?') is True


def test_initializing_reader():
    m = AttributeMap()
    child = m.dispatch('settings!')
    assert isinstance(child, AttributeMap)
    assert m['settings'] is child
    assert m.dispatch('settings!') is child

    child.attrs.theme = 'dark'
    assert m.to_plain_mapping() == {'settings': {'theme': 'dark'}}

    m.attrs.count = 1
    assert m.dispatch('count!') == 1


def test_stored_data_shadows_builtins_in_dispatch():
    m = AttributeMap()
    m['keys'] = 'data'
    assert m.dispatch('keys') == 'data'

    assert m.attrs.keys == 'data'

    # Attribute lookup on the map itself keeps the method.
    assert callable(m.keys)
    assert list(m.keys()) == ['keys']


def test_default_reader_requires_supplier(supplied: AttributeMap):
    assert supplied.dispatch('tags') == []
    assert supplied.attrs.tags == []
    assert 'tags' not in supplied

    # Data wins over built-in names, the supplier included.
    assert supplied.dispatch('values') == []

    with pytest.raises(UnknownMemberError):
        supplied.dispatch('Tags')

    plain = AttributeMap()
    with pytest.raises(UnknownMemberError):
        plain.dispatch('tags')


def test_builtin_fallback():
    m = AttributeMap(a=1)
    assert list(m.dispatch('keys')) == ['a']
    assert m.dispatch('get', 'a') == 1
    assert m.dispatch('__len__') == 1
    assert m.dispatch('options') is m.options

    with pytest.raises(TypeError):
        m.dispatch('options', 1)


def test_unknown_member():
    m = AttributeMap()
    with pytest.raises(UnknownMemberError) as excinfo:
        m.dispatch('missing')
    assert isinstance(excinfo.value, AttributeError)
    assert excinfo.value.name == 'missing'
    assert "'missing'" in str(excinfo.value)


def test_wrong_arity_falls_through():
    m = AttributeMap()
    with pytest.raises(UnknownMemberError):
        m.dispatch('name=')
    with pytest.raises(UnknownMemberError):
        m.dispatch('name?', 1)
    with pytest.raises(UnknownMemberError):
        m.dispatch('name!', 1)
    assert find_rule(m, 'name=', 0) is None


def test_suffix_rules_come_before_stored_keys():
    m = AttributeMap()
    m['a?'] = 'literal'
    assert m.dispatch('a?') is False
    assert m['a?'] == 'literal'


def test_attrs_view_routes_through_dispatch():
    m = AttributeMap()
    m.attrs.profile = {'age': 3}
    assert isinstance(m['profile'], AttributeMap)
    assert m.attrs.profile.attrs.age == 3

    m.attrs._hidden = 1
    assert m['_hidden'] == 1
    assert m.attrs._hidden == 1

    assert m.attrs.profile is m.dispatch('profile')
    # Built-in members are invoked like any other accessor.
    assert list(m.attrs.keys) == ['profile', '_hidden']

    with pytest.raises(AttributeError):
        _ = m.attrs.__not_a_dunder__
    with pytest.raises(UnknownMemberError):
        _ = m.attrs.missing


def test_map_attributes_never_reach_data():
    m = AttributeMap(profile={'age': 3})
    with pytest.raises(AttributeError):
        _ = m.profile
    with pytest.raises(AttributeError):
        m.profile = None
    with pytest.raises(AttributeError):
        m._hidden = 1
    assert m == {'profile': {'age': 3}}
