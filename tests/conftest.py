from collections.abc import Iterator

import pytest

from indimap import AttributeMap


@pytest.fixture(autouse=True)
def reset_member_cache() -> Iterator[None]:
    """Forget the cached class members so classes defined in tests do not leak between tests."""
    import indimap.attribute_map as attribute_map

    yield

    attribute_map._class_members.cache_clear()  # pyright: ignore[reportPrivateUsage]


@pytest.fixture
def nested() -> AttributeMap:
    return AttributeMap({'a': {'b': 1}, 'l': [{'c': 2}]})


@pytest.fixture
def supplied() -> AttributeMap:
    """An empty map whose default supplier returns a fresh list."""
    return AttributeMap(default=list)
