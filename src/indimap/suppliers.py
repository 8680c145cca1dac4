# pyright: reportPrivateUsage=false
import inspect
from typing import Any, Callable

from dependency_injector import providers

DefaultSupplier = Callable[[Any, str], Any]


def wire_supplier(supplier: Callable[..., Any]) -> DefaultSupplier:
    """Adapt a default supplier to the ``(map, key)`` calling convention.

    Accepted forms:

    - ``supplier(map, key)``
    - ``supplier(key)``
    - ``supplier()``, e.g. ``list`` or ``dict``
    - any ``dependency_injector`` provider, called without arguments

    Parameters
    ----------
    supplier : Callable[..., Any]
        The caller provided supplier.

    Returns
    -------
    DefaultSupplier
        A callable taking the map and the normalized key.

    Raises
    ------
    TypeError
        When ``supplier`` is not callable or requires more than two
        positional arguments.
    """
    if isinstance(supplier, providers.Provider):
        provider = supplier

        def _wired_provider(_map: Any, _key: str) -> Any:
            return provider()

        return _wired_provider

    if not callable(supplier):
        raise TypeError(f'Default supplier must be callable, got {type(supplier).__name__}')

    arity = _positional_arity(supplier)
    if arity is None or arity == 2:
        return supplier
    if arity == 1:

        def _wired_key_supplier(_map: Any, key: str) -> Any:
            return supplier(key)

        return _wired_key_supplier
    if arity == 0:

        def _wired_factory(_map: Any, _key: str) -> Any:
            return supplier()

        return _wired_factory

    raise TypeError(f'Default supplier takes {arity} required arguments, expected at most 2')


def _positional_arity(func: Callable[..., Any]) -> int | None:
    """Number of positional arguments ``func`` requires, ``None`` if it takes ``*args``.

    Parameters with a default do not count, so factories such as ``list``
    (whose only parameter is optional) are called without arguments.
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without a signature (e.g. ``dict``) are used as factories.
        return 0

    required = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if (
            param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            and param.default is inspect._empty
        ):
            required += 1

    return required
