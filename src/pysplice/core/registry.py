"""
Transform Registry.

An explicit name -> callable table for user built transformations. There is
no module-level instance: callers create a registry, register functions on
it and pass it around.

Usage::

    registry = TransformRegistry()

    @registry.transform("pkg_resources")
    def modernize_version(refactor, target_module="importlib.metadata"):
        ...

    registry.apply("pkg_resources", refactor, target_module="mypkg.version")
"""

from typing import Any, Callable, Dict, Iterator, List

from pysplice.core.refactor import Refactor
from pysplice.errors import NotFoundError

TransformFn = Callable[..., Any]


class TransformRegistry:
  """Registry of named transformations operating on a `Refactor`."""

  def __init__(self) -> None:
    self._transforms: Dict[str, TransformFn] = {}

  def register(self, name: str, fn: TransformFn, replace: bool = False) -> TransformFn:
    """
    Registers a transformation.

    Args:
        name: Lookup key.
        fn: Callable taking a `Refactor` as first argument.
        replace: Allow overwriting an existing registration.

    Returns:
        The registered callable.

    Raises:
        ValueError: If `name` is taken and `replace` is False.
    """
    if name in self._transforms and not replace:
      raise ValueError(f"Transform '{name}' is already registered")
    self._transforms[name] = fn
    return fn

  def transform(self, name: str, replace: bool = False) -> Callable[[TransformFn], TransformFn]:
    """Decorator form of `register`."""

    def decorator(fn: TransformFn) -> TransformFn:
      return self.register(name, fn, replace=replace)

    return decorator

  def get(self, name: str) -> TransformFn:
    """
    Looks up a transformation.

    Raises:
        NotFoundError: If nothing is registered under `name`.
    """
    try:
      return self._transforms[name]
    except KeyError:
      raise NotFoundError("Transform", name) from None

  def names(self) -> List[str]:
    """Registered names in registration order."""
    return list(self._transforms)

  def apply(self, name: str, refactor: Refactor, **kwargs: Any) -> Any:
    """
    Runs a registered transformation.

    Args:
        name: Registered name.
        refactor: Engine to operate on.
        **kwargs: Forwarded to the transformation.

    Returns:
        Whatever the transformation returns.
    """
    return self.get(name)(refactor, **kwargs)

  def __contains__(self, name: object) -> bool:
    return name in self._transforms

  def __len__(self) -> int:
    return len(self._transforms)

  def __iter__(self) -> Iterator[str]:
    return iter(self._transforms)
