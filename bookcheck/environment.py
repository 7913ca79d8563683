"""Execution environment for samples: injected globals and mocked modules.

An ``EnvironmentTemplate`` is built once per run and never changes. Each
sample gets its own ``ExecutionContext`` from it: a fresh namespace, a
private copy of ``builtins`` whose ``__import__`` serves mocked modules,
and freshly built mock objects. Nothing a sample binds in its context is
visible to the next sample.

Real modules live in the shared ``sys.modules``, so closing a context
puts them back as they were:

- attributes a sample set, replaced or deleted on a module it imported,
  or on a module among the injected globals, are restored
- modules first imported during the sample are evicted from
  ``sys.modules``, unless they belong to a package that was already
  loaded or that contains a compiled extension

State held outside module attributes (pandas options, random seeds,
open files, environment variables) is not reset.
"""

from __future__ import annotations

import builtins
import importlib
import importlib.machinery
import logging
import sys
import types
from dataclasses import dataclass
from types import MappingProxyType, TracebackType
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Self, Sequence
from unittest import mock

from .errors import ConfigError

if TYPE_CHECKING:
    from .config import EnvironmentConfig

logger = logging.getLogger(__name__)

DEFAULT_GLOBALS: Mapping[str, str] = MappingProxyType({
    # Assertions
    "test": "bookcheck.primitives:test",
    "expect": "bookcheck.primitives:expect",
    "raises": "pytest:raises",
    "approx": "pytest:approx",
    "mock": "unittest.mock",
    # Plotting
    "plt": "bookcheck.primitives:pyplot",
    # Utilities
    "np": "numpy",
    "pd": "pandas",
    "Path": "pathlib:Path",
})

DEFAULT_MOCKS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "fs": {"readFileSync": "identity", "read_file": "identity"},
    "readme": {"__call__": "identity"},
    "user_home": {"__call__": "identity"},
    "express": {"Router": "stub"},
    "flask": {"Flask": "stub", "Blueprint": "stub"},
    "requests": {"get": "stub", "post": "stub", "put": "stub", "delete": "stub"},
})

DEFAULT_TEARDOWN = ("bookcheck.primitives:clear_figures",)


def _identity(value: Any = None, *args: Any, **kwargs: Any) -> Any:
    return value


def _noop(*args: Any, **kwargs: Any) -> None:
    return None


_MOCK_KINDS: Mapping[str, Callable[[], Any]] = MappingProxyType({
    "identity": lambda: _identity,
    "noop": lambda: _noop,
    "stub": mock.MagicMock,
})

MOCK_KINDS = frozenset(_MOCK_KINDS)

_MISSING = object()


def resolve_import_spec(spec: str) -> Any:
    """
    Import the object named by ``module`` or ``module:attribute``.

    Raises:
        ConfigError: If the module or attribute cannot be found
    """
    module_name, _, attribute = spec.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"cannot import {module_name!r} for {spec!r}: {e}") from e

    for part in filter(None, attribute.split(".")):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ConfigError(f"{module_name!r} has no attribute {attribute!r}") from e
    return target


def _is_compiled(module: Any) -> bool:
    loader = getattr(module, "__loader__", None)
    return isinstance(loader, importlib.machinery.ExtensionFileLoader) or loader is importlib.machinery.BuiltinImporter


def _restore_module(module: types.ModuleType, saved: Mapping[str, Any]) -> None:
    """Put a module's attributes back to a snapshot, keeping loaded submodules."""
    current = vars(module)
    for name in [name for name in current if name not in saved]:
        value = current[name]
        if isinstance(value, types.ModuleType) and sys.modules.get(f"{module.__name__}.{name}") is value:
            continue
        del current[name]
    for name, value in saved.items():
        if current.get(name, _MISSING) is not value:
            current[name] = value


class MockModule(types.ModuleType):
    """A stand-in module; callable when the mock table gives it a ``__call__``."""

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        target = self.__dict__.get("__call__")
        if target is None:
            raise TypeError(f"mocked module {self.__name__!r} is not callable")
        return target(*args, **kwargs)


@dataclass(frozen=True)
class MockSpec:
    """How to build one mocked module."""

    name: str
    """Module name as written in import statements"""

    attributes: Mapping[str, str]
    """Attribute name -> mock kind"""

    def build(self) -> MockModule:
        """Create a new mock module with fresh attribute objects."""
        module = MockModule(self.name)
        for attribute, kind in self.attributes.items():
            setattr(module, attribute, _MOCK_KINDS[kind]())
        return module


class EnvironmentTemplate:
    """
    Immutable recipe for the namespace every sample runs in.

    Holds the injected global bindings, the mock table and the teardown
    callables that reset shared state (such as open figures) after each
    sample.
    """

    def __init__(
        self,
        globals: Optional[Mapping[str, Any]] = None,
        mocks: Optional[Mapping[str, Mapping[str, str]]] = None,
        teardown: Sequence[Callable[[], Any]] = (),
    ) -> None:
        specs: dict[str, MockSpec] = {}
        for name, attributes in (mocks or {}).items():
            unknown = sorted(set(attributes.values()) - MOCK_KINDS)
            if unknown:
                raise ConfigError(
                    f"unknown mock kind {unknown[0]!r} for module {name!r}; "
                    f"expected one of {', '.join(sorted(MOCK_KINDS))}"
                )
            specs[name] = MockSpec(name, MappingProxyType(dict(attributes)))

        self.globals: Mapping[str, Any] = MappingProxyType(dict(globals or {}))
        self.mocks: Mapping[str, MockSpec] = MappingProxyType(specs)
        self.teardown: tuple[Callable[[], Any], ...] = tuple(teardown)

    @classmethod
    def from_config(cls, config: "EnvironmentConfig") -> "EnvironmentTemplate":
        """
        Build a template from the ``environment`` configuration section.

        Import specs are resolved here, once per run.

        Raises:
            ConfigError: If a spec cannot be imported or a mock kind is unknown
        """
        resolved = {name: resolve_import_spec(spec) for name, spec in config.globals.items()}
        teardown = tuple(resolve_import_spec(spec) for spec in config.teardown)
        logger.debug(
            "Environment: %d globals, %d mocked modules", len(resolved), len(config.mocks)
        )
        return cls(resolved, config.mocks, teardown)

    def new_context(self, filename: str) -> "ExecutionContext":
        """Create a fresh context for one sample."""
        return ExecutionContext(self, filename)


class ExecutionContext:
    """
    Namespace and import machinery owned by a single sample run.

    Can be used as a context manager; leaving it runs the template's
    teardown callables and puts real modules back as they were.
    """

    def __init__(self, template: EnvironmentTemplate, filename: str) -> None:
        self.template = template
        self.filename = filename
        self.modules: dict[str, types.ModuleType] = {}
        self.closed = False

        self._modules_before = frozenset(sys.modules)
        self._snapshots: dict[str, tuple[types.ModuleType, dict[str, Any]]] = {}
        for value in template.globals.values():
            self._remember(value)

        self._real_import = builtins.__import__
        sample_builtins = dict(vars(builtins))
        sample_builtins["__import__"] = self._import

        self.namespace: dict[str, Any] = dict(template.globals)
        self.namespace.update({
            "__name__": "__main__",
            "__file__": filename,
            "__builtins__": sample_builtins,
        })

    def mock_module(self, name: str) -> types.ModuleType:
        """This context's instance of a mocked module, built on first use."""
        if name not in self.modules:
            self.modules[name] = self.template.mocks[name].build()
        return self.modules[name]

    def _import(
        self,
        name: str,
        globals: Optional[Mapping[str, Any]] = None,
        locals: Optional[Mapping[str, Any]] = None,
        fromlist: Sequence[str] = (),
        level: int = 0,
    ) -> types.ModuleType:
        if level == 0 and name in self.template.mocks:
            if fromlist or "." not in name:
                return self.mock_module(name)
            return self._mock_parents(name)

        module = self._real_import(name, globals, locals, fromlist, level)
        if level == 0:
            parts = name.split(".")
            for i in range(1, len(parts) + 1):
                self._remember(sys.modules.get(".".join(parts[:i])))
        self._remember(module)
        for attribute in fromlist or ():
            self._remember(getattr(module, attribute, None))
        return module

    def _remember(self, module: Any) -> None:
        if not isinstance(module, types.ModuleType) or isinstance(module, MockModule):
            return
        if module.__name__ not in self._snapshots:
            self._snapshots[module.__name__] = (module, dict(vars(module)))

    def _mock_parents(self, name: str) -> types.ModuleType:
        # `import a.b` binds `a`, so the mock needs parents that lead to it
        parts = name.split(".")
        top = self._parent_module(parts[0])
        current = top
        for i in range(1, len(parts)):
            dotted = ".".join(parts[:i + 1])
            child = self.mock_module(dotted) if dotted in self.template.mocks else self._parent_module(dotted)
            setattr(current, parts[i], child)
            current = child
        return top

    def _parent_module(self, name: str) -> types.ModuleType:
        if name in self.template.mocks:
            return self.mock_module(name)
        if name not in self.modules:
            self.modules[name] = types.ModuleType(name)
        return self.modules[name]

    def _evict_new_packages(self) -> None:
        roots_before = {name.partition(".")[0] for name in self._modules_before}
        added: dict[str, list[str]] = {}
        for name in list(sys.modules):
            root = name.partition(".")[0]
            if name not in self._modules_before and root not in roots_before:
                added.setdefault(root, []).append(name)

        for root, names in added.items():
            if any(_is_compiled(sys.modules.get(name)) for name in names):
                logger.debug("Keeping %s loaded: it has compiled extensions", root)
                continue
            for name in names:
                sys.modules.pop(name, None)

    def close(self) -> None:
        """Run the teardown callables once and restore the real modules."""
        if self.closed:
            return
        self.closed = True
        try:
            for teardown in self.template.teardown:
                teardown()
        finally:
            self._evict_new_packages()
            for module, saved in self._snapshots.values():
                _restore_module(module, saved)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
