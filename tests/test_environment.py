"""Tests for the sample execution environment."""

import json
import os
import pathlib
import sys
from unittest import mock

import numpy as np
import pytest

from bookcheck.environment import (
    DEFAULT_GLOBALS,
    DEFAULT_MOCKS,
    EnvironmentTemplate,
    MockModule,
    MockSpec,
    resolve_import_spec,
)
from bookcheck.errors import ConfigError


def run_in(template: EnvironmentTemplate, source: str) -> dict:
    with template.new_context("book/ch.md") as context:
        exec(compile(source, "book/ch.md", "exec"), context.namespace)
        return context.namespace


class TestImportSpecs:
    """Test resolving ``module`` and ``module:attribute`` specs."""

    def test_module(self) -> None:
        """Test a bare module spec."""
        assert resolve_import_spec("json") is json

    def test_attribute(self) -> None:
        """Test an attribute spec."""
        assert resolve_import_spec("pathlib:Path") is pathlib.Path

    def test_nested_attribute(self) -> None:
        """Test a dotted attribute path."""
        assert resolve_import_spec("pathlib:Path.cwd") == pathlib.Path.cwd

    def test_missing_module(self) -> None:
        """Test that an unknown module is a configuration error."""
        with pytest.raises(ConfigError, match="cannot import 'no_such_module_xyz'"):
            resolve_import_spec("no_such_module_xyz")

    def test_missing_attribute(self) -> None:
        """Test that an unknown attribute is a configuration error."""
        with pytest.raises(ConfigError, match="has no attribute 'Nope'"):
            resolve_import_spec("pathlib:Nope")


class TestDefaults:
    """Test the default environment."""

    def test_default_globals(self, environment: EnvironmentTemplate) -> None:
        """Test that assertion, plotting and utility names are injected."""
        assert set(DEFAULT_GLOBALS) <= set(environment.globals)
        assert environment.globals["np"] is np
        assert environment.globals["raises"] is pytest.raises
        assert environment.globals["mock"] is mock

    def test_globals_are_read_only(self, environment: EnvironmentTemplate) -> None:
        """Test that the template cannot be changed."""
        with pytest.raises(TypeError):
            environment.globals["np"] = None  # type: ignore[index]

    def test_default_mocks(self, environment: EnvironmentTemplate) -> None:
        """Test the default mock table."""
        assert set(environment.mocks) == set(DEFAULT_MOCKS)
        assert environment.mocks["fs"].attributes["readFileSync"] == "identity"

    def test_assertion_primitives(self, environment: EnvironmentTemplate) -> None:
        """Test ``test`` and ``expect`` inside a sample."""
        run_in(environment, "test(1 + 1 == 2)\nexpect([1, 2]).to_have_length(2).to_contain(1)")
        with pytest.raises(AssertionError):
            run_in(environment, "test(1 + 1 == 3)")


class TestMocks:
    """Test mocked module imports."""

    def test_read_file_sync_is_identity(self, environment: EnvironmentTemplate) -> None:
        """Test that file reads return the path they were given."""
        namespace = run_in(environment, "from fs import readFileSync\ncontent = readFileSync('config.json', 'utf8')")
        assert namespace["content"] == "config.json"

    def test_callable_module(self, environment: EnvironmentTemplate) -> None:
        """Test that a module mock with ``__call__`` can be called."""
        namespace = run_in(environment, "import readme\nresult = readme('README.md')")
        assert namespace["result"] == "README.md"

    def test_module_without_call(self) -> None:
        """Test that calling a module mock without ``__call__`` fails."""
        module = MockSpec("fs", {"readFileSync": "identity"}).build()
        assert isinstance(module, MockModule)
        with pytest.raises(TypeError, match="not callable"):
            module()

    def test_stub(self, environment: EnvironmentTemplate) -> None:
        """Test that stubs record their calls."""
        namespace = run_in(environment, "import requests\nresponse = requests.get('https://example.com')")
        assert isinstance(namespace["response"], mock.MagicMock)
        namespace["requests"].get.assert_called_once_with("https://example.com")

    def test_noop(self) -> None:
        """Test that no-op mocks return None."""
        template = EnvironmentTemplate(mocks={"mailer": {"send": "noop"}})
        assert run_in(template, "from mailer import send\nresult = send('hi')")["result"] is None

    def test_dotted_mock(self) -> None:
        """Test mocking a submodule."""
        template = EnvironmentTemplate(mocks={"company.api": {"fetch": "identity"}})
        namespace = run_in(
            template,
            "import company.api\na = company.api.fetch(3)\nfrom company.api import fetch\nb = fetch(4)",
        )
        assert (namespace["a"], namespace["b"]) == (3, 4)

    def test_real_imports_still_work(self, environment: EnvironmentTemplate) -> None:
        """Test that unmocked modules are imported normally."""
        namespace = run_in(environment, "import json\nfrom os import path")
        assert namespace["json"] is json

    def test_unknown_mock_kind(self) -> None:
        """Test that the template rejects unknown mock kinds."""
        with pytest.raises(ConfigError, match="unknown mock kind 'magic'"):
            EnvironmentTemplate(mocks={"fs": {"readFileSync": "magic"}})


class TestIsolation:
    """Test that samples cannot see each other."""

    def test_fresh_namespace(self, environment: EnvironmentTemplate) -> None:
        """Test that bindings do not leak to the next context."""
        first = run_in(environment, "leaked = 1")
        assert first["leaked"] == 1
        second = run_in(environment, "present = 'leaked' in globals()")
        assert second["present"] is False

    def test_fresh_mocks(self, environment: EnvironmentTemplate) -> None:
        """Test that every context builds its own mock objects."""
        first = environment.new_context("a.md")
        second = environment.new_context("a.md")
        assert first.mock_module("requests") is first.mock_module("requests")
        assert first.mock_module("requests") is not second.mock_module("requests")

    def test_private_builtins(self, environment: EnvironmentTemplate) -> None:
        """Test that a sample cannot replace the real builtins."""
        namespace = run_in(environment, "__builtins__['len'] = None")
        assert namespace["__builtins__"]["len"] is None
        assert len("abc") == 3

    def test_module_identity(self, environment: EnvironmentTemplate) -> None:
        """Test the dunder names a sample sees."""
        namespace = run_in(environment, "name = __name__\nfile = __file__")
        assert namespace["name"] == "__main__"
        assert namespace["file"] == "book/ch.md"


class TestTeardown:
    """Test teardown callables."""

    def test_teardown_runs_once(self) -> None:
        """Test that closing twice runs teardown once."""
        calls = []
        template = EnvironmentTemplate(teardown=[lambda: calls.append(1)])
        with template.new_context("a.md") as context:
            pass
        context.close()
        assert calls == [1]
        assert context.closed

    def test_figures_are_cleared(self, environment: EnvironmentTemplate) -> None:
        """Test that open figures do not survive a sample."""
        run_in(environment, "plt.figure()\ntest(len(plt.get_fignums()) == 1)")
        run_in(environment, "test(plt.get_fignums() == [])")


class TestModuleRestore:
    """Test that real modules are put back when a context closes."""

    def test_module_attributes_are_restored(self, environment: EnvironmentTemplate) -> None:
        """Test added, replaced and deleted attributes of an imported module."""
        dumps, loads = json.dumps, json.loads
        run_in(environment, "import json\njson.leaked_marker = 42\njson.dumps = None\ndel json.loads")
        assert not hasattr(json, "leaked_marker")
        assert json.dumps is dumps
        assert json.loads is loads

    def test_from_import_is_restored(self, environment: EnvironmentTemplate) -> None:
        """Test a module reached through ``from package import module``."""
        run_in(environment, "from os import path\npath.leaked_marker = 1")
        assert not hasattr(os.path, "leaked_marker")

    def test_injected_module_is_restored(self, environment: EnvironmentTemplate) -> None:
        """Test a module handed to samples as a global."""
        pi = np.pi
        run_in(environment, "np.pi = 3")
        assert np.pi == pi

    def test_new_package_is_evicted(
        self, environment: EnvironmentTemplate, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a pure Python package first loaded by a sample is unloaded."""
        package = tmp_path / "scratch_sample_pkg"
        package.mkdir()
        (package / "__init__.py").write_text("counter = 0\n", encoding="utf-8")
        (package / "helpers.py").write_text("value = 1\n", encoding="utf-8")
        monkeypatch.syspath_prepend(str(tmp_path))

        namespace = run_in(environment, "import scratch_sample_pkg.helpers\nscratch_sample_pkg.counter += 1")
        assert "scratch_sample_pkg" not in sys.modules
        assert "scratch_sample_pkg.helpers" not in sys.modules

        second = run_in(environment, "import scratch_sample_pkg")
        assert second["scratch_sample_pkg"] is not namespace["scratch_sample_pkg"]
        assert second["scratch_sample_pkg"].counter == 0

    def test_submodule_of_loaded_package_is_kept(self, environment: EnvironmentTemplate) -> None:
        """Test that a new submodule stays reachable from its already loaded parent."""
        run_in(environment, "import json.tool")
        assert "json.tool" in sys.modules
        assert json.tool is sys.modules["json.tool"]
