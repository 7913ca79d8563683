"""Configuration loading.

Configuration lives in a YAML file (``bookcheck.yaml`` by default)::

    manuscript: manuscript
    pattern: "*.md"
    samples:
      languages: [python, pycon]
      skip_marker: test-skip
    environment:
      globals:
        sp: scipy
      mocks:
        boto3:
          client: stub
        fs: null          # drop a default mock
    lint:
      ignore_documents: [160_Footer.md]

Every key is optional. ``environment.globals`` and ``environment.mocks``
are merged over the defaults; a ``null`` entry removes a default.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import cattrs
import yaml

from .environment import DEFAULT_GLOBALS, DEFAULT_MOCKS, DEFAULT_TEARDOWN
from .errors import ConfigError
from .extractor import DEFAULT_IGNORE, DEFAULT_LANGUAGES, SKIP_MARKER

CONFIG_FILENAME = "bookcheck.yaml"


@dataclass(frozen=True)
class SampleConfig:
    """Which code blocks become samples."""

    languages: tuple[str, ...] = DEFAULT_LANGUAGES
    """Code block languages that are executed"""

    ignore: tuple[str, ...] = DEFAULT_IGNORE
    """Annotations walked over when resolving headers and footers"""

    skip_marker: str = SKIP_MARKER
    """Header annotation that excludes a code block"""


@dataclass(frozen=True)
class EnvironmentConfig:
    """What every sample finds in its namespace."""

    globals: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_GLOBALS))
    """Injected name -> import spec (``module`` or ``module:attribute``)"""

    mocks: dict[str, dict[str, str]] = field(
        default_factory=lambda: {name: dict(attrs) for name, attrs in DEFAULT_MOCKS.items()}
    )
    """Mocked module name -> attribute -> mock kind"""

    teardown: tuple[str, ...] = DEFAULT_TEARDOWN
    """Import specs of callables run after every sample"""


@dataclass(frozen=True)
class LintConfig:
    """Link linter settings."""

    ignore_documents: tuple[str, ...] = ("160_Footer.md",)
    """Document file names the linter does not read"""


@dataclass(frozen=True)
class Config:
    """Complete bookcheck configuration."""

    manuscript: str = "manuscript"
    """Manuscript directory, relative to the configuration file"""

    pattern: str = "*.md"
    """Glob pattern of manuscript documents"""

    samples: SampleConfig = field(default_factory=SampleConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    lint: LintConfig = field(default_factory=LintConfig)

    def manuscript_path(self, base: Union[str, Path]) -> Path:
        """Resolve the manuscript directory against ``base``."""
        return Path(base) / self.manuscript


_converter = cattrs.Converter(forbid_extra_keys=True)


def _merge_over(defaults: Mapping[str, Any], overrides: Any) -> Any:
    if not isinstance(overrides, Mapping):
        # Let structuring report the wrong shape
        return overrides
    merged = dict(defaults)
    for key, value in overrides.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


def config_from_mapping(raw: Any, path: Optional[Path] = None) -> Config:
    """
    Structure a parsed YAML document into a ``Config``.

    Raises:
        ConfigError: If the document does not have the expected shape
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError("configuration must be a mapping", path)

    raw = dict(raw)
    environment = raw.get("environment")
    if isinstance(environment, Mapping):
        environment = dict(environment)
        if "globals" in environment:
            environment["globals"] = _merge_over(DEFAULT_GLOBALS, environment["globals"])
        if "mocks" in environment:
            environment["mocks"] = _merge_over(DEFAULT_MOCKS, environment["mocks"])
        raw["environment"] = environment

    try:
        return _converter.structure(raw, Config)
    except (cattrs.BaseValidationError, cattrs.ForbiddenExtraKeysError, TypeError, ValueError) as e:
        raise ConfigError(f"invalid configuration: {e}", path) from e


def load_config(path: Union[str, Path, None] = None, root: Union[str, Path, None] = None) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        path: Explicit configuration file. When omitted, ``bookcheck.yaml``
            in ``root`` (default: the working directory) is used if it exists,
            and the built-in defaults otherwise.
        root: Directory searched for ``bookcheck.yaml``

    Returns:
        The loaded configuration

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    if path is None:
        candidate = Path(root if root is not None else Path.cwd()) / CONFIG_FILENAME
        if not candidate.is_file():
            return Config()
        path = candidate

    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read configuration: {e}", path) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", path) from e
    return config_from_mapping(raw, path)
