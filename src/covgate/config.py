"""Threshold configuration and parsing from ``.covgate.yml``.

Options may be given as the camelCase option bag used by lint rule hosts
(``thresholdsByPattern``, ``jsxSeverity``, ...) or as snake_case keys in the
``coverage`` section of ``.covgate.yml``. Either way the result is a
:class:`ThresholdConfig`, validated once when it is built.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from covgate.utils.glob import GlobSyntaxError, compile_glob, glob_match

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".covgate.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

SEVERITY_LEVELS = ("error", "warn", "off")
ANALYSIS_MODES = ("all", "changed")

_MAX_PERCENTAGE = 100.0


class ConfigError(ValueError):
    """Raised when configuration values are invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid coverage configuration:\n  - " + "\n  - ".join(errors))


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_value(value: Any) -> Any:
    if isinstance(value, str):
        return _resolve_env_vars(value)
    if isinstance(value, dict):
        return {key: _resolve_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]
    return value


@dataclass(frozen=True)
class SeverityConfig:
    """Severities of the file-level findings."""

    no_coverage: str = "error"
    """Severity when the coverage report is missing or unreadable."""

    below_threshold: str = "warn"
    """Severity when file coverage is below its threshold."""


@dataclass(frozen=True)
class PatternThreshold:
    """Threshold override for files matching a glob."""

    pattern: str
    threshold: float


def _default_ignore_patterns() -> list[str]:
    return ["**/*.d.ts", "**/index.ts"]


def _default_test_patterns() -> list[str]:
    return ["**/*.{test,spec}.{ts,tsx,js,jsx}", "**/__tests__/**"]


@dataclass(frozen=True)
class ThresholdConfig:
    """Per-invocation coverage policy.

    Raises:
        ConfigError: From ``__post_init__`` when any value is invalid.
    """

    threshold: float = 80.0
    """Global minimum file coverage percentage."""

    thresholds_by_pattern: list[PatternThreshold] = field(default_factory=list)
    """Overrides checked in order; the first matching pattern wins."""

    ignore_patterns: list[str] = field(default_factory=_default_ignore_patterns)
    test_patterns: list[str] = field(default_factory=_default_test_patterns)
    """Test files are skipped like ignored files."""

    mode: str = "all"
    """``all`` checks whole files; ``changed`` only lines changed against ``base_branch``."""

    base_branch: str = "main"
    coverage_path: str = "coverage/coverage-final.json"
    severity: SeverityConfig = field(default_factory=SeverityConfig)

    chunk_coverage: bool = False
    chunk_threshold: float = 80.0
    chunk_severity: str = "warn"
    focus_non_react: bool = False
    """Judge components and handlers against ``relaxed_threshold``."""

    relaxed_threshold: float = 50.0

    jsx_threshold: float = 50.0
    jsx_severity: str = "warn"

    aggregate_threshold: float = 70.0
    aggregate_severity: str = "warn"

    def __post_init__(self) -> None:
        errors = validate_threshold_config(self)
        if errors:
            raise ConfigError(errors)

    def threshold_for(self, path: str) -> float:
        """Return the first matching pattern threshold, else the global one."""
        for override in self.thresholds_by_pattern:
            if glob_match(override.pattern, path):
                return override.threshold
        return self.threshold

    @classmethod
    def from_options(cls, options: dict[str, Any] | None) -> ThresholdConfig:
        """Build a config from an option bag (camelCase or snake_case keys).

        Raises:
            ConfigError: For unknown keys, wrongly-typed values or invalid values.
        """
        options = options or {}
        errors: list[str] = []
        kwargs: dict[str, Any] = {}

        for raw_key, value in options.items():
            key = _OPTION_ALIASES.get(raw_key, raw_key)
            if key not in _OPTION_PARSERS:
                errors.append(f"Unknown coverage option: {raw_key}")
                continue
            try:
                kwargs[key] = _OPTION_PARSERS[key](value)
            except (TypeError, ValueError) as exc:
                errors.append(f"{raw_key}: {exc}")

        if errors:
            raise ConfigError(errors)
        return cls(**kwargs)

    def to_options(self) -> dict[str, Any]:
        """Render as the camelCase option bag."""
        data = asdict(self)
        reverse = {snake: camel for camel, snake in _OPTION_ALIASES.items()}
        options: dict[str, Any] = {}
        for key, value in data.items():
            if key == "severity":
                value = {"noCoverage": value["no_coverage"], "belowThreshold": value["below_threshold"]}
            options[reverse.get(key, key)] = value
        return options


# ── Option parsing ───────────────────────────────────────────────


def _as_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number (got: {value!r})")
    return float(value)


def _as_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected true or false (got: {value!r})")
    return value


def _as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string (got: {value!r})")
    return value


def _as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TypeError(f"expected a list of strings (got: {value!r})")
    return list(value)


def _as_pattern_thresholds(value: Any) -> list[PatternThreshold]:
    if not isinstance(value, list):
        raise TypeError(f"expected a list of {{pattern, threshold}} entries (got: {value!r})")
    overrides: list[PatternThreshold] = []
    for entry in value:
        if not isinstance(entry, dict) or "pattern" not in entry or "threshold" not in entry:
            raise TypeError(f"each entry needs 'pattern' and 'threshold' (got: {entry!r})")
        overrides.append(
            PatternThreshold(pattern=_as_str(entry["pattern"]), threshold=_as_float(entry["threshold"]))
        )
    return overrides


def _as_severity(value: Any) -> SeverityConfig:
    if not isinstance(value, dict):
        raise TypeError(f"expected a mapping (got: {value!r})")
    aliases = {"noCoverage": "no_coverage", "belowThreshold": "below_threshold"}
    kwargs: dict[str, str] = {}
    for raw_key, level in value.items():
        key = aliases.get(raw_key, raw_key)
        if key not in ("no_coverage", "below_threshold"):
            raise ValueError(f"unknown severity key {raw_key!r}")
        kwargs[key] = _as_str(level)
    return SeverityConfig(**kwargs)


_OPTION_ALIASES: dict[str, str] = {
    "thresholdsByPattern": "thresholds_by_pattern",
    "ignorePatterns": "ignore_patterns",
    "testPatterns": "test_patterns",
    "baseBranch": "base_branch",
    "coveragePath": "coverage_path",
    "chunkCoverage": "chunk_coverage",
    "chunkThreshold": "chunk_threshold",
    "chunkSeverity": "chunk_severity",
    "focusNonReact": "focus_non_react",
    "relaxedThreshold": "relaxed_threshold",
    "jsxThreshold": "jsx_threshold",
    "jsxSeverity": "jsx_severity",
    "aggregateThreshold": "aggregate_threshold",
    "aggregateSeverity": "aggregate_severity",
}

_OPTION_PARSERS: dict[str, Any] = {
    "threshold": _as_float,
    "thresholds_by_pattern": _as_pattern_thresholds,
    "ignore_patterns": _as_str_list,
    "test_patterns": _as_str_list,
    "mode": _as_str,
    "base_branch": _as_str,
    "coverage_path": _as_str,
    "severity": _as_severity,
    "chunk_coverage": _as_bool,
    "chunk_threshold": _as_float,
    "chunk_severity": _as_str,
    "focus_non_react": _as_bool,
    "relaxed_threshold": _as_float,
    "jsx_threshold": _as_float,
    "jsx_severity": _as_str,
    "aggregate_threshold": _as_float,
    "aggregate_severity": _as_str,
}


# ── Validation ───────────────────────────────────────────────────


def _check_percentage(name: str, value: float, errors: list[str]) -> None:
    if not 0.0 <= value <= _MAX_PERCENTAGE:
        errors.append(f"{name} must be between 0 and 100 (got: {value})")


def _check_severity(name: str, value: str, errors: list[str]) -> None:
    if value not in SEVERITY_LEVELS:
        errors.append(f"{name} must be one of {', '.join(SEVERITY_LEVELS)} (got: {value!r})")


def _check_glob(name: str, pattern: str, errors: list[str]) -> None:
    try:
        compile_glob(pattern)
    except GlobSyntaxError as exc:
        errors.append(f"{name}: {exc}")


def validate_threshold_config(config: ThresholdConfig) -> list[str]:
    """Return every problem found in *config* (empty when valid)."""
    errors: list[str] = []

    for name in ("threshold", "chunk_threshold", "relaxed_threshold", "jsx_threshold", "aggregate_threshold"):
        _check_percentage(name, getattr(config, name), errors)

    for index, override in enumerate(config.thresholds_by_pattern):
        _check_percentage(f"thresholds_by_pattern[{index}].threshold", override.threshold, errors)
        _check_glob(f"thresholds_by_pattern[{index}].pattern", override.pattern, errors)

    for index, pattern in enumerate(config.ignore_patterns):
        _check_glob(f"ignore_patterns[{index}]", pattern, errors)
    for index, pattern in enumerate(config.test_patterns):
        _check_glob(f"test_patterns[{index}]", pattern, errors)

    if config.mode not in ANALYSIS_MODES:
        errors.append(f"mode must be one of {', '.join(ANALYSIS_MODES)} (got: {config.mode!r})")
    if not config.base_branch.strip():
        errors.append("base_branch must not be empty")
    if not config.coverage_path.strip():
        errors.append("coverage_path must not be empty")

    _check_severity("severity.no_coverage", config.severity.no_coverage, errors)
    _check_severity("severity.below_threshold", config.severity.below_threshold, errors)
    _check_severity("chunk_severity", config.chunk_severity, errors)
    _check_severity("jsx_severity", config.jsx_severity, errors)
    _check_severity("aggregate_severity", config.aggregate_severity, errors)

    return errors


def load_config(root: str | Path) -> ThresholdConfig:
    """Load the ``coverage`` section of ``.covgate.yml`` under *root*.

    Falls back to defaults when the file or the section is missing.

    Raises:
        ConfigError: If the section holds invalid options.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILE_NAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_value(parsed)

    section = raw.get("coverage", {})
    if not isinstance(section, dict):
        logger.warning("Ignoring non-mapping 'coverage' section in %s", config_file)
        section = {}
    return ThresholdConfig.from_options(section)
