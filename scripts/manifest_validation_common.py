#!/usr/bin/env python3
"""
Skill Marketplace Manifest Tools - Common Module

Shared infrastructure for the manifest validator and the skill index generator.
This module contains:
- Type definitions (Level, ValidationResult, ValidationReport)
- Manifest model (PluginManifest, DirectoryMode, ArrayMode, ManifestSummary)
- Loaders for plugin.json / marketplace.json
- Front matter name extraction for SKILL.md and agent files
- Utility functions (exit codes, terminal colors)

Both scripts import from this module so that they agree on how the manifest
is read and how paths in it are resolved.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Union

import yaml

# =============================================================================
# Type Definitions
# =============================================================================

# Validation result severity levels
# - CRITICAL: fatal configuration error, the sweep stops immediately
# - MAJOR: a declared skill/agent is missing on disk (blocks, non-zero exit)
# - WARNING: a skill/agent on disk is not declared (never blocks unless --strict)
# - INFO: neutral note, always printed
# - PASSED: check passed
Level = Literal["CRITICAL", "MAJOR", "WARNING", "INFO", "PASSED"]

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0  # No errors (warnings allowed)
EXIT_FAILURE = 1  # Fatal JSON error or at least one missing declared item

# =============================================================================
# Layout Constants
# =============================================================================

PLUGIN_DIR = ".claude-plugin"
PLUGIN_MANIFEST = "plugin.json"
MARKETPLACE_MANIFEST = "marketplace.json"
SKILL_MARKER = "SKILL.md"
SKILLS_ROOT = "skills"
AGENTS_ROOT = "agents"
AGENT_SUFFIX = ".md"


class ManifestError(Exception):
    """A manifest file is missing, unreadable or not usable as a manifest."""


# =============================================================================
# Manifest Model
# =============================================================================


@dataclass(frozen=True)
class DirectoryMode:
    """agents is a single directory: every *.md inside is registered implicitly."""

    path: str


@dataclass(frozen=True)
class ArrayMode:
    """agents is an explicit list of paths (legacy form, no .md suffix)."""

    paths: tuple[str, ...]


AgentsConfig = Union[DirectoryMode, ArrayMode]


@dataclass
class PluginManifest:
    """The parts of plugin.json the tools consume.

    Attributes:
        skills: Declared skill directories, in manifest order
        agents: DirectoryMode, ArrayMode, or None when agents is absent/unusable
        version: Declared version string (display only)
        name: Plugin name (used by the index generator)
        raw: The full parsed document
    """

    skills: list[Any]
    agents: AgentsConfig | None
    version: str | None = None
    name: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class ManifestSummary:
    """Totals printed at the end of a validation run."""

    skills_registered: int
    agents_registered: int
    agents_directory: str | None = None
    version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "skills_registered": self.skills_registered,
            "agents_registered": self.agents_registered,
            "agents_directory": self.agents_directory,
            "version": self.version,
        }


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ValidationResult:
    """Single validation check result.

    Attributes:
        level: Severity level (CRITICAL, MAJOR, WARNING, INFO, PASSED)
        message: Human-readable description of the result
        file: Optional path the result refers to (the expected path for misses)
        phase: Output section the result belongs to
    """

    level: Level
    message: str
    file: str | None = None
    phase: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, str | None] = {"level": self.level, "message": self.message}
        if self.file is not None:
            result["file"] = self.file
        if self.phase is not None:
            result["phase"] = self.phase
        return result


@dataclass
class ValidationReport:
    """Complete validation report.

    Results are accumulated in order; nothing after the JSON syntax gate stops
    the sweep, so a single run lists every discrepancy.
    """

    results: list[ValidationResult] = field(default_factory=list)
    summary: ManifestSummary | None = None

    def add(self, level: Level, message: str, file: str | None = None, phase: str | None = None) -> None:
        """Add a validation result."""
        self.results.append(ValidationResult(level, message, file, phase))

    def passed(self, message: str, file: str | None = None, phase: str | None = None) -> None:
        """Add a passed check."""
        self.add("PASSED", message, file, phase)

    def info(self, message: str, file: str | None = None, phase: str | None = None) -> None:
        """Add an info message."""
        self.add("INFO", message, file, phase)

    def warning(self, message: str, file: str | None = None, phase: str | None = None) -> None:
        """Add a warning — always reported, never blocks validation (unless --strict)."""
        self.add("WARNING", message, file, phase)

    def major(self, message: str, file: str | None = None, phase: str | None = None) -> None:
        """Add a consistency error."""
        self.add("MAJOR", message, file, phase)

    def critical(self, message: str, file: str | None = None, phase: str | None = None) -> None:
        """Add a fatal error."""
        self.add("CRITICAL", message, file, phase)

    @property
    def has_critical(self) -> bool:
        """Check if any CRITICAL issues exist."""
        return any(r.level == "CRITICAL" for r in self.results)

    @property
    def error_count(self) -> int:
        """Number of consistency errors (fatal errors are not counted here)."""
        return sum(1 for r in self.results if r.level == "MAJOR")

    @property
    def warning_count(self) -> int:
        return sum(1 for r in self.results if r.level == "WARNING")

    @property
    def exit_code(self) -> int:
        """Get exit code: fatal or consistency errors fail, warnings never do."""
        if self.has_critical or self.error_count:
            return EXIT_FAILURE
        return EXIT_OK

    def exit_code_strict(self) -> int:
        """Get exit code for --strict mode (warnings also block)."""
        code = self.exit_code
        if code != EXIT_OK:
            return code
        if self.warning_count:
            return EXIT_FAILURE
        return EXIT_OK

    def count_by_level(self) -> dict[str, int]:
        """Get count of results by level."""
        counts: dict[str, int] = {"CRITICAL": 0, "MAJOR": 0, "WARNING": 0, "INFO": 0, "PASSED": 0}
        for r in self.results:
            counts[r.level] = counts.get(r.level, 0) + 1
        return counts

    def by_phase(self, phase: str) -> list[ValidationResult]:
        """Get results of one output section, in insertion order."""
        return [r for r in self.results if r.phase == phase]

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "exit_code": self.exit_code,
            "errors": self.error_count,
            "warnings": self.warning_count,
            "fatal": self.has_critical,
            "counts": self.count_by_level(),
            "summary": self.summary.to_dict() if self.summary else None,
            "results": [r.to_dict() for r in self.results],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert report to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


# =============================================================================
# Manifest Loading
# =============================================================================


def load_json_document(path: Path) -> Any:
    """Read and parse a JSON manifest.

    Raises:
        ManifestError: if the file is missing, not UTF-8, or not valid JSON
    """
    if not path.is_file():
        raise ManifestError(f"{path.name} not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise ManifestError(f"{path.name} is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON syntax in {path.name}: {e}") from e


def parse_agents_config(value: Any) -> AgentsConfig | None:
    """Decide the agents mode once from the JSON value type."""
    if isinstance(value, str):
        return DirectoryMode(value)
    if isinstance(value, list):
        return ArrayMode(tuple(value))
    return None


def parse_plugin_manifest(data: Any) -> PluginManifest:
    """Build a PluginManifest from parsed plugin.json data.

    Raises:
        ManifestError: if the document is not an object or skills is not a list
    """
    if not isinstance(data, dict):
        raise ManifestError(f"plugin.json must be a JSON object, got {type(data).__name__}")

    skills = data.get("skills", [])
    if skills is None:
        skills = []
    if not isinstance(skills, list):
        raise ManifestError(f"'skills' in plugin.json must be an array, got {type(skills).__name__}")

    version = data.get("version")
    name = data.get("name")
    return PluginManifest(
        skills=list(skills),
        agents=parse_agents_config(data.get("agents")),
        version=None if version is None else str(version),
        name=name if isinstance(name, str) else None,
        raw=data,
    )


def load_plugin_manifest(repo_root: Path) -> PluginManifest:
    """Load and parse <repo_root>/.claude-plugin/plugin.json."""
    return parse_plugin_manifest(load_json_document(repo_root / PLUGIN_DIR / PLUGIN_MANIFEST))


# =============================================================================
# Path Helpers
# =============================================================================


def strip_dot_slash(path: str) -> str:
    """Remove a single leading './' from a manifest path."""
    if path.startswith("./"):
        return path[2:]
    return path


def normalize_entry(path: str) -> str:
    """Canonical './'-prefixed form used when comparing manifest entries to disk."""
    cleaned = strip_dot_slash(path.replace("\\", "/")).rstrip("/")
    return f"./{cleaned}"


def repo_relative(entry: str) -> str:
    """Manifest path relative to the repo root; absolute entries stay under the root."""
    return strip_dot_slash(entry).lstrip("/")


def skill_marker_path(repo_root: Path, entry: str) -> Path:
    """Expected SKILL.md location for a skills entry."""
    return repo_root / repo_relative(entry) / SKILL_MARKER


def agent_file_path(repo_root: Path, entry: str) -> Path:
    """Expected file for an array-mode agents entry (entries carry no .md suffix)."""
    return repo_root / f"{repo_relative(entry)}{AGENT_SUFFIX}"


def list_agent_files(directory: Path) -> list[Path]:
    """*.md files directly inside an agents directory, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.glob(f"*{AGENT_SUFFIX}") if p.is_file())


def get_repo_root() -> Path:
    """Get the repository root directory.

    Returns:
        The parent of scripts/ when this module runs from a repository checkout
        (scripts/ next to .claude-plugin/), otherwise the current directory
        (e.g. when installed as a console script).
    """
    scripts_dir = Path(__file__).resolve().parent
    if scripts_dir.name == "scripts" and (scripts_dir.parent / PLUGIN_DIR).is_dir():
        return scripts_dir.parent
    return Path.cwd()


# =============================================================================
# Front Matter
# =============================================================================


def parse_frontmatter(content: str) -> dict[str, Any] | None:
    """Parse the YAML front matter block at the top of a markdown file.

    Returns:
        The front matter mapping, or None if there is no block, it is not
        closed, the YAML is invalid, or it is not a mapping
    """
    if not content.startswith("---"):
        return None

    parts = content.split("\n---", 1)
    if len(parts) < 2:
        return None

    try:
        frontmatter = yaml.safe_load(parts[0][3:])
    except yaml.YAMLError:
        return None
    if frontmatter is None:
        return {}
    if not isinstance(frontmatter, dict):
        return None
    return frontmatter


def extract_name(path: Path) -> str:
    """Best-effort display name for a skill or agent file.

    Prefers the `name` key of the YAML front matter; otherwise the first line
    starting with `name:` anywhere in the file. Returns "" if neither exists.
    """
    content = path.read_text(encoding="utf-8", errors="replace")

    frontmatter = parse_frontmatter(content)
    if frontmatter:
        name = frontmatter.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()

    for line in content.splitlines():
        if line.startswith("name:"):
            return line[len("name:") :].lstrip(" ").rstrip()
    return ""


# =============================================================================
# Color Formatting (for terminal output)
# =============================================================================

# ANSI color codes
COLORS = {
    "CRITICAL": "\033[0;31m",  # Red
    "MAJOR": "\033[0;31m",  # Red
    "WARNING": "\033[1;33m",  # Yellow
    "INFO": "\033[0;32m",  # Green
    "PASSED": "\033[0;32m",  # Green
    "RESET": "\033[0m",  # Reset
}

# Line prefixes printed before each message
LEVEL_PREFIXES = {
    "CRITICAL": "ERROR: ",
    "MAJOR": "ERROR: ",
    "WARNING": "WARNING: ",
    "INFO": "",
    "PASSED": "",
}


def colorize(text: str, level: str) -> str:
    """Apply color to text based on level."""
    color = COLORS.get(level, "")
    return f"{color}{text}{COLORS['RESET']}"


def format_result(result: ValidationResult) -> list[str]:
    """Format a single validation result as one or more colored lines."""
    lines = [colorize(f"{LEVEL_PREFIXES[result.level]}{result.message}", result.level)]
    if result.file and result.level in ("CRITICAL", "MAJOR"):
        lines.append(colorize(f"       Expected: {result.file}", result.level))
    return lines
