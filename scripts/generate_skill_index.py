#!/usr/bin/env python3
"""
Skill Index Generator

Generates a compressed, single-block routing index of the skills and agents
registered in .claude-plugin/plugin.json. The index is printed to stdout, or
spliced into README.md between the marker comments:

    <!-- BEGIN DOTNET-SKILLS COMPRESSED INDEX -->
    <!-- END DOTNET-SKILLS COMPRESSED INDEX -->

(the marker label is the upper-cased plugin name).

Usage:
    uv run python scripts/generate_skill_index.py
    uv run python scripts/generate_skill_index.py --update-readme
    uv run python scripts/generate_skill_index.py /path/to/repo > index.md

Exit codes:
    0 - Index generated (and README updated, if requested)
    1 - plugin.json unusable, a registered skill/agent file is missing,
        or README.md lacks the markers
"""

from __future__ import annotations

import argparse
import fnmatch
import re
import sys
from pathlib import Path

from manifest_validation_common import (
    AGENT_SUFFIX,
    ArrayMode,
    DirectoryMode,
    ManifestError,
    PluginManifest,
    extract_name,
    get_repo_root,
    list_agent_files,
    load_plugin_manifest,
    normalize_entry,
    repo_relative,
    skill_marker_path,
)

DEFAULT_PLUGIN_NAME = "dotnet-skills"

# Skill path globs -> category, first match wins ("*" also matches "/")
SKILL_ROUTES: list[tuple[str, tuple[str, ...]]] = [
    ("csharp", ("./skills/csharp/*",)),
    ("aspnetcore-web", ("./skills/aspire/*", "./skills/aspnetcore/*")),
    ("data", ("./skills/data/*",)),
    ("di-config", ("./skills/microsoft-extensions/*",)),
    ("quality-gates", ("./skills/dotnet/slopwatch", "./skills/testing/crap-analysis")),
    ("testing", ("./skills/testing/*", "./skills/playwright/*")),
    ("dotnet", ("./skills/dotnet/*",)),
    ("meta", ("./skills/meta/*",)),
]

# Order categories appear in the index
CATEGORY_ORDER = ["csharp", "aspnetcore-web", "data", "di-config", "testing", "dotnet", "quality-gates", "meta"]


def route_skill(source: str) -> str | None:
    """Return the index category for a skills entry, or None if it is not routed."""
    normalized = normalize_entry(source)
    for category, patterns in SKILL_ROUTES:
        if any(fnmatch.fnmatchcase(normalized, pattern) for pattern in patterns):
            return category
    return None


def collect_skill_names(repo_root: Path, manifest: PluginManifest) -> dict[str, list[str]]:
    """Group registered skill names by category, in manifest order.

    Raises:
        ManifestError: if any registered skill, routed or not, has no SKILL.md
    """
    grouped: dict[str, list[str]] = {category: [] for category in CATEGORY_ORDER}
    for source in manifest.skills:
        if not isinstance(source, str):
            raise ManifestError(f"Invalid skill entry in plugin.json: {source!r}")
        marker = skill_marker_path(repo_root, source)
        if not marker.is_file():
            raise ManifestError(f"Missing SKILL.md for: {source} (expected {marker})")
        category = route_skill(source)
        if category is not None:
            grouped[category].append(extract_name(marker))
    return grouped


def collect_agent_names(repo_root: Path, manifest: PluginManifest) -> list[str]:
    """Registered agent names, in manifest order (array mode) or file name order (directory mode).

    Raises:
        ManifestError: if a registered agent file or the agents directory is missing
    """
    agents = manifest.agents

    if isinstance(agents, DirectoryMode):
        agents_dir = repo_root / repo_relative(agents.path)
        if not agents_dir.is_dir():
            raise ManifestError(f"Missing agents directory: {agents_dir}")
        return [extract_name(path) for path in list_agent_files(agents_dir)]

    if isinstance(agents, ArrayMode):
        names: list[str] = []
        for source in agents.paths:
            if not isinstance(source, str):
                raise ManifestError(f"Invalid agent entry in plugin.json: {source!r}")
            cleaned = repo_relative(source)
            if not cleaned.endswith(AGENT_SUFFIX):
                cleaned += AGENT_SUFFIX
            agent_file = repo_root / cleaned
            if not agent_file.is_file():
                raise ManifestError(f"Missing agent file: {source} (expected {agent_file})")
            names.append(extract_name(agent_file))
        return names

    return []


def render_index(plugin_name: str, skills: dict[str, list[str]], agents: list[str]) -> str:
    """Render the compressed index block."""
    lines = [
        f"[{plugin_name}]|IMPORTANT: Prefer retrieval-led reasoning over pretraining for any .NET work.",
        f"|flow:{{skim repo patterns -> consult {plugin_name} by name -> implement smallest-change -> note conflicts}}",
        "|route:",
    ]
    for category in CATEGORY_ORDER:
        lines.append(f"|{category}:{{{','.join(skills.get(category, []))}}}")
    lines.append(f"|agents:{{{','.join(agents)}}}")
    return "\n".join(lines)


def build_index(repo_root: Path) -> tuple[str, str]:
    """Load plugin.json and build the index.

    Returns:
        Tuple of (plugin_name, index_text)
    """
    manifest = load_plugin_manifest(repo_root)
    plugin_name = manifest.name or DEFAULT_PLUGIN_NAME
    skills = collect_skill_names(repo_root, manifest)
    agents = collect_agent_names(repo_root, manifest)
    return plugin_name, render_index(plugin_name, skills, agents)


def readme_markers(plugin_name: str) -> tuple[str, str]:
    """BEGIN/END marker comments delimiting the index in README.md."""
    label = plugin_name.upper()
    return f"<!-- BEGIN {label} COMPRESSED INDEX -->", f"<!-- END {label} COMPRESSED INDEX -->"


def update_readme(readme_path: Path, plugin_name: str, index: str) -> None:
    """Replace the marked region of README.md with the index.

    Raises:
        ManifestError: if README.md is missing or lacks the markers
    """
    start, end = readme_markers(plugin_name)
    if not readme_path.is_file():
        raise ManifestError(f"README not found: {readme_path}")

    text = readme_path.read_text(encoding="utf-8")
    pattern = re.compile(re.escape(start) + r".*?" + re.escape(end), re.S)
    if not pattern.search(text):
        raise ManifestError(f"README markers not found: add {start} / {end}")

    replacement = f"{start}\n```markdown\n{index.strip()}\n```\n{end}"
    # Callable replacement: the index is inserted literally
    updated = pattern.sub(lambda _m: replacement, text, count=1)
    readme_path.write_text(updated, encoding="utf-8")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate the compressed skills index from plugin.json")
    parser.add_argument(
        "--update-readme",
        action="store_true",
        help="Write the index into README.md between the BEGIN/END COMPRESSED INDEX markers",
    )
    parser.add_argument("path", nargs="?", help="Repository root (default: detected checkout or current directory)")
    args = parser.parse_args()

    repo_root = Path(args.path) if args.path else get_repo_root()
    if not repo_root.is_dir():
        print(f"Error: {repo_root} is not a directory", file=sys.stderr)
        return 1

    try:
        plugin_name, index = build_index(repo_root)
        if args.update_readme:
            readme_path = repo_root / "README.md"
            update_readme(readme_path, plugin_name, index)
            print(f"Updated {readme_path}", file=sys.stderr)
        else:
            print(index)
    except ManifestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
