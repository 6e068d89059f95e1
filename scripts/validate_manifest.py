#!/usr/bin/env python3
"""
Skill Marketplace Manifest Validator

Checks that .claude-plugin/plugin.json is consistent with the skill and agent
files that actually exist in the repository:

1. marketplace.json and plugin.json must be valid JSON (fatal otherwise)
2. Every declared skill must have <path>/SKILL.md
3. Every declared agent must exist (array mode: <path>.md; directory mode:
   the directory itself)
4. Every SKILL.md under skills/ should be declared (warning otherwise)
5. Every agents/*.md should be declared (array mode only; directory mode
   registers everything in the directory implicitly)

Usage:
    uv run python scripts/validate_manifest.py
    uv run python scripts/validate_manifest.py /path/to/repo
    uv run python scripts/validate_manifest.py --json
    uv run python scripts/validate_manifest.py --strict

Exit codes:
    0 - No errors (warnings are informational)
    1 - Invalid JSON in a manifest, or declared skills/agents missing on disk
        (with --strict, warnings also exit 1)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from manifest_validation_common import (
    AGENTS_ROOT,
    MARKETPLACE_MANIFEST,
    PLUGIN_DIR,
    PLUGIN_MANIFEST,
    SKILL_MARKER,
    SKILLS_ROOT,
    ArrayMode,
    DirectoryMode,
    ManifestError,
    ManifestSummary,
    PluginManifest,
    ValidationReport,
    agent_file_path,
    colorize,
    extract_name,
    format_result,
    get_repo_root,
    list_agent_files,
    load_json_document,
    normalize_entry,
    parse_plugin_manifest,
    repo_relative,
    skill_marker_path,
)

# Output sections, in print order, with their headings
PHASE_JSON = "json-syntax"
PHASE_SKILLS = "skills"
PHASE_AGENTS = "agents"
PHASE_UNREGISTERED_SKILLS = "unregistered-skills"
PHASE_UNREGISTERED_AGENTS = "unregistered-agents"

PHASE_HEADINGS: dict[str, str | None] = {
    PHASE_JSON: None,
    PHASE_SKILLS: "Checking skills...",
    PHASE_AGENTS: "Checking agents...",
    PHASE_UNREGISTERED_SKILLS: "Checking for unregistered skills...",
    PHASE_UNREGISTERED_AGENTS: "Checking for unregistered agents...",
}


def check_json_syntax(repo_root: Path, report: ValidationReport) -> PluginManifest | None:
    """Validate both manifests parse. Returns the plugin manifest, or None on a fatal error."""
    plugin_dir = repo_root / PLUGIN_DIR

    try:
        load_json_document(plugin_dir / MARKETPLACE_MANIFEST)
    except ManifestError as e:
        report.critical(str(e), phase=PHASE_JSON)
        return None
    report.passed(f"{MARKETPLACE_MANIFEST} syntax: OK", phase=PHASE_JSON)

    try:
        manifest = parse_plugin_manifest(load_json_document(plugin_dir / PLUGIN_MANIFEST))
    except ManifestError as e:
        report.critical(str(e), phase=PHASE_JSON)
        return None
    report.passed(f"{PLUGIN_MANIFEST} syntax: OK", phase=PHASE_JSON)
    return manifest


def check_skills(repo_root: Path, manifest: PluginManifest, report: ValidationReport) -> None:
    """Every declared skill directory must contain SKILL.md."""
    for source in manifest.skills:
        if not isinstance(source, str):
            report.major(f"Invalid skill entry: {source!r}", phase=PHASE_SKILLS)
            continue

        marker = skill_marker_path(repo_root, source)
        if not marker.is_file():
            report.major(f"Missing {SKILL_MARKER} for: {source}", str(marker), phase=PHASE_SKILLS)
            continue

        report.passed(f"OK: {extract_name(marker)} ({source})", str(marker), phase=PHASE_SKILLS)


def check_agents(repo_root: Path, manifest: PluginManifest, report: ValidationReport) -> None:
    """Declared agents must exist: the directory (directory mode) or each file (array mode)."""
    agents = manifest.agents

    if isinstance(agents, DirectoryMode):
        agents_dir = repo_root / repo_relative(agents.path)
        if not agents_dir.is_dir():
            report.major(f"Missing agents directory: {agents_dir}", phase=PHASE_AGENTS)
            return
        for agent_file in list_agent_files(agents_dir):
            report.passed(f"OK: {extract_name(agent_file)}", str(agent_file), phase=PHASE_AGENTS)

    elif isinstance(agents, ArrayMode):
        for source in agents.paths:
            if not isinstance(source, str):
                report.major(f"Invalid agent entry: {source!r}", phase=PHASE_AGENTS)
                continue
            agent_file = agent_file_path(repo_root, source)
            if not agent_file.is_file():
                report.major(f"Missing agent file: {source}", str(agent_file), phase=PHASE_AGENTS)
                continue
            report.passed(f"OK: {extract_name(agent_file)}", str(agent_file), phase=PHASE_AGENTS)


def check_unregistered_skills(repo_root: Path, manifest: PluginManifest, report: ValidationReport) -> None:
    """Warn about SKILL.md files under skills/ that plugin.json does not list."""
    skills_dir = repo_root / SKILLS_ROOT
    if not skills_dir.is_dir():
        return

    declared = {normalize_entry(s) for s in manifest.skills if isinstance(s, str)}
    for marker in sorted(skills_dir.rglob(SKILL_MARKER)):
        if not marker.is_file():
            continue
        source = f"./{marker.parent.relative_to(repo_root).as_posix()}"
        if source not in declared:
            report.warning(f"Skill not in {PLUGIN_MANIFEST}: {source}", str(marker), phase=PHASE_UNREGISTERED_SKILLS)


def check_unregistered_agents(repo_root: Path, manifest: PluginManifest, report: ValidationReport) -> None:
    """Warn about agents/*.md files plugin.json does not list (array mode only)."""
    agents = manifest.agents

    if isinstance(agents, DirectoryMode):
        report.info(
            f"Using directory mode: all agents in {agents.path} are included",
            phase=PHASE_UNREGISTERED_AGENTS,
        )
        return

    if not isinstance(agents, ArrayMode):
        return

    declared = {normalize_entry(a) for a in agents.paths if isinstance(a, str)}
    for agent_file in list_agent_files(repo_root / AGENTS_ROOT):
        if f"./{AGENTS_ROOT}/{agent_file.stem}" not in declared:
            report.warning(
                f"Agent file not in {PLUGIN_MANIFEST}: {agent_file.stem}",
                str(agent_file),
                phase=PHASE_UNREGISTERED_AGENTS,
            )


def build_summary(repo_root: Path, manifest: PluginManifest) -> ManifestSummary:
    """Count registered skills and agents."""
    agents = manifest.agents
    if isinstance(agents, DirectoryMode):
        agents_count = len(list_agent_files(repo_root / repo_relative(agents.path)))
        agents_directory: str | None = agents.path
    elif isinstance(agents, ArrayMode):
        agents_count = len(agents.paths)
        agents_directory = None
    else:
        agents_count = 0
        agents_directory = None

    return ManifestSummary(
        skills_registered=len(manifest.skills),
        agents_registered=agents_count,
        agents_directory=agents_directory,
        version=manifest.version,
    )


def validate(repo_root: Path) -> ValidationReport:
    """Run the full consistency sweep over a repository.

    Args:
        repo_root: Repository root containing .claude-plugin/

    Returns:
        The report; report.summary is None when a manifest failed to parse
    """
    report = ValidationReport()

    manifest = check_json_syntax(repo_root, report)
    if manifest is None:
        return report

    check_skills(repo_root, manifest, report)
    check_agents(repo_root, manifest, report)
    check_unregistered_skills(repo_root, manifest, report)
    check_unregistered_agents(repo_root, manifest, report)
    report.summary = build_summary(repo_root, manifest)
    return report


def print_results(report: ValidationReport, strict: bool = False) -> None:
    """Print validation results section by section, then the summary.

    In strict mode warnings fail the run, so they are reported as a failure.
    """
    print("Validating marketplace structure...")
    print()

    for phase, heading in PHASE_HEADINGS.items():
        # A fatal JSON error stops the sweep before any other section ran
        if report.has_critical and phase != PHASE_JSON:
            break
        if heading is not None:
            print()
            print(heading)
        for result in report.by_phase(phase):
            for line in format_result(result):
                print(line)

    summary = report.summary
    if summary is None:
        return

    print()
    print("=== Summary ===")
    print(f"Skills registered: {summary.skills_registered}")
    if summary.agents_directory is not None:
        print(f"Agents registered: {summary.agents_registered} (directory mode: {summary.agents_directory})")
    else:
        print(f"Agents registered: {summary.agents_registered}")
    print(f"Plugin version: {summary.version if summary.version is not None else '(none)'}")

    if report.error_count:
        print(colorize(f"Errors: {report.error_count}", "MAJOR"))
        return

    if report.warning_count:
        if strict:
            print(colorize(f"Warnings: {report.warning_count} (strict mode)", "MAJOR"))
            return
        print(colorize(f"Warnings: {report.warning_count}", "WARNING"))

    print(colorize("Validation passed!", "PASSED"))


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate plugin.json against the skill and agent files on disk")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode — unregistered files also fail validation")
    parser.add_argument("path", nargs="?", help="Repository root (default: detected checkout or current directory)")
    args = parser.parse_args()

    repo_root = Path(args.path) if args.path else get_repo_root()
    if not repo_root.is_dir():
        print(f"Error: {repo_root} is not a directory", file=sys.stderr)
        return 1

    report = validate(repo_root.resolve())

    if args.json:
        print(report.to_json())
    else:
        print_results(report, strict=args.strict)

    if args.strict:
        return report.exit_code_strict()
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
