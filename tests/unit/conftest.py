"""Shared fixtures: build synthetic plugin repositories under tmp_path."""

from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SCRIPTS_DIR = PROJECT_ROOT / "scripts"


def write_skill(repo: Path, rel_dir: str, name: str | None = None) -> Path:
    """Create <repo>/<rel_dir>/SKILL.md with optional front matter name."""
    skill_dir = repo / rel_dir
    skill_dir.mkdir(parents=True, exist_ok=True)
    marker = skill_dir / "SKILL.md"
    if name is None:
        marker.write_text("# Untitled skill\n")
    else:
        marker.write_text(f"---\nname: {name}\ndescription: test skill\n---\n\n# {name}\n")
    return marker


def write_agent(repo: Path, rel_path: str, name: str | None = None) -> Path:
    """Create an agent markdown file at <repo>/<rel_path>."""
    agent = repo / rel_path
    agent.parent.mkdir(parents=True, exist_ok=True)
    if name is None:
        agent.write_text("# Agent\n")
    else:
        agent.write_text(f"---\nname: {name}\n---\n\nYou are {name}.\n")
    return agent


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing .claude-plugin/plugin.json and marketplace.json."""

    def _make(plugin: Any, marketplace: Any = None, raw_plugin: str | None = None) -> Path:
        repo = tmp_path / "repo"
        plugin_dir = repo / ".claude-plugin"
        plugin_dir.mkdir(parents=True, exist_ok=True)
        if marketplace is None:
            marketplace = {"name": "test-marketplace", "plugins": [{"name": "dotnet-skills", "source": "./"}]}
        if isinstance(marketplace, str):
            (plugin_dir / "marketplace.json").write_text(marketplace)
        else:
            (plugin_dir / "marketplace.json").write_text(json.dumps(marketplace, indent=2))
        if raw_plugin is not None:
            (plugin_dir / "plugin.json").write_text(raw_plugin)
        else:
            (plugin_dir / "plugin.json").write_text(json.dumps(plugin, indent=2))
        return repo

    return _make


def run_script(script: str, *args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    """Run a script from scripts/ with given args and return result."""
    cmd = [sys.executable, str(SCRIPTS_DIR / script)] + list(args)
    return subprocess.run(cmd, capture_output=True, text=True, timeout=30, cwd=cwd)
