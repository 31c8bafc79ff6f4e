# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Ambient identity resolution - project name and environment id.

Used when --project / --id are not given on the command line:
- Project name: the compose file's top-level `name`, else the project
  directory name (sanitized like docker compose does)
- Environment id: `<project>-<current git branch>`, normalized
"""

import os
import re
import subprocess
from pathlib import Path
from typing import Optional, Sequence

import yaml

from prevctl.errors import AmbientIdentityError
from prevctl.paths import ProjectPaths
from prevctl.utils.logging import get_logger

logger = get_logger(__name__)

MAX_ENV_ID_LENGTH = 53


def resolve_project_dir(project_dir: Optional[Path] = None) -> Path:
    """Resolve the project directory.

    Resolution order:
    1. Explicit project_dir argument (if provided)
    2. PREVCTL_PROJECT_DIR environment variable
    3. Current working directory
    """
    if project_dir is not None:
        return project_dir.resolve()

    env_project_dir = os.getenv("PREVCTL_PROJECT_DIR")
    if env_project_dir:
        return Path(env_project_dir).resolve()

    return Path.cwd().resolve()


def sanitize_project_name(name: str) -> str:
    """Lowercase, keep [a-z0-9_-], strip leading separators."""
    sanitized = re.sub(r"[^a-z0-9_-]", "", name.lower())
    return sanitized.lstrip("-_")


def normalize_env_id(value: str) -> str:
    """Normalize a string into a valid environment id.

    Lowercase, anything outside [a-z0-9] becomes '-', runs of '-' collapse,
    leading/trailing '-' are dropped and the result is capped in length.
    """
    normalized = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return normalized[:MAX_ENV_ID_LENGTH].rstrip("-")


def _read_compose_name(compose_file: Path) -> Optional[str]:
    try:
        with open(compose_file) as f:
            model = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise AmbientIdentityError(f"Compose file not found: {compose_file}") from e
    except (OSError, yaml.YAMLError) as e:
        raise AmbientIdentityError(f"Cannot read compose file {compose_file}: {e}") from e

    if isinstance(model, dict) and model.get("name"):
        return str(model["name"])
    return None


def find_ambient_project_name(
    compose_files: Sequence[Path] = (),
    project_dir: Optional[Path] = None,
) -> str:
    """Find the compose project name for the current context.

    Args:
        compose_files: Explicit compose files (-f). When empty, the default
            compose file in the project directory is used, if any.
        project_dir: Project directory (resolved via resolve_project_dir if None)

    Raises:
        AmbientIdentityError: A compose file cannot be read or no usable name remains
    """
    resolved_dir = resolve_project_dir(project_dir)

    files = list(compose_files)
    if not files:
        default_file = ProjectPaths.default_compose_file(resolved_dir)
        if default_file:
            files = [default_file]

    if files:
        name = _read_compose_name(Path(files[0]))
        if name:
            return name
        # Compose uses the first file's directory, not the cwd
        resolved_dir = Path(files[0]).resolve().parent

    name = sanitize_project_name(resolved_dir.name)
    if not name:
        raise AmbientIdentityError(
            f"Cannot derive a project name from {resolved_dir}",
            hint="Pass --project explicitly",
        )
    return name


def get_current_branch(project_dir: Optional[Path] = None) -> Optional[str]:
    """Current git branch name, None when detached or not a git repo."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=resolve_project_dir(project_dir),
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"git not available: {e}")
        return None

    branch = result.stdout.strip()
    if result.returncode != 0 or not branch or branch == "HEAD":
        return None
    return branch


def find_ambient_env_id(project_name: str, project_dir: Optional[Path] = None) -> str:
    """Derive the environment id from the project name and the git branch.

    Raises:
        AmbientIdentityError: Not on a git branch
    """
    branch = get_current_branch(project_dir)
    if not branch:
        raise AmbientIdentityError(
            "Cannot determine the environment id: not on a git branch",
            hint="Pass --id explicitly",
        )
    return normalize_env_id(f"{project_name}-{branch}")
