"""
Git command runner with dubious ownership handling.

Repositories served by a code search host are frequently owned by a
different user than the indexing process, which makes git refuse to operate
("dubious ownership"). Commands run through this module mark the repository
as a safe directory for the duration of the call.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


def get_git_environment(repo_path: Path) -> Dict[str, str]:
    """
    Get environment variables for git commands to handle dubious ownership.

    Args:
        repo_path: Path to the repository

    Returns:
        Dictionary of environment variables for git commands
    """
    env = os.environ.copy()

    # Existing GIT_CONFIG_* entries are kept; safe.directory is appended.
    try:
        count = int(os.environ.get("GIT_CONFIG_COUNT", "0"))
    except ValueError:
        count = 0

    env[f"GIT_CONFIG_KEY_{count}"] = "safe.directory"
    env[f"GIT_CONFIG_VALUE_{count}"] = str(Path(repo_path).resolve())
    env["GIT_CONFIG_COUNT"] = str(count + 1)

    return env


def run_git_command(
    cmd: List[str],
    cwd: Path,
    check: bool = True,
    text: bool = True,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Run a git command with proper environment handling for dubious ownership.

    Args:
        cmd: Git command as a list (e.g., ["git", "cat-file", "-s", sha])
        cwd: Repository directory
        check: Whether to raise CalledProcessError on non-zero exit
        text: Whether to decode output as text
        timeout: Optional timeout in seconds

    Returns:
        CompletedProcess instance with the command result

    Raises:
        ValueError: If the command is not a git command
        subprocess.CalledProcessError: If check=True and command fails
        subprocess.TimeoutExpired: If timeout is exceeded
    """
    if not cmd or cmd[0] != "git":
        raise ValueError("Command must start with 'git'")

    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            check=check,
            capture_output=True,
            text=text,
            timeout=timeout,
            env=get_git_environment(cwd),
        )
    except subprocess.CalledProcessError as e:
        stderr = e.stderr if isinstance(e.stderr, str) else (e.stderr or b"").decode(
            "utf-8", errors="replace"
        )
        logger.error(
            f"Git command failed (exit {e.returncode}) in {cwd}: "
            f"{' '.join(cmd)}: {stderr.strip()}"
        )
        raise
