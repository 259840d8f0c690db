"""
ExamNotify - Real-time notification client for the exam-management backend.

This package keeps a single Socket.IO connection to the server, delivers
deduplicated notifications to subscribers, and wraps the notification REST
resource for listing and lifecycle changes.

Key modules:
- service: NotificationClient, the composed client
- config: Client configuration management
- api_client: HTTP client for the notification resource
- realtime: Socket.IO connection with reconnection bookkeeping
- token_store: Encrypted local storage for the bearer token
- main: Long-running listener process
"""

import os
import re
import subprocess
from importlib.metadata import PackageNotFoundError, version
from typing import Optional


def _run_git_command(args: list[str]) -> Optional[str]:
    """Run a Git command and return its output."""
    try:
        result = subprocess.run(
            ['git'] + args,
            capture_output=True,
            text=True,
            check=True,
            timeout=5
        )
        return result.stdout.strip()
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
        return None


def _get_version_from_git() -> Optional[str]:
    """
    Get version from Git tags.

    Version Format:
    - Tagged releases: "v1.2.3"
    - Development builds: "v1.2.3-dev.5+a1b2c3d"
    """
    describe = _run_git_command(['describe', '--tags', '--long', '--always'])

    if describe:
        # "v1.2.3-5-ga1b2c3d"
        match = re.match(r'^(.+?)-(\d+)-g([a-f0-9]+)$', describe)

        if match:
            tag, commits_since, commit_hash = match.groups()
            if int(commits_since) == 0:
                return tag
            return f"{tag}-dev.{commits_since}+{commit_hash}"

    return None


def _get_version() -> str:
    """
    Get version with priority: EXAMNOTIFY_VERSION env var > installed metadata > Git tags.
    """
    env_version = os.environ.get('EXAMNOTIFY_VERSION')
    if env_version:
        return env_version

    try:
        return version('examnotify-client')
    except PackageNotFoundError:
        pass

    git_version = _get_version_from_git()
    if git_version:
        return git_version

    return 'v0.0.0-dev+unknown'


__version__ = _get_version()
