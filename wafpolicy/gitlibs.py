"""Git source retrieval for policy configuration.

Policy configuration can live in a git repository instead of a local folder.
This module parses git source URLs (git:: prefixed SSH/HTTPS URLs and plain
domain URLs, with optional //subfolder and ?ref=tag) and clones them into a
working directory, showing clone progress with tqdm.
"""

import logging
import os
import shutil
import stat
from typing import List, Optional, Tuple

import click
import git
from git import RemoteProgress
from tqdm import tqdm

from wafpolicy.exceptions import SourceParsingError

logger = logging.getLogger(__name__)

DOMAIN_EXTENSIONS = [".com", ".net", ".org", ".io", ".biz"]


class CloneProgress(RemoteProgress):
    """Progress bar for git clone operations."""

    def __init__(self) -> None:
        super().__init__()
        self.pbar = tqdm(leave=False)

    def update(
        self,
        op_code: int,
        cur_count: int,
        max_count: Optional[int] = None,
        message: str = "",
    ) -> None:
        self.pbar.total = max_count
        self.pbar.n = cur_count
        self.pbar.refresh()


def is_git_source(source: str) -> bool:
    """Return True if a source string points at a git repository."""
    if source.startswith("git::") or source.startswith("git@"):
        return True
    if source.startswith("."):
        return False
    return any(ext in source for ext in DOMAIN_EXTENSIONS)


def _split_ref(url: str) -> Tuple[str, str]:
    if "?ref=" in url:
        url, tag = url.split("?ref=", 1)
        return url, tag
    return url, ""


def _handle_git_prefix_url(source: str) -> Tuple[str, str, str]:
    """Handle URLs with a git:: prefix.

    Returns:
        Tuple of (git_address, subfolder, git_tag)
    """
    gitaddress = source.split("git::", 1)[-1]
    gitaddress, git_tag = _split_ref(gitaddress)

    # Normalize GitHub and GitLab SSH URLs
    gitaddress = gitaddress.replace("git@github.com/", "git@github.com:")
    gitaddress = gitaddress.replace("git@gitlab.com/", "git@gitlab.com:")

    subfolder = ""
    scheme_end = gitaddress.find("://")
    body_start = scheme_end + 3 if scheme_end >= 0 else 0
    if "//" in gitaddress[body_start:]:
        repo_part, subfolder = gitaddress[body_start:].split("//", 1)
        gitaddress = gitaddress[:body_start] + repo_part

    return gitaddress, subfolder, git_tag


def _handle_domain_url(source: str) -> Tuple[str, str, str]:
    """Handle direct domain URLs such as github.com/owner/repo//policies.

    Returns:
        Tuple of (git_url, subfolder, git_tag)
    """
    source, git_tag = _split_ref(source)
    subfolder = ""

    if source.startswith(("http://", "https://")):
        protocol_end = source.find("//") + 2
        remaining = source[protocol_end:]
        prefix = source[:protocol_end]
    else:
        remaining = source
        prefix = "https://"

    if "//" in remaining:
        remaining, subfolder = remaining.split("//", 1)
    else:
        parts = remaining.rstrip("/").split("/")
        # domain/owner/repo[/subfolder...]
        if len(parts) > 3:
            remaining = "/".join(parts[:3])
            subfolder = "/".join(parts[3:])

    return prefix + remaining, subfolder, git_tag


def get_clone_url(source: str) -> Tuple[str, str, str]:
    """Parse a source URL into (clone_url, subfolder, git_tag)."""
    if source.startswith("git::") or source.startswith("git@"):
        return _handle_git_prefix_url(source)
    return _handle_domain_url(source)


def clone_files(source: str, tempdir: str) -> str:
    """Clone a git source into ``tempdir`` and return the folder to read.

    Args:
        source: Git source URL
        tempdir: Working directory for the clone

    Returns:
        Path of the (sub)folder containing the policy configuration

    Raises:
        SourceParsingError: If the clone fails or the subfolder is missing
    """
    click.echo(click.style("\nLoading Sources..", fg="white", bold=True))
    clone_url, subfolder, git_tag = get_clone_url(source)
    reponame = (
        source.replace("/", "_").replace("?", "_").replace(":", "_").replace("=", "_")
    )
    codepath = os.path.join(tempdir, reponame)

    def remove_readonly(func, path, exc_info):
        os.chmod(path, stat.S_IWRITE)
        func(path)

    if os.path.exists(codepath):
        shutil.rmtree(codepath, onerror=remove_readonly)
    os.makedirs(codepath, exist_ok=True)

    options: List[str] = []
    if git_tag:
        options.append("--branch " + git_tag)

    logger.info(f"Cloning {clone_url} into {codepath}")
    try:
        git.Repo.clone_from(
            clone_url, codepath, multi_options=options, progress=CloneProgress()
        )
    except git.GitCommandError as e:
        raise SourceParsingError(
            f"Unable to clone repository {clone_url}. Check the URL, credentials "
            f"and that git can reach it",
            context={"source": source, "error": type(e).__name__},
        ) from e

    target = os.path.join(codepath, subfolder) if subfolder else codepath
    if not os.path.isdir(target):
        raise SourceParsingError(
            f"Subfolder '{subfolder}' not found in {clone_url}",
            context={"source": source},
        )
    click.echo(click.style(f"  Retrieved code from {clone_url}", fg="green"))
    return target
