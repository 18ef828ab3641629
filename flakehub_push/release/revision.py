"""Release revision lookup from a local git checkout."""

from __future__ import annotations

import asyncio
import dataclasses
import shutil
import subprocess
import typing as typ

from flakehub_push.errors import RevisionError
from flakehub_push.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from pathlib import Path

_GIT_TIMEOUT_SECONDS = 30.0

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class RevisionInfo:
    """Commit a release is built from.

    Attributes
    ----------
    revision
        Full hexadecimal commit id.
    commit_count
        Number of commits reachable from ``revision``; ``None`` when the
        local history is shallow or could not be walked.

    """

    revision: str
    commit_count: int | None


class _Git:
    """Thin runner for ``git`` commands against one work tree."""

    def __init__(self, root: Path) -> None:
        git_executable = shutil.which("git")
        if git_executable is None:
            raise RevisionError.git_unavailable()
        self._argv = [git_executable, "-C", str(root)]

    def run(self, *args: str) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(  # noqa: S603  # fixed argv to local git repo only
                [*self._argv, *args],
                check=False,
                capture_output=True,
                text=True,
                timeout=_GIT_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise RevisionError.git_failed(" ".join(["git", *args]), exc) from exc

    def output(self, *args: str) -> str | None:
        """Return stripped stdout, or ``None`` when the command fails."""
        result = self.run(*args)
        if result.returncode != 0:
            return None
        return result.stdout.strip()


def _head_revision(git: _Git) -> str:
    head_ref = git.output("symbolic-ref", "-q", "--no-recurse", "HEAD")
    if head_ref is None:
        detached = git.output("rev-parse", "--verify", "HEAD^{commit}")
        if detached is None:
            raise RevisionError.unborn()
        return detached

    if git.output("symbolic-ref", "-q", "--no-recurse", head_ref) is not None:
        raise RevisionError.symbolic_to_symbolic()

    revision = git.output("rev-parse", "-q", "--verify", f"{head_ref}^{{commit}}")
    if revision is None:
        raise RevisionError.unborn()
    return revision


def _commit_count(git: _Git, revision: str) -> int | None:
    if git.output("rev-parse", "--is-shallow-repository") == "true":
        log_debug(logger, "Repository is shallow; local commit count unavailable")
        return None
    count = git.output("rev-list", "--count", revision)
    if count is None or not count.isdigit():
        return None
    return int(count)


def resolve_revision(git_root: Path) -> RevisionInfo:
    """Read the HEAD commit and its local commit count.

    Parameters
    ----------
    git_root
        Any directory inside the work tree.

    Returns
    -------
    RevisionInfo
        The HEAD commit id and, unless the history is shallow, the number of
        commits reachable from it.

    Raises
    ------
    RevisionError
        If ``git_root`` is not a repository, HEAD is unborn, or HEAD is a
        symbolic ref to another symbolic ref.

    """
    git = _Git(git_root)
    if git.output("rev-parse", "--git-dir") is None:
        raise RevisionError.not_a_repository(str(git_root))

    revision = _head_revision(git)
    commit_count = _commit_count(git, revision)
    log_debug(logger, "Resolved revision %s (commit count %s)", revision, commit_count)
    return RevisionInfo(revision=revision, commit_count=commit_count)


async def resolve_revision_async(git_root: Path) -> RevisionInfo:
    """Resolve the revision without blocking the event loop."""
    return await asyncio.to_thread(resolve_revision, git_root)


__all__ = ["RevisionInfo", "resolve_revision", "resolve_revision_async"]
