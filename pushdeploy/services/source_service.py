"""
Source Synchronization Service

Hard-resets the remote working tree to a commit, branch or tag.
"""

import re
import shlex
from dataclasses import dataclass
from typing import Optional, Tuple

from pushdeploy.constants import DEFAULT_GIT_REMOTE
from pushdeploy.exceptions import (
    ConfigurationError,
    ReferenceNotFoundError,
    RepositoryStateError,
)
from pushdeploy.models.deployment import WorkingTree

TAG_NAMESPACE = "tag"
COMMIT_NAMESPACE = "commit"

COMMIT_ID = re.compile(r"^[0-9a-fA-F]{4,64}$")


@dataclass(frozen=True)
class ReferenceSpec:
    """Where a deployment reference is looked up and how it is fetched."""

    reference: str
    namespace: str
    candidates: Tuple[str, ...]
    fetch_args: Tuple[str, ...]

    @staticmethod
    def is_mutable(candidate: str) -> bool:
        """Remote-tracking branches move; tags and commit ids do not."""
        return candidate.startswith("refs/remotes/")


def qualify_reference(
    reference: str, use_tag_namespace: bool, remote: str = DEFAULT_GIT_REMOTE
) -> ReferenceSpec:
    """
    Pick the namespace a deployment reference resolves in.

    Tag mode only ever looks at refs/tags/<ref>. Commit mode looks at the
    remote-tracking branch, then the local branch, then at <ref> as a commit
    id; tags are never consulted.

    Raises:
        ConfigurationError: If the reference is empty or looks like an option
    """
    reference = (reference or "").strip()
    if not reference or reference.startswith("-"):
        raise ConfigurationError(f"Invalid git reference '{reference}'")

    if use_tag_namespace:
        return ReferenceSpec(
            reference=reference,
            namespace=TAG_NAMESPACE,
            candidates=(f"refs/tags/{reference}",),
            fetch_args=(remote, "--tags", "--force", "--prune"),
        )

    candidates = (f"refs/remotes/{remote}/{reference}", f"refs/heads/{reference}")
    if COMMIT_ID.match(reference):
        candidates += (reference,)

    return ReferenceSpec(
        reference=reference,
        namespace=COMMIT_NAMESPACE,
        candidates=candidates,
        fetch_args=(remote, "--prune"),
    )


class SourceSyncService:
    """Service that makes the remote working tree match one reference exactly."""

    def __init__(
        self,
        executor,
        host: str,
        remote: str = DEFAULT_GIT_REMOTE,
        timeout: Optional[int] = None,
    ):
        """
        Initialize source sync service.

        Args:
            executor: SSHService (or LocalExecutor) running git
            host: Target host
            remote: Git remote to fetch from
            timeout: Per-command timeout in seconds
        """
        self.executor = executor
        self.host = host
        self.remote = remote
        self.timeout = timeout

    def sync_tree(self, path: str, reference: str, use_tag_namespace: bool = False) -> WorkingTree:
        """
        Reset the tree at path to reference, discarding local edits.

        Untracked files are left alone.

        Args:
            path: Working tree root on the host
            reference: Commit id, branch or tag name
            use_tag_namespace: Resolve reference as a tag

        Returns:
            WorkingTree pinned to the resolved commit id

        Raises:
            RepositoryStateError: If path is not a git work tree or git fails
            ReferenceNotFoundError: If the reference does not resolve after fetching
        """
        spec = qualify_reference(reference, use_tag_namespace, self.remote)

        self._require_repository(path)

        resolved = self._resolve(path, spec)
        if resolved is None or spec.is_mutable(resolved[0]):
            self._fetch(path, spec)
            resolved = self._resolve(path, spec)

        if resolved is None:
            raise ReferenceNotFoundError(spec.reference, spec.namespace)

        _, commit = resolved
        result = self._git(path, "reset", "--hard", commit)
        if result.is_failure:
            raise RepositoryStateError(
                f"git reset --hard {commit} failed in {path}",
                context=result.output,
            )

        return WorkingTree(root=path, reference=commit)

    def _require_repository(self, path: str) -> None:
        result = self._git(path, "rev-parse", "--is-inside-work-tree")
        if result.is_failure or result.stdout.strip() != "true":
            raise RepositoryStateError(
                f"{path} is not an initialized git repository",
                context=result.output or None,
            )

    def _resolve(self, path: str, spec: ReferenceSpec) -> Optional[Tuple[str, str]]:
        """Return (candidate, commit id) for the first candidate that resolves."""
        for candidate in spec.candidates:
            result = self._git(path, "rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}")
            commit = result.stdout.strip()
            if not result.is_success or not commit:
                continue
            # a bare name must be a commit id prefix, not a tag or other ref
            if not candidate.startswith("refs/") and not commit.startswith(candidate.lower()):
                continue
            return candidate, commit
        return None

    def _fetch(self, path: str, spec: ReferenceSpec) -> None:
        result = self._git(path, "fetch", *spec.fetch_args)
        if result.is_failure:
            raise RepositoryStateError(
                f"git fetch {' '.join(spec.fetch_args)} failed in {path}",
                context=result.output,
            )

    def _git(self, path: str, *args: str):
        command = " ".join(shlex.quote(part) for part in ("git", "-C", path) + args)
        return self.executor.execute_command(self.host, command, timeout=self.timeout)
