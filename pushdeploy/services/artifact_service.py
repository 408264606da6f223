"""
Artifact Materialization Service

Overlays a release archive onto the working tree.

The result is (tree_before - manifest) | manifest: every path the archive
declares comes from the archive, every other path is left exactly as it
was (runtime secrets such as .env, local overrides, uploads).
"""

import posixpath
import shlex
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Set

from pushdeploy.exceptions import ExtractionError, SSHError
from pushdeploy.models.deployment import ArtifactBundle, ExtractedFileSet

STAGING_PREFIX = ".pushdeploy-stage"


@dataclass(frozen=True)
class OverlayPlan:
    """Path sets describing one overlay."""

    preserved: FrozenSet[str]
    overwritten: FrozenSet[str]
    added: FrozenSet[str]

    @property
    def written(self) -> FrozenSet[str]:
        return self.overwritten | self.added

    @property
    def result(self) -> FrozenSet[str]:
        return self.preserved | self.written


def plan_overlay(tree_before: Iterable[str], manifest: Iterable[str]) -> OverlayPlan:
    """Split paths into preserved (tree minus manifest), overwritten and added."""
    before = frozenset(tree_before)
    declared = frozenset(manifest)
    return OverlayPlan(
        preserved=before - declared,
        overwritten=before & declared,
        added=declared - before,
    )


def normalize_manifest(listing: str) -> Set[str]:
    """
    Turn `tar -t` output into relative file paths.

    Directory entries are dropped and leading "./" is stripped.

    Raises:
        ExtractionError: If an entry is absolute or escapes the tree
    """
    paths = set()
    for raw in listing.splitlines():
        entry = raw.strip()
        if not entry or entry.endswith("/"):
            continue
        if entry.startswith("/"):
            raise ExtractionError(f"Archive entry has an absolute path: {entry}")
        while entry.startswith("./"):
            entry = entry[2:]
        entry = posixpath.normpath(entry)
        if entry == ".":
            continue
        if entry == ".." or entry.startswith("../"):
            raise ExtractionError(f"Archive entry escapes the working tree: {raw.strip()}")
        paths.add(entry)
    return paths


def normalize_tree_listing(listing: str) -> Set[str]:
    """Turn `find . -type f` output into relative file paths."""
    paths = set()
    for raw in listing.splitlines():
        entry = raw.strip()
        if entry.startswith("./"):
            entry = entry[2:]
        if entry and entry != ".":
            paths.add(entry)
    return paths


class ArtifactService:
    """Service that applies a release bundle to a working tree on the host."""

    def __init__(self, executor, host: str, timeout: Optional[int] = None):
        """
        Initialize artifact service.

        Args:
            executor: SSHService (or LocalExecutor) running tar/cp
            host: Target host
            timeout: Per-command timeout in seconds
        """
        self.executor = executor
        self.host = host
        self.timeout = timeout

    def materialize(self, bundle: ArtifactBundle, dest_tree: str) -> ExtractedFileSet:
        """
        Apply bundle to dest_tree, keeping files the archive does not declare.

        The archive is unpacked into a staging directory first, so a corrupt
        archive never touches the tree. Removing the bundle afterwards is
        best-effort and reported on the returned file set.

        Args:
            bundle: Archive to apply
            dest_tree: Working tree root on the host

        Returns:
            ExtractedFileSet with written and preserved paths

        Raises:
            ExtractionError: If the archive is missing, corrupt, fails its
                checksum, or cannot be applied
        """
        if bundle.needs_upload:
            self._upload(bundle)

        self._require_bundle(bundle)
        if bundle.checksum:
            self._verify_checksum(bundle)

        manifest = self.read_manifest(bundle.path)
        tree_before = self.list_tree(dest_tree)
        plan = plan_overlay(tree_before, manifest)

        staging = self._make_staging(dest_tree)
        try:
            self._extract(bundle.path, staging)
            self._match_root(staging, dest_tree)
            self._overlay(staging, dest_tree)
        finally:
            self._run(f"rm -rf {shlex.quote(staging)}")

        tree_after = self.list_tree(dest_tree)
        missing = sorted(plan.result - tree_after)
        if missing:
            raise ExtractionError(
                f"{len(missing)} path(s) missing from {dest_tree} after extraction",
                context=", ".join(missing[:10]),
            )

        extracted = ExtractedFileSet(
            written=sorted(plan.written),
            preserved=sorted(plan.preserved),
        )
        extracted.cleanup_error = self._remove_bundle(bundle.path)
        extracted.bundle_removed = extracted.cleanup_error is None
        return extracted

    def read_manifest(self, bundle_path: str) -> Set[str]:
        """List the file paths an archive declares."""
        result = self._run(f"tar -tf {shlex.quote(bundle_path)}")
        if result.is_failure:
            raise ExtractionError(
                f"Cannot read archive {bundle_path}", context=result.output
            )
        manifest = normalize_manifest(result.stdout)
        if not manifest:
            raise ExtractionError(f"Archive {bundle_path} contains no files")
        return manifest

    def list_tree(self, tree: str) -> Set[str]:
        """List files and symlinks currently in the tree, relative to its root."""
        result = self._run(
            f"cd {shlex.quote(tree)} && find . \\( -type f -o -type l \\) -not -path './.git/*' -print"
        )
        if result.is_failure:
            raise ExtractionError(f"Cannot list working tree {tree}", context=result.output)
        return normalize_tree_listing(result.stdout)

    def _upload(self, bundle: ArtifactBundle) -> None:
        try:
            result = self.executor.upload_file(
                self.host, bundle.local_path, bundle.path, timeout=self.timeout
            )
        except FileNotFoundError as e:
            raise ExtractionError(str(e))
        if result.is_failure:
            raise ExtractionError(
                f"Upload of {bundle.local_path} to {bundle.path} failed",
                context=result.output,
            )

    def _require_bundle(self, bundle: ArtifactBundle) -> None:
        result = self._run(f"test -f {shlex.quote(bundle.path)}")
        if result.is_failure:
            raise ExtractionError(f"Artifact bundle not found on host: {bundle.path}")

    def _verify_checksum(self, bundle: ArtifactBundle) -> None:
        result = self._run(f"sha256sum {shlex.quote(bundle.path)}")
        if result.is_failure or not result.stdout.strip():
            raise ExtractionError(
                f"Cannot checksum {bundle.path}", context=result.output
            )
        actual = result.stdout.split()[0].lower()
        expected = bundle.checksum.strip().lower()
        if expected.startswith("sha256:"):
            expected = expected[len("sha256:"):]
        if actual != expected:
            raise ExtractionError(
                f"Checksum mismatch for {bundle.path}",
                context=f"expected {expected}, got {actual}",
            )

    def _make_staging(self, dest_tree: str) -> str:
        parent = posixpath.dirname(dest_tree.rstrip("/")) or "/"
        template = posixpath.join(parent, f"{STAGING_PREFIX}.XXXXXX")
        result = self._run(f"mktemp -d {shlex.quote(template)}")
        staging = result.stdout.strip()
        if result.is_failure or not staging:
            raise ExtractionError(
                f"Cannot create staging directory next to {dest_tree}",
                context=result.output,
            )
        return staging

    def _extract(self, bundle_path: str, staging: str) -> None:
        result = self._run(
            f"tar -xf {shlex.quote(bundle_path)} -C {shlex.quote(staging)}"
        )
        if result.is_failure:
            raise ExtractionError(
                f"Archive {bundle_path} is corrupt or incomplete; tree left untouched",
                context=result.output,
            )

    def _match_root(self, staging: str, dest_tree: str) -> None:
        """Give staging the tree root's mode and mtime; cp -a copies both onto the root."""
        tree = shlex.quote(dest_tree.rstrip("/") or "/")
        result = self._run(
            f"chmod --reference={tree} {shlex.quote(staging)} && touch -r {tree} {shlex.quote(staging)}"
        )
        if result.is_failure:
            raise ExtractionError(
                f"Cannot copy the attributes of {dest_tree} onto the staging directory",
                context=result.output,
            )

    def _overlay(self, staging: str, dest_tree: str) -> None:
        result = self._run(
            f"cp -a {shlex.quote(staging.rstrip('/') + '/.')} {shlex.quote(dest_tree.rstrip('/') + '/')}"
        )
        if result.is_failure:
            raise ExtractionError(
                f"Copying the release into {dest_tree} failed",
                context=result.output,
            )

    def _remove_bundle(self, bundle_path: str) -> Optional[str]:
        """Delete the bundle; return the failure reason instead of raising."""
        try:
            result = self._run(f"rm -f {shlex.quote(bundle_path)}")
        except SSHError as e:
            return e.message
        if result.is_failure:
            return result.output or f"rm exited with {result.returncode}"
        return None

    def _run(self, command: str):
        return self.executor.execute_command(self.host, command, timeout=self.timeout)
