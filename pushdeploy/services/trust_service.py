"""
Trust Store Service

Installs the deploy key and records host fingerprints in known_hosts.
Both operations only ever add: an existing key file is never replaced and
an existing host entry is never rewritten.
"""

import os
import shlex
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pushdeploy.constants import (
    DEFAULT_SSH_PORT,
    KNOWN_HOSTS_PERMISSIONS,
    SSH_DIR_PERMISSIONS,
    SSH_KEY_PERMISSIONS,
)
from pushdeploy.exceptions import ConfigurationError, ProbeError, SSHError, WriteError
from pushdeploy.models.trust import HostTrustEntry, ProbeReport, SSHKeyMaterial
from pushdeploy.services.ssh_service import LocalExecutor
from pushdeploy.utils import known_hosts_name, parse_host_list

HASH_MAGIC = "|1|"


def parse_keyscan_output(output: str) -> List[str]:
    """
    Keep only key lines from ssh-keyscan output.

    ssh-keyscan prints "# host:22 SSH-2.0-..." banners (on stderr for recent
    versions, stdout for older ones); those and blank lines are dropped.
    """
    keys = []
    for raw in output.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if len(line.split()) < 3:
            continue
        keys.append(line)
    return keys


class TrustStoreService:
    """
    Service for SSH trust setup on the machine running the deployment.

    Responsibilities:
    - Create the private key file if absent (0600, parent dir 0700)
    - Scan and append hashed host keys for hosts not yet trusted
    """

    def __init__(self, executor=None):
        """
        Initialize trust store service.

        Args:
            executor: Runs ssh-keyscan; defaults to a LocalExecutor
        """
        self.executor = executor or LocalExecutor()

    def ensure_key(self, path: Union[str, Path], key_material: Union[str, bytes]) -> bool:
        """
        Write the private key unless a file already exists at path.

        Args:
            path: Key file path (~ is expanded)
            key_material: Private key contents

        Returns:
            True if the key was written, False if a file was already there

        Raises:
            ConfigurationError: If no key material was given for a missing key
            WriteError: If the directory or file cannot be written
        """
        key_path = Path(path).expanduser()

        if key_path.exists():
            return False

        if isinstance(key_material, str):
            key_material = key_material.encode("utf-8")
        if not key_material or not key_material.strip():
            raise ConfigurationError(
                f"No key material provided for {key_path}",
                context="Pass --key or set PUSHDEPLOY_SSH_KEY",
            )

        material = SSHKeyMaterial(path=key_path, content=key_material)
        self._ensure_directory(key_path.parent)

        try:
            fd = os.open(
                str(key_path),
                os.O_WRONLY | os.O_CREAT | os.O_EXCL,
                material.permission_mode,
            )
        except FileExistsError:
            return False
        except OSError as e:
            raise WriteError(f"Cannot create key file {key_path}", context=str(e))

        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(material.normalized_content)
            os.chmod(key_path, SSH_KEY_PERMISSIONS)
        except OSError as e:
            raise WriteError(f"Cannot write key file {key_path}", context=str(e))

        return True

    def ensure_known_hosts(
        self,
        store: Union[str, Path],
        hosts: Union[str, Iterable[str], None],
        port: int = DEFAULT_SSH_PORT,
        key_types: Optional[str] = None,
    ) -> ProbeReport:
        """
        Add scanned host keys for every host the store does not know yet.

        Unreachable hosts are recorded in the report and the batch carries on.

        Args:
            store: known_hosts file path (~ is expanded)
            hosts: Comma-separated string or list of hostnames
            port: SSH port the hosts listen on
            key_types: Optional ssh-keyscan -t value (e.g. "ed25519,rsa")

        Returns:
            ProbeReport listing added, skipped and failed hosts

        Raises:
            WriteError: If the store cannot be written
        """
        store_path = Path(store).expanduser()
        report = ProbeReport()
        host_list = parse_host_list(hosts)

        if not host_list:
            return report

        self._ensure_directory(store_path.parent)

        for host in host_list:
            name = known_hosts_name(host, port)

            try:
                if self.is_known(store_path, name):
                    report.skipped.append(host)
                    continue
                entries = self.scan_host(host, port, key_types)
            except ProbeError as e:
                report.failed[host] = e.reason
                continue

            self._append_entries(store_path, entries)
            report.added.append(host)

        if store_path.exists():
            try:
                os.chmod(store_path, KNOWN_HOSTS_PERMISSIONS)
            except OSError as e:
                raise WriteError(f"Cannot set permissions on {store_path}", context=str(e))

        return report

    def is_known(self, store: Union[str, Path], name: str) -> bool:
        """
        Ask ssh-keygen whether the store already has a key for name.

        ssh-keygen -F understands hashed entries, host patterns and negations.

        Raises:
            ProbeError: If ssh-keygen cannot search the store
        """
        store_path = Path(store).expanduser()
        if not store_path.exists():
            return False

        command = f"ssh-keygen -F {shlex.quote(name)} -f {shlex.quote(str(store_path))}"
        try:
            result = self.executor.execute_command("localhost", command)
        except SSHError as e:
            raise ProbeError(name, e.message)

        # exit 1 means "not found"
        if result.returncode not in (0, 1):
            raise ProbeError(
                name, result.stderr.strip() or f"ssh-keygen exited with {result.returncode}"
            )
        return result.returncode == 0 and bool(result.stdout.strip())

    def scan_host(
        self, host: str, port: int = DEFAULT_SSH_PORT, key_types: Optional[str] = None
    ) -> list[HostTrustEntry]:
        """
        Actively fetch a host's public keys with ssh-keyscan.

        Raises:
            ProbeError: If the host is unreachable or returned no key
        """
        parts = ["ssh-keyscan", "-H"]
        if port != DEFAULT_SSH_PORT:
            parts.extend(["-p", str(port)])
        if key_types:
            parts.extend(["-t", key_types])
        parts.append(host)
        command = " ".join(shlex.quote(part) for part in parts)

        try:
            result = self.executor.execute_command(host, command)
        except SSHError as e:
            raise ProbeError(host, e.message)

        keys = parse_keyscan_output(result.stdout)
        if not keys:
            reason = result.stderr.strip().splitlines()[-1:] or [
                f"ssh-keyscan returned no keys (exit {result.returncode})"
            ]
            raise ProbeError(host, reason[0])

        return [
            HostTrustEntry(
                hostname=host,
                key_material=line.encode("utf-8"),
                hashed=line.startswith(HASH_MAGIC),
            )
            for line in keys
        ]

    def _append_entries(self, store_path: Path, entries: list[HostTrustEntry]) -> None:
        """Append entries, starting on a fresh line."""
        try:
            needs_newline = False
            if store_path.exists() and store_path.stat().st_size > 0:
                with open(store_path, "rb") as handle:
                    handle.seek(-1, os.SEEK_END)
                    needs_newline = handle.read(1) != b"\n"

            with open(store_path, "a", encoding="utf-8") as handle:
                if needs_newline:
                    handle.write("\n")
                for entry in entries:
                    handle.write(entry.line + "\n")
        except OSError as e:
            raise WriteError(f"Cannot append to {store_path}", context=str(e))

    def _ensure_directory(self, directory: Path) -> None:
        """Create directory with owner-only permissions if it is missing."""
        if directory.is_dir():
            return
        try:
            directory.mkdir(parents=True, mode=SSH_DIR_PERMISSIONS, exist_ok=True)
            os.chmod(directory, SSH_DIR_PERMISSIONS)
        except OSError as e:
            raise WriteError(f"Cannot create directory {directory}", context=str(e))
