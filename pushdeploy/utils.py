"""
CLI Utilities

Small pure helpers shared by services and commands.
"""

import re
from typing import Iterable, List, Union

from pushdeploy.constants import DEFAULT_SSH_PORT

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def parse_host_list(hosts: Union[str, Iterable[str], None]) -> List[str]:
    """
    Parse a host list.

    Accepts a comma-separated string or an iterable of strings (each of which
    may itself be comma-separated). Entries are trimmed, empty entries are
    dropped and duplicates collapse onto their first occurrence.

    Args:
        hosts: "a.test, b.test,,c.test" or ["a.test", "b.test,c.test"]

    Returns:
        Hostnames in input order
    """
    if not hosts:
        return []

    if isinstance(hosts, str):
        hosts = [hosts]

    parsed: List[str] = []
    for chunk in hosts:
        for host in chunk.split(","):
            host = host.strip()
            if host and host not in parsed:
                parsed.append(host)
    return parsed


def known_hosts_name(host: str, port: int = DEFAULT_SSH_PORT) -> str:
    """Name OpenSSH records for a host: bare for port 22, [host]:port otherwise."""
    if port == DEFAULT_SSH_PORT:
        return host
    return f"[{host}]:{port}"


def strip_ansi(text: str) -> str:
    """Remove ANSI color codes."""
    return ANSI_ESCAPE.sub("", text)



def printable(text: str) -> str:
    """Replace undecodable bytes (kept as surrogates) with U+FFFD for display."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
