"""
pushdeploy Exception Hierarchy

Clean exception hierarchy for consistent error handling across stages and CLI.
"""

from typing import Optional

from pushdeploy.utils import printable


class PushDeployError(Exception):
    """Base exception for all pushdeploy errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = printable(message)
        self.context = printable(context) if context else context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ConfigurationError(PushDeployError):
    """Raised when configuration is invalid or missing."""

    pass


class SSHError(PushDeployError):
    """Raised when SSH operations fail."""

    pass


class ConnectionLostError(SSHError):
    """Raised when the SSH command channel drops mid-command."""

    def __init__(self, host: str, command: str, stderr: str = ""):
        self.host = host
        self.command = command
        message = f"Lost SSH connection to {host}"
        context = f"Command: {command}"
        if stderr.strip():
            context += f"\n{stderr.strip()}"
        super().__init__(message, context)


class DeploymentError(PushDeployError):
    """Raised when a deployment stage fails."""

    pass


class WriteError(DeploymentError):
    """Raised when a key or trust store file cannot be written."""

    pass


class ProbeError(DeploymentError):
    """Raised when a host key scan returns no usable key."""

    def __init__(self, host: str, reason: str):
        self.host = host
        self.reason = reason
        super().__init__(f"Could not scan host key for '{host}'", context=reason)


class ReferenceNotFoundError(DeploymentError):
    """Raised when a git reference does not resolve, even after fetching."""

    def __init__(self, reference: str, namespace: str):
        self.reference = reference
        self.namespace = namespace
        message = f"Reference '{reference}' not found"
        context = f"Searched the {namespace} namespace after fetching"
        super().__init__(message, context)


class RepositoryStateError(DeploymentError):
    """Raised when the working tree is not a usable git repository."""

    pass


class ExtractionError(DeploymentError):
    """Raised when an artifact bundle cannot be applied."""

    pass


class RuntimeNotAvailableError(DeploymentError):
    """Raised when the requested runtime version is not installed."""

    def __init__(self, version: str, context: Optional[str] = None):
        self.version = version
        super().__init__(
            f"Runtime version '{version}' is not installed on the host",
            context=context or f"Install it first: nvm install {version}",
        )


class DependencyInstallError(DeploymentError):
    """Raised when the lockfile-driven dependency install fails."""

    pass


class ProcessControlError(DeploymentError):
    """Raised when the process manager reports a failed transition."""

    pass


class ProcessNotRegisteredError(ProcessControlError):
    """Raised when a reload targets a process the manager does not know."""

    def __init__(self, process_name: str, registered: list[str]):
        self.process_name = process_name
        self.registered = registered
        message = f"Process '{process_name}' is not registered with pm2"
        if registered:
            context = f"Registered processes: {', '.join(registered)}"
        else:
            context = "No processes are registered; use --transition restart first"
        super().__init__(message, context)
