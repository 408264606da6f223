"""pushdeploy CLI commands"""

from pushdeploy.commands import deploy, doctor, plan, ssh_setup

__all__ = ["deploy", "doctor", "plan", "ssh_setup"]
