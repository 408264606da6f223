"""pushdeploy - push release artifacts to hosts over SSH"""

__version__ = "1.0.0"
