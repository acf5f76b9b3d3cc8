"""
Exceptions
Errors that cross component boundaries.

Ordinary step failures are never raised: they are written to the build log
and reported as a False result. Only cancellation escapes a build step.
"""


class BuildInterrupted(Exception):
    """The build was cancelled while a blocking step was in progress."""


class RegistryError(Exception):
    """The installation registry file could not be read or written."""
