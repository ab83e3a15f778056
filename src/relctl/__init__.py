"""
relctl - command-line client for remote resource configuration.

This package also maintains its own binary: it can upgrade itself to a newer
release and roll back to the binary it replaced.
"""

__version__ = "0.1.0"
