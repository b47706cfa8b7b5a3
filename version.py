"""
Version information for the Job Board application.

Single source of truth for the version shown by the web app and /health.
"""

__version__ = "0.1.0"
__version_info__ = (0, 1, 0)
