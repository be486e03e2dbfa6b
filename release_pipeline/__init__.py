"""Release pipeline for browser installers.

Downloads the browser source tree from GitHub, runs the platform build,
and publishes the installers as assets of a versioned prerelease.
"""

__version__ = "1.0.0"
