"""Releasecast: bounded-concurrency publication and validation of release artifacts.

Expands build artifacts into tagged publication tasks, runs them under a
shared concurrency budget, rolls per-architecture tags up into multi-arch
manifests, and stops at the first failure.
"""

__version__ = "0.1.0"
__description__ = (
    "Bounded-concurrency publication and validation orchestrator for release pipelines"
)

from releasecast.core.orchestrator import Orchestrator
from releasecast.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
