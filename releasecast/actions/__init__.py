"""Collaborator actions invoked by releasecast runs.

Protocols describe the callables the orchestrator accepts; the command
actions are thin ``subprocess`` adapters used by the CLI.
"""

from releasecast.actions.command import (
    CommandAction,
    CommandFilePublishAction,
    CommandManifestAction,
    CommandPublishAction,
    CommandValidateAction,
)
from releasecast.actions.protocols import (
    AggregateAction,
    FilePublishAction,
    PublishAction,
    ValidateAction,
)

__all__ = [
    "AggregateAction",
    "FilePublishAction",
    "PublishAction",
    "ValidateAction",
    "CommandAction",
    "CommandPublishAction",
    "CommandManifestAction",
    "CommandFilePublishAction",
    "CommandValidateAction",
]
