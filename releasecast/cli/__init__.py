"""Releasecast CLI: Typer-based command-line interface.

Provides the ``releasecast`` command with subcommands for deriving image
tags, publishing images and manifests, publishing files, and validating
packages.

Progress and errors go to stderr through Rich; action outputs go to stdout.
"""
