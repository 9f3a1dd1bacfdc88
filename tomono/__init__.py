"""
tomono package

Provides the CLI entrypoint (`python -m tomono`) that merges several git
repositories into one monorepo, each under its own folder, keeping every
branch and tag.
"""

from .cli import main

__all__ = ["main"]
