from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional

DEFAULT_MONOREPO_NAME = "core"
DEFAULT_PRIMARY_BRANCH = "master"


class MonoError(Exception):
    """Base exception for monorepo creation errors."""


class InvalidSpec(MonoError):
    """A repository list line is malformed."""


class TargetExists(MonoError):
    """Fresh initialization requested but the monorepo directory is present."""


class TargetMissing(MonoError):
    """Continuation requested but there is no monorepo directory to resume."""


class VcsPrimitiveFailure(MonoError):
    """A git command returned non-zero."""


class TagCollision(MonoError):
    """Two staged tags flatten to the same final name with different targets."""


@dataclass(frozen=True)
class MonoSettings:
    name: str
    parent: Path
    tmpdir: Optional[Path] = None
    primary_branch: str = DEFAULT_PRIMARY_BRANCH

    @property
    def root(self) -> Path:
        return self.parent / self.name

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> "MonoSettings":
        environ = os.environ if environ is None else environ
        tmpdir = environ.get("GIT_TMPDIR")
        return cls(
            name=environ.get("MONOREPO_NAME") or DEFAULT_MONOREPO_NAME,
            parent=(cwd or Path.cwd()).expanduser().resolve(),
            tmpdir=Path(tmpdir).expanduser() if tmpdir else None,
            primary_branch=environ.get("MONOREPO_PRIMARY_BRANCH") or DEFAULT_PRIMARY_BRANCH,
        )


def prepare_monorepo(
    settings: MonoSettings,
    backend_factory: Callable[..., object],
    *,
    resume: bool = False,
):
    """Create (or, with ``resume``, reopen) the monorepo working copy.

    A resumed run does not look at how far the previous run progressed; it
    only discards whatever an interrupted git command left in the working
    tree so the integration steps can be replayed from the top.
    """
    root = settings.root
    if resume:
        if not root.is_dir():
            raise TargetMissing(f"--continue specified, but nothing to resume at {root}")
        logging.info("Resuming monorepo at %s", root)
        backend = backend_factory(root, tmpdir=settings.tmpdir)
        if backend.head() is not None:
            backend.clean_working_tree()
        return backend

    if root.exists():
        raise TargetExists(f"Target repository directory {root} already exists.")
    logging.info("Creating monorepo at %s", root)
    root.mkdir(parents=True)
    backend = backend_factory(root, tmpdir=settings.tmpdir)
    backend.init(settings.primary_branch)
    return backend
