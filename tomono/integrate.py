"""
Branch integration: graft one source branch into its monorepo branch.

Every step here must be safe to replay. A resumed run integrates the same
(repository, branch) pairs again from scratch, so an existing destination is
checked out and scrubbed instead of recreated, and the graft replaces
whatever an earlier run put under the repository's folder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .gitutils import VersionControlBackend
from .repolist import RepositoryDescriptor
from .workspace import DEFAULT_PRIMARY_BRANCH, VcsPrimitiveFailure

PRIMARY_BRANCH = DEFAULT_PRIMARY_BRANCH
INITIAL_COMMIT_MESSAGE = "Initial commit"


@dataclass
class IntegrationResult:
    repository: str
    source_branch: str
    destination: str
    status: str
    message: str = ""


def destination_branch(name: str, source_branch: str, primary: str = PRIMARY_BRANCH) -> str:
    if source_branch == primary:
        return source_branch
    return f"{name}/{source_branch}"


def integration_message(name: str) -> str:
    return f"Integrate `{name}`"


def ensure_destination(
    backend: VersionControlBackend,
    destination: str,
    primary: str = PRIMARY_BRANCH,
) -> Optional[str]:
    """Check out ``destination`` on a clean tree, creating it if needed.

    Returns the tip commit, or ``None`` when the branch was just created as
    an orphan and is still unborn. The primary branch is never left unborn:
    it is sealed with an empty root commit so later grafts always have a
    parent to merge into.
    """
    tip = backend.resolve_ref(destination)
    if tip is not None:
        logging.debug("Using existing branch %s..", destination)
        backend.checkout(destination)
        backend.clean_working_tree()
        return tip

    logging.debug("Creating new branch %s..", destination)
    backend.create_orphan_branch(destination)
    backend.clear_index()
    if destination == primary:
        backend.commit(INITIAL_COMMIT_MESSAGE, allow_empty=True)
        return backend.resolve_ref(destination)
    return None


def integrate_branch(
    backend: VersionControlBackend,
    descriptor: RepositoryDescriptor,
    source_branch: str,
    primary: str = PRIMARY_BRANCH,
) -> IntegrationResult:
    destination = destination_branch(descriptor.name, source_branch, primary)
    source_ref = f"{descriptor.remote}/{source_branch}"
    logging.info("Merging branch %s into %s..", source_branch, destination)

    existed = backend.resolve_ref(destination) is not None
    tip = ensure_destination(backend, destination, primary)
    message = integration_message(descriptor.name)
    if tip is None:
        # Nothing to merge into: "git merge" on an unborn branch would
        # fast-forward and leave the source tree at the root. Graft into the
        # empty index and record the source tip as the only parent.
        source_tip = backend.rev_parse(source_ref)
        if source_tip is None:
            raise VcsPrimitiveFailure(f"Remote branch {source_ref} does not resolve to a commit")
        backend.read_tree(descriptor.folder, source_ref)
        backend.commit_tree(message, [source_tip])
    else:
        backend.merge_ours(source_ref)
        backend.read_tree(descriptor.folder, source_ref)
        backend.commit(message, allow_empty=True)

    return IntegrationResult(
        repository=descriptor.name,
        source_branch=source_branch,
        destination=destination,
        status="updated" if existed else "created",
        message=f"{source_ref} -> {destination}:{descriptor.folder}/",
    )
