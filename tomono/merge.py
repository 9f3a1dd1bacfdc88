from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List

from .gitutils import GitBackend, VersionControlBackend
from .integrate import IntegrationResult, ensure_destination, integrate_branch
from .repolist import RepositoryDescriptor, parse_repositories
from .tags import flatten_tags
from .workspace import MonoSettings, prepare_monorepo


@dataclass
class MonoResult:
    root: Path
    primary_branch: str
    integrations: List[IntegrationResult] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)


def merge_repository(
    backend: VersionControlBackend,
    descriptor: RepositoryDescriptor,
    primary: str,
) -> List[IntegrationResult]:
    logging.info("Merging in %s..", descriptor.location)
    backend.add_remote(descriptor.remote, descriptor.location)
    logging.info("Fetching %s..", descriptor.remote)
    backend.fetch(descriptor.remote)
    # Park the tags under the repository's name until every repository is in.
    backend.stage_tags(descriptor.remote, descriptor.name)

    results: List[IntegrationResult] = []
    branches = backend.list_remote_branches(descriptor.remote)
    if not branches:
        logging.warning("Remote %s published no branches", descriptor.remote)
    for source_branch in branches:
        results.append(integrate_branch(backend, descriptor, source_branch, primary))
    return results


def create_mono(
    lines: Iterable[str],
    settings: MonoSettings,
    *,
    resume: bool = False,
    backend_factory: Callable[..., VersionControlBackend] = GitBackend,
) -> MonoResult:
    backend = prepare_monorepo(settings, backend_factory, resume=resume)
    primary = settings.primary_branch
    result = MonoResult(root=settings.root, primary_branch=primary)

    for descriptor in parse_repositories(lines):
        result.integrations.extend(merge_repository(backend, descriptor, primary))

    result.tags = flatten_tags(backend)

    # No repository published the primary branch: still leave one behind.
    if backend.resolve_ref(primary) is None:
        ensure_destination(backend, primary, primary)
    backend.checkout(primary)
    backend.clean_working_tree()
    logging.info("Monorepo ready at %s", settings.root)
    return result
