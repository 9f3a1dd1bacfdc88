from __future__ import annotations

import logging
import re
from typing import Dict, Mapping

from .gitutils import VersionControlBackend
from .workspace import TagCollision

_VERSION_TAG = re.compile(r"^v(?=\d)")


def normalize_version(tag: str) -> str:
    return _VERSION_TAG.sub("", tag, count=1)


def final_tag_name(repository: str, tag: str) -> str:
    return f"{repository}-{normalize_version(tag)}"


def plan_tags(staged: Mapping[str, Mapping[str, str]]) -> Dict[str, str]:
    """Map every staged tag to its flat name, refusing ambiguous results."""
    planned: Dict[str, str] = {}
    origins: Dict[str, str] = {}
    for repository in sorted(staged):
        for tag, oid in sorted(staged[repository].items()):
            name = final_tag_name(repository, tag)
            source = f"{repository}:{tag}"
            if name in planned and planned[name] != oid:
                raise TagCollision(
                    f"Tags {origins[name]} and {source} both map to {name} "
                    f"but point at different objects"
                )
            planned[name] = oid
            origins.setdefault(name, source)
    return planned


def flatten_tags(backend: VersionControlBackend) -> Dict[str, str]:
    planned = plan_tags(backend.list_staged_tags())
    backend.delete_all_tags()
    for name, oid in sorted(planned.items()):
        logging.debug("Tagging %s -> %s", name, oid)
        backend.create_tag(name, oid)
    backend.drop_staged_tags()
    logging.info("Moved %d namespaced tag(s)", len(planned))
    return planned
