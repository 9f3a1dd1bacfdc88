from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator


def read_packed_refs(git_dir: Path) -> Dict[str, str]:
    packed = git_dir / "packed-refs"
    refs: Dict[str, str] = {}
    try:
        text = packed.read_text()
    except OSError:
        return refs
    for line in text.splitlines():
        line = line.strip()
        # "# pack-refs with: ..." header and "^<oid>" peeled lines
        if not line or line.startswith(("#", "^")):
            continue
        oid, _, refname = line.partition(" ")
        if refname:
            refs[refname] = oid
    return refs


def list_refs(git_dir: Path, namespace: str) -> Iterator[str]:
    """Names (relative to ``namespace``) of every loose or packed ref under it."""
    namespace = namespace.rstrip("/") + "/"
    names = set()
    base = git_dir / namespace
    if base.is_dir():
        for item in base.rglob("*"):
            if item.is_file() and not item.name.endswith(".lock"):
                names.add(item.relative_to(base).as_posix())
    for refname in read_packed_refs(git_dir):
        if refname.startswith(namespace):
            names.add(refname[len(namespace):])
    yield from sorted(names)


def remote_branches(git_dir: Path, remote: str) -> Iterator[str]:
    for name in list_refs(git_dir, f"refs/remotes/{remote}"):
        if name == "HEAD":
            continue
        yield name
