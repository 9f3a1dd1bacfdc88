from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from .workspace import InvalidSpec

REMOTE_SUFFIX = "-origin"


@dataclass(frozen=True)
class RepositoryDescriptor:
    location: str
    name: str
    folder: str

    @property
    def remote(self) -> str:
        return f"{self.name}{REMOTE_SUFFIX}"


def parse_line(line: str, lineno: Optional[int] = None) -> Optional[RepositoryDescriptor]:
    """Parse ``<location> <name> [<folder>]``; ``None`` for blank or comment lines."""
    where = f"line {lineno}: " if lineno is not None else ""
    fields = line.split("#", 1)[0].split()
    if not fields:
        return None
    if len(fields) < 2:
        raise InvalidSpec(f"{where}pass REPOSITORY NAME pairs on stdin (got {line.strip()!r})")
    if len(fields) > 3:
        raise InvalidSpec(f"{where}expected '<location> <name> [<folder>]', got {line.strip()!r}")

    location, name = fields[0], fields[1]
    if "/" in name:
        raise InvalidSpec(f"{where}Forward slash '/' not supported in repo names: {name}")
    folder = fields[2].strip("/") if len(fields) == 3 else name
    if not folder:
        raise InvalidSpec(f"{where}empty target folder for {name}")
    return RepositoryDescriptor(location=location, name=name, folder=folder)


def parse_repositories(lines: Iterable[str]) -> Iterator[RepositoryDescriptor]:
    for lineno, line in enumerate(lines, start=1):
        descriptor = parse_line(line, lineno)
        if descriptor is not None:
            yield descriptor
