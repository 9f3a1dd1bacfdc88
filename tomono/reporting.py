from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from .merge import MonoResult


def summarize_cli(result: MonoResult) -> str:
    lines = []
    lines.append("Monorepo Summary")
    lines.append("================")
    statuses = Counter(entry.status for entry in result.integrations)
    repositories = sorted({entry.repository for entry in result.integrations})
    lines.append(f"Location: {result.root}")
    lines.append(f"Repositories: {len(repositories)}")
    lines.append(
        f"Branches: {len(result.integrations)} "
        f"(created: {statuses.get('created', 0)}, updated: {statuses.get('updated', 0)})"
    )
    lines.append(f"Tags: {len(result.tags)}")
    if result.integrations:
        lines.append("")
        lines.append("Integrated Branches")
        lines.append("===================")
        for entry in result.integrations:
            lines.append(
                f"- {entry.repository}: {entry.source_branch} -> {entry.destination} ({entry.status})"
            )
    return "\n".join(lines)


def write_markdown_report(output_path: Path, result: MonoResult) -> None:
    lines = ["# Monorepo Report", ""]
    lines.append(f"- Location: `{result.root}`")
    lines.append(f"- Primary branch: `{result.primary_branch}`")
    lines.append("")

    lines.append("## Branches")
    lines.append("")
    by_repository: dict[str, list] = {}
    for entry in result.integrations:
        by_repository.setdefault(entry.repository, []).append(entry)
    for repository, entries in by_repository.items():
        lines.append(f"- **{repository}**")
        for entry in entries:
            lines.append(f"  - `{entry.source_branch}` -> `{entry.destination}` ({entry.status})")
        lines.append("")

    if result.tags:
        lines.append("## Tags")
        lines.append("")
        for name, oid in sorted(result.tags.items()):
            lines.append(f"- `{name}`: `{oid[:12]}`")
        lines.append("")

    output_path.write_text("\n".join(lines).rstrip() + "\n")
    logging.info("Wrote report to %s", output_path)
