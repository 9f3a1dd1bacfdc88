from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

from .refs import remote_branches
from .workspace import VcsPrimitiveFailure

STAGED_TAGS_NAMESPACE = "refs/namespaced-tags"


def run_git(
    repo: Path,
    args: Sequence[str],
    *,
    env: Optional[Mapping[str, str]] = None,
    input: Optional[str] = None,
) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", "-C", str(repo)] + list(args),
        input=input,
        env=None if env is None else dict(env),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def git_rev_parse(repo: Path, rev: str = "HEAD") -> Optional[str]:
    result = run_git(repo, ["rev-parse", "-q", "--verify", f"{rev}^{{commit}}"])
    if result.returncode != 0:
        return None
    return result.stdout.strip()


class VersionControlBackend(Protocol):
    """The git primitives the monorepo builder orchestrates."""

    def init(self, primary: str) -> None: ...

    def add_remote(self, remote: str, location: str) -> None: ...

    def fetch(self, remote: str) -> None: ...

    def stage_tags(self, remote: str, namespace: str) -> None: ...

    def list_remote_branches(self, remote: str) -> List[str]: ...

    def head(self) -> Optional[str]: ...

    def resolve_ref(self, branch: str) -> Optional[str]: ...

    def rev_parse(self, rev: str) -> Optional[str]: ...

    def checkout(self, branch: str) -> None: ...

    def clean_working_tree(self) -> None: ...

    def create_orphan_branch(self, branch: str) -> None: ...

    def clear_index(self) -> None: ...

    def commit(self, message: str, *, allow_empty: bool = True) -> None: ...

    def merge_ours(self, ref: str) -> None: ...

    def read_tree(self, prefix: str, ref: str) -> None: ...

    def commit_tree(self, message: str, parents: Sequence[str]) -> str: ...

    def list_staged_tags(self) -> Dict[str, Dict[str, str]]: ...

    def delete_all_tags(self) -> None: ...

    def create_tag(self, name: str, oid: str) -> None: ...

    def drop_staged_tags(self) -> None: ...


class GitBackend:
    """Runs the primitives as ``git`` subprocesses inside the monorepo."""

    def __init__(self, root: Path, *, tmpdir: Optional[Path] = None) -> None:
        self.root = root
        self.git_dir = root / ".git"
        self.env: Optional[Dict[str, str]] = None
        if tmpdir is not None:
            self.env = os.environ.copy()
            self.env["TMPDIR"] = str(tmpdir)

    # Plumbing -------------------------------------------------------------
    def _run(self, args: Sequence[str], *, input: Optional[str] = None) -> str:
        logging.debug("git %s", " ".join(args))
        result = run_git(self.root, args, env=self.env, input=input)
        if result.returncode != 0:
            raise VcsPrimitiveFailure(f"git {' '.join(args)} failed: {result.stderr.strip()}")
        return result.stdout

    def _for_each_ref(self, namespace: str) -> Dict[str, str]:
        output = self._run(["for-each-ref", "--format=%(objectname) %(refname)", namespace])
        refs: Dict[str, str] = {}
        for line in output.splitlines():
            oid, _, refname = line.partition(" ")
            refs[refname] = oid
        return refs

    def _delete_refs(self, refnames: Sequence[str]) -> None:
        if not refnames:
            return
        commands = "".join(f"delete {refname}\n" for refname in refnames)
        self._run(["update-ref", "--stdin"], input=commands)

    # Repository and remotes -----------------------------------------------
    def init(self, primary: str) -> None:
        self._run(["init", "-q"])
        # Point the unborn HEAD at the primary branch whatever init.defaultBranch says.
        self._run(["symbolic-ref", "HEAD", f"refs/heads/{primary}"])

    def add_remote(self, remote: str, location: str) -> None:
        existing = run_git(self.root, ["config", "--get", f"remote.{remote}.url"], env=self.env)
        if existing.returncode == 0:
            logging.debug("Remote %s already registered; resetting its URL", remote)
            self._run(["remote", "set-url", remote, location])
        else:
            self._run(["remote", "add", remote, location])

    def fetch(self, remote: str) -> None:
        self._run(["fetch", "-q", "--no-tags", remote])

    def stage_tags(self, remote: str, namespace: str) -> None:
        self._run(
            [
                "fetch",
                "-q",
                "--no-tags",
                remote,
                f"+refs/tags/*:{STAGED_TAGS_NAMESPACE}/{namespace}/*",
            ]
        )

    def list_remote_branches(self, remote: str) -> List[str]:
        return list(remote_branches(self.git_dir, remote))

    # Branches -------------------------------------------------------------
    def rev_parse(self, rev: str) -> Optional[str]:
        return git_rev_parse(self.root, rev)

    def head(self) -> Optional[str]:
        return self.rev_parse("HEAD")

    def resolve_ref(self, branch: str) -> Optional[str]:
        return self.rev_parse(f"refs/heads/{branch}")

    def checkout(self, branch: str) -> None:
        self._run(["checkout", "-q", "-f", branch, "--"])

    def clean_working_tree(self) -> None:
        # reset --hard also drops MERGE_HEAD left by an interrupted integration
        self._run(["reset", "-q", "--hard", "HEAD"])
        self._run(["clean", "-q", "-f", "-d"])

    def create_orphan_branch(self, branch: str) -> None:
        self._run(["checkout", "-q", "--orphan", branch])

    def clear_index(self) -> None:
        self._run(["rm", "-r", "-f", "-q", "--ignore-unmatch", "--", "."])
        self._run(["clean", "-q", "-f", "-d"])

    # Integration ----------------------------------------------------------
    def merge_ours(self, ref: str) -> None:
        self._run(
            [
                "merge",
                "-q",
                "--no-commit",
                "--no-ff",
                "-s",
                "ours",
                "--allow-unrelated-histories",
                ref,
            ]
        )

    def read_tree(self, prefix: str, ref: str) -> None:
        prefix = prefix.strip("/")
        self._run(["rm", "-r", "-f", "-q", "--ignore-unmatch", "--", prefix])
        self._run(["read-tree", "-u", f"--prefix={prefix}/", ref])

    def commit(self, message: str, *, allow_empty: bool = True) -> None:
        args = ["commit", "-q", "--no-verify"]
        if allow_empty:
            args.append("--allow-empty")
        self._run(args + ["-m", message])

    def commit_tree(self, message: str, parents: Sequence[str]) -> str:
        tree = self._run(["write-tree"]).strip()
        args = ["commit-tree", tree]
        for parent in parents:
            args += ["-p", parent]
        oid = self._run(args + ["-m", message]).strip()
        # HEAD is symbolic, so this advances (or creates) the current branch.
        self._run(["update-ref", "HEAD", oid])
        self._run(["reset", "-q", "--hard", "HEAD"])
        return oid

    # Tags -----------------------------------------------------------------
    def list_staged_tags(self) -> Dict[str, Dict[str, str]]:
        staged: Dict[str, Dict[str, str]] = {}
        prefix = STAGED_TAGS_NAMESPACE + "/"
        for refname, oid in self._for_each_ref(STAGED_TAGS_NAMESPACE).items():
            repository, _, tag = refname[len(prefix):].partition("/")
            staged.setdefault(repository, {})[tag] = oid
        return staged

    def delete_all_tags(self) -> None:
        self._delete_refs(sorted(self._for_each_ref("refs/tags")))

    def create_tag(self, name: str, oid: str) -> None:
        self._run(["update-ref", f"refs/tags/{name}", oid])

    def drop_staged_tags(self) -> None:
        self._delete_refs(sorted(self._for_each_ref(STAGED_TAGS_NAMESPACE)))
