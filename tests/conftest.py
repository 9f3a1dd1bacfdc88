from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pytest


@pytest.fixture(autouse=True)
def git_identity(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "tomono")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "tomono@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "tomono")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "tomono@example.com")
    monkeypatch.delenv("MONOREPO_NAME", raising=False)
    monkeypatch.delenv("GIT_TMPDIR", raising=False)
    monkeypatch.delenv("MONOREPO_PRIMARY_BRANCH", raising=False)


def git(args: Sequence[str], cwd: Path) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    return result.stdout


class SourceRepo:
    def __init__(self, path: Path) -> None:
        self.path = path
        path.mkdir(parents=True)
        git(["init", "-q"], path)
        git(["symbolic-ref", "HEAD", "refs/heads/master"], path)

    def commit(self, files: Dict[str, str], message: str = "change") -> str:
        for name, content in files.items():
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        git(["add", "-A"], self.path)
        git(["commit", "-q", "--allow-empty", "-m", message], self.path)
        return git(["rev-parse", "HEAD"], self.path).strip()

    def branch(self, name: str) -> None:
        git(["checkout", "-q", "-b", name], self.path)

    def switch(self, name: str) -> None:
        git(["checkout", "-q", name], self.path)

    def tag(self, name: str, annotated: bool = False) -> None:
        if annotated:
            git(["tag", "-a", name, "-m", name], self.path)
        else:
            git(["tag", name], self.path)


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[[str], SourceRepo]:
    def _make(name: str) -> SourceRepo:
        return SourceRepo(tmp_path / "sources" / name)

    return _make


class FakeBackend:
    """In-memory stand-in that records the primitives it is asked to run."""

    def __init__(self, root: Optional[Path] = None, *, tmpdir: Optional[Path] = None) -> None:
        self.root = root
        self.tmpdir = tmpdir
        self.calls: List[tuple] = []
        self.branches: Dict[str, str] = {}
        self.remote_refs: Dict[str, Dict[str, str]] = {}
        self.remote_tags: Dict[str, Dict[str, str]] = {}
        self.staged: Dict[str, Dict[str, str]] = {}
        self.tags: Dict[str, str] = {}
        self.current: Optional[str] = None
        self._counter = 0

    def _oid(self) -> str:
        self._counter += 1
        return f"{self._counter:040x}"

    def init(self, primary: str) -> None:
        self.calls.append(("init", primary))
        self.current = primary

    def add_remote(self, remote: str, location: str) -> None:
        self.calls.append(("add_remote", remote, location))

    def fetch(self, remote: str) -> None:
        self.calls.append(("fetch", remote))

    def stage_tags(self, remote: str, namespace: str) -> None:
        self.calls.append(("stage_tags", remote, namespace))
        tags = self.remote_tags.get(remote, {})
        if tags:
            self.staged.setdefault(namespace, {}).update(tags)

    def list_remote_branches(self, remote: str) -> List[str]:
        self.calls.append(("list_remote_branches", remote))
        return sorted(self.remote_refs.get(remote, {}))

    def rev_parse(self, rev: str) -> Optional[str]:
        remote, _, branch = rev.partition("/")
        return self.remote_refs.get(remote, {}).get(branch)

    def head(self) -> Optional[str]:
        return self.branches.get(self.current) if self.current else None

    def resolve_ref(self, branch: str) -> Optional[str]:
        return self.branches.get(branch)

    def checkout(self, branch: str) -> None:
        self.calls.append(("checkout", branch))
        self.current = branch

    def clean_working_tree(self) -> None:
        self.calls.append(("clean_working_tree",))

    def create_orphan_branch(self, branch: str) -> None:
        self.calls.append(("create_orphan_branch", branch))
        self.current = branch

    def clear_index(self) -> None:
        self.calls.append(("clear_index",))

    def commit(self, message: str, *, allow_empty: bool = True) -> None:
        self.calls.append(("commit", message))
        self.branches[self.current] = self._oid()

    def merge_ours(self, ref: str) -> None:
        self.calls.append(("merge_ours", ref))

    def read_tree(self, prefix: str, ref: str) -> None:
        self.calls.append(("read_tree", prefix, ref))

    def commit_tree(self, message: str, parents: Sequence[str]) -> str:
        self.calls.append(("commit_tree", message, tuple(parents)))
        oid = self._oid()
        self.branches[self.current] = oid
        return oid

    def list_staged_tags(self) -> Dict[str, Dict[str, str]]:
        return {repo: dict(tags) for repo, tags in self.staged.items()}

    def delete_all_tags(self) -> None:
        self.calls.append(("delete_all_tags",))
        self.tags.clear()

    def create_tag(self, name: str, oid: str) -> None:
        self.calls.append(("create_tag", name, oid))
        self.tags[name] = oid

    def drop_staged_tags(self) -> None:
        self.calls.append(("drop_staged_tags",))
        self.staged.clear()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_backend_factory() -> Callable[..., FakeBackend]:
    created: List[FakeBackend] = []

    def _factory(root: Path, *, tmpdir: Optional[Path] = None) -> FakeBackend:
        backend = FakeBackend(root, tmpdir=tmpdir)
        created.append(backend)
        return backend

    _factory.created = created  # type: ignore[attr-defined]
    return _factory
