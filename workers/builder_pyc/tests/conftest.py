"""
Shared pytest fixtures for builder_pyc tests.

Two kinds of compiler are used:
  - the real thing: ``sys.executable -m compileall``;
  - a fake compiler script whose behaviour is picked by its first
    argument, used to inspect the environment, stray files and failures.

Every workspace is created under a per-test temp root so tests can check
that nothing is left behind.
"""
import sys
import textwrap
from datetime import datetime, timezone
from pathlib import Path

import pytest

from builder_pyc.core.fileref import InMemFileReference
from builder_pyc.policy.profile import Profile

MODULE_SRC = textwrap.dedent("""\
    import os

    GREETING = "hello"


    def greet(name):
        return f"{GREETING}, {name}"
""")

# Fake compiler.  argv: <mode> -p <prepend> <name>
#   ok     → __pycache__/<stem>.fake.pyc (JSON record of the call), plus two stray files
#   fail   → message on stderr, exit 3
#   sleep  → block for a long time
#   empty  → exit 0 without writing anything
#   dangling → __pycache__/<stem>.fake.pyc as a symlink to nothing
FAKE_COMPILER = textwrap.dedent("""\
    import hashlib
    import json
    import os
    import sys
    import time

    mode, flag, prepend, name = sys.argv[1:5]

    if mode == "fail":
        sys.stderr.write("fake compiler: cannot compile " + name + "\\n")
        sys.exit(3)
    if mode == "sleep":
        time.sleep(60)
        sys.exit(0)
    if mode == "empty":
        sys.exit(0)
    if mode == "dangling":
        os.makedirs("__pycache__", exist_ok=True)
        stem = name.rsplit(".", 1)[0]
        os.symlink("missing-target", os.path.join("__pycache__", stem + ".fake.pyc"))
        sys.exit(0)

    with open(name, "rb") as fh:
        source = fh.read()
    record = {
        "flag": flag,
        "prepend": prepend,
        "name": name,
        "cwd_entries": sorted(os.listdir(".")),
        "source_mtime": int(os.stat(name).st_mtime),
        "source_sha256": hashlib.sha256(source).hexdigest(),
        "hash_seed": os.environ.get("PYTHONHASHSEED"),
        "epoch": os.environ.get("SOURCE_DATE_EPOCH"),
    }
    os.makedirs("__pycache__", exist_ok=True)
    stem = name.rsplit(".", 1)[0]
    with open(os.path.join("__pycache__", stem + ".fake.pyc"), "w") as out:
        json.dump(record, out, sort_keys=True)
    with open("stray.tmp", "w") as out:
        out.write("scratch")
    with open(os.path.join("__pycache__", "notes.txt"), "w") as out:
        out.write("not compiler output")
""")

SOURCE_MTIME = datetime(2021, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
CLAMP_TIME = datetime(2022, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _clean_compiler_env(monkeypatch):
    """Ambient variables that would change what the compilers do."""
    for var in ("PYTHONHASHSEED", "SOURCE_DATE_EPOCH", "PYTHONPYCACHEPREFIX"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def tmp_root(tmp_path: Path) -> Path:
    """Parent directory for every workspace created by a test."""
    d = tmp_path / "workspaces"
    d.mkdir()
    return d


@pytest.fixture
def profile(tmp_root: Path) -> Profile:
    return Profile(profile_id="test", tmp_root=str(tmp_root))


@pytest.fixture
def fake_compiler_script(tmp_path: Path) -> Path:
    p = tmp_path / "fake_compiler.py"
    p.write_text(FAKE_COMPILER)
    return p


@pytest.fixture
def fake_cmdline(fake_compiler_script: Path):
    """Factory: command line for the fake compiler in the given mode."""
    def _make(mode: str = "ok"):
        return (sys.executable, str(fake_compiler_script), mode)
    return _make


@pytest.fixture
def compileall_cmdline():
    return (sys.executable, "-m", "compileall")


def make_source(
    full_name: str = "pkg/mod.py",
    content: str = MODULE_SRC,
    mod_time: datetime = SOURCE_MTIME,
) -> InMemFileReference:
    return InMemFileReference(
        full_name=full_name,
        content=content.encode("utf-8"),
        mod_time=mod_time,
    )


@pytest.fixture
def source() -> InMemFileReference:
    return make_source()


def leftovers(tmp_root: Path) -> list:
    """Names of workspace directories still present under *tmp_root*."""
    return sorted(p.name for p in tmp_root.iterdir())
