"""
Collector — copy compiler output out of the workspace.

Everything is read eagerly: the workspace is removed as soon as
collection returns, so nothing may be read from it lazily afterwards.
Relative paths are built with ``/`` directly and joined with the
source's virtual directory, never with host path functions.
"""
import logging
import os
from datetime import datetime
from typing import Dict, Iterator, Optional, Tuple

from builder_pyc.core.fileref import FileReference, InMemFileReference
from builder_pyc.core.vpath import vdir, vjoin
from builder_pyc.policy.profile import Profile

logger = logging.getLogger(__name__)


class NoCompiledOutput(RuntimeError):
    """The compiler succeeded but left no file with the output suffix."""


def walk_slash(root: str, _prefix: str = "") -> Iterator[Tuple[str, os.DirEntry]]:
    """
    Depth-first walk of *root* in lexical order.

    Yields ``(relpath, entry)`` with ``/``-separated relative paths.  The
    root itself is not yielded.  Unlike ``os.walk``, any ``OSError`` from
    listing a directory propagates.
    """
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        rel = f"{_prefix}/{entry.name}" if _prefix else entry.name
        yield rel, entry
        if entry.is_dir(follow_symlinks=False):
            yield from walk_slash(entry.path, rel)


def is_output(relpath: str, entry: os.DirEntry, profile: Profile) -> bool:
    """Directories always; files only when they carry the output suffix."""
    if entry.is_dir(follow_symlinks=False):
        return True
    return relpath.endswith(profile.output_suffix)


def collect_outputs(
    root: str,
    source: FileReference,
    profile: Profile,
    clamp_time: Optional[datetime] = None,
) -> Dict[str, FileReference]:
    """
    Gather the compiler's output from workspace *root*.

    Keys are virtual full names: the source's virtual directory joined with
    each entry's path relative to *root*.  Any I/O error aborts the whole
    collection.
    """
    base = vdir(source.full_name)
    result: Dict[str, FileReference] = {}
    n_files = 0

    for relpath, entry in walk_slash(root):
        if not is_output(relpath, entry, profile):
            logger.debug("Skipping non-output %s", relpath)
            continue

        st = entry.stat(follow_symlinks=False)
        content = b""
        if not entry.is_dir(follow_symlinks=False):
            with open(entry.path, "rb") as fh:
                content = fh.read()
            n_files += 1

        full_name = vjoin(base, relpath)
        result[full_name] = InMemFileReference.from_stat(
            full_name, st, content=content, clamp_time=clamp_time,
        )

    if n_files == 0:
        if profile.require_outputs:
            raise NoCompiledOutput(
                f"no '{profile.output_suffix}' output for {source.full_name}"
            )
        logger.warning(
            "No '%s' output for %s", profile.output_suffix, source.full_name,
        )

    return result
