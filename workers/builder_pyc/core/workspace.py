"""
Workspace — the scoped, disposable directory of one compilation.

A workspace holds exactly one input file, written under its base name
with the source's modification time, and is removed on every exit path.
Removal failures follow first-error-wins: they only become the error of
the operation when nothing else failed first.
"""
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import Iterator, List, Optional

from builder_pyc.core.fileref import FileReference, mod_time_ns
from builder_pyc.core.vpath import vbase
from builder_pyc.policy.profile import Profile

logger = logging.getLogger(__name__)


class FirstError:
    """
    Ordered error accumulator that keeps the first error it is given.

    Later errors are logged and kept in ``discarded`` for inspection but
    never replace the first one.
    """

    def __init__(self):
        self.first: Optional[BaseException] = None
        self.discarded: List[BaseException] = []

    def record(self, exc: Optional[BaseException]) -> bool:
        """Record *exc*; return True if it became the first error."""
        if exc is None:
            return False
        if self.first is None:
            self.first = exc
            return True
        logger.warning(
            "Discarding %s (%s) in favour of earlier %s",
            type(exc).__name__, exc, type(self.first).__name__,
        )
        self.discarded.append(exc)
        return False

    def raise_first(self) -> None:
        if self.first is not None:
            raise self.first

    def __bool__(self) -> bool:
        return self.first is not None


class Workspace:
    """One exclusively-owned temporary directory."""

    def __init__(self, profile: Profile):
        self.profile = profile
        self.path: Optional[str] = None

    def acquire(self, source: FileReference) -> str:
        """
        Create the directory and place *source* in it.

        Returns the workspace path.  If populating fails the directory is
        removed before the setup error propagates.
        """
        self.path = tempfile.mkdtemp(
            prefix=self.profile.workspace_prefix,
            dir=self.profile.tmp_root,
        )
        logger.debug("Created workspace %s", self.path)

        errors = FirstError()
        try:
            self._populate(source)
        except BaseException as e:
            errors.record(e)
            self.release(errors)
            raise
        return self.path

    def _populate(self, source: FileReference) -> None:
        with source.open() as fh:
            content = fh.read()

        filename = os.path.join(self.path, vbase(source.full_name))
        fd = os.open(filename, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o666)
        with os.fdopen(fd, "wb") as out:
            out.write(content)

        mtime_ns = mod_time_ns(source)
        os.utime(filename, ns=(mtime_ns, mtime_ns))

    def release(self, errors: FirstError) -> None:
        """Remove the whole tree, recording any failure into *errors*."""
        if self.path is None:
            return
        path, self.path = self.path, None
        try:
            shutil.rmtree(path)
            logger.debug("Removed workspace %s", path)
        except OSError as e:
            errors.record(e)


@contextmanager
def scoped_workspace(source: FileReference, profile: Profile) -> Iterator[str]:
    """
    Yield a populated workspace path; tear it down however the block exits.

    An exception from the block always wins over a teardown failure.  A
    teardown failure after a clean block is raised in its place.
    """
    ws = Workspace(profile)
    path = ws.acquire(source)

    errors = FirstError()
    try:
        yield path
    except BaseException as e:
        errors.record(e)
        ws.release(errors)
        raise
    ws.release(errors)
    errors.raise_first()
