"""
File references — the unit of input and output of a compilation.

A reference addresses one file (or directory) by its virtual full name and
exposes its content and stat metadata.  Inputs are owned by the caller;
outputs are always ``InMemFileReference`` because the workspace they came
from no longer exists when the caller sees them.
"""
from __future__ import annotations

import calendar
import io
import os
import stat
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Dict, Optional, Protocol, runtime_checkable

from builder_pyc.core.vpath import vbase

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ── Time helpers ─────────────────────────────────────────────────────────────

def to_unix_seconds(dt: datetime) -> int:
    """Whole seconds since the epoch.  Naive datetimes are taken as UTC."""
    return calendar.timegm(dt.utctimetuple())


def to_unix_ns(dt: datetime) -> int:
    """Nanoseconds since the epoch, exact to the microsecond."""
    return to_unix_seconds(dt) * 1_000_000_000 + dt.microsecond * 1000


def from_unix_ns(ns: int) -> datetime:
    return EPOCH + timedelta(microseconds=ns // 1000)


def mod_time_ns(ref: FileReference) -> int:
    """
    Modification time of *ref* in nanoseconds.

    References that keep the raw value (``mod_time_ns``) give it exactly;
    otherwise the datetime is converted, exact to the microsecond.
    """
    raw = getattr(ref, "mod_time_ns", None)
    if raw is not None:
        return raw
    return to_unix_ns(ref.mod_time)


# ── Reference protocol ───────────────────────────────────────────────────────

@runtime_checkable
class FileReference(Protocol):
    """Read-only view of one file in the virtual filesystem."""

    @property
    def full_name(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def mod_time(self) -> datetime: ...

    @property
    def size(self) -> int: ...

    @property
    def mode(self) -> int: ...

    @property
    def is_dir(self) -> bool: ...

    def open(self) -> BinaryIO: ...


@dataclass(frozen=True)
class InMemFileReference:
    """A reference whose content has already been read into memory."""

    full_name: str
    content: bytes = b""
    mode: int = 0o644
    mod_time: datetime = EPOCH
    is_dir: bool = False
    size: int = -1

    def __post_init__(self):
        if self.size < 0:
            object.__setattr__(self, "size", 0 if self.is_dir else len(self.content))

    @property
    def name(self) -> str:
        return vbase(self.full_name)

    def open(self) -> BinaryIO:
        if self.is_dir:
            raise IsADirectoryError(self.full_name)
        return io.BytesIO(self.content)

    @classmethod
    def from_stat(
        cls,
        full_name: str,
        st: os.stat_result,
        content: bytes = b"",
        clamp_time: Optional[datetime] = None,
    ) -> "InMemFileReference":
        """
        Build a reference from workspace stat metadata.

        With *clamp_time*, a modification time later than the clamp is
        reported as the clamp itself.
        """
        mtime_ns = st.st_mtime_ns
        if clamp_time is not None:
            mtime_ns = min(mtime_ns, to_unix_ns(clamp_time))
        is_dir = stat.S_ISDIR(st.st_mode)
        return cls(
            full_name=full_name,
            content=content,
            mode=st.st_mode,
            mod_time=from_unix_ns(mtime_ns),
            is_dir=is_dir,
            size=st.st_size if is_dir else len(content),
        )


class OSFileReference:
    """A host file presented under a virtual full name."""

    def __init__(self, path: os.PathLike | str, full_name: str):
        self.path = os.fspath(path)
        self.full_name = full_name

    def _stat(self) -> os.stat_result:
        return os.stat(self.path)

    @property
    def name(self) -> str:
        return vbase(self.full_name)

    @property
    def mod_time(self) -> datetime:
        return from_unix_ns(self._stat().st_mtime_ns)

    @property
    def mod_time_ns(self) -> int:
        return self._stat().st_mtime_ns

    @property
    def size(self) -> int:
        return self._stat().st_size

    @property
    def mode(self) -> int:
        return self._stat().st_mode

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self._stat().st_mode)

    def open(self) -> BinaryIO:
        return open(self.path, "rb")

    def __repr__(self) -> str:
        return f"OSFileReference({self.path!r}, full_name={self.full_name!r})"


# Virtual full name → derived artifact.
CompilationResult = Dict[str, FileReference]
