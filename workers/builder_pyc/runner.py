"""
Runner — the compiler contract and top-level orchestration.

``external_compiler`` returns a ``Compiler``: a callable taking
``(cancel, clamp_time, source)`` and returning the compilation result.
Each call runs workspace → invoke → collect → teardown, strictly in
order, with nothing shared between calls, so calls may run concurrently
from separate threads.

``run_compile`` wraps one call the way the other workers are driven:
it returns a JSON-able report next to the result and can write both to
an output directory.

Example::

    compile_pyc = external_compiler("python3", "-m", "compileall")
    result = compile_pyc(None, clamp, OSFileReference("src/mod.py", "pkg/mod.py"))
"""
import hashlib
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Tuple

from builder_pyc.config import settings
from builder_pyc.core.collector import collect_outputs
from builder_pyc.core.fileref import FileReference, to_unix_seconds
from builder_pyc.core.invoker import (
    build_command,
    build_env,
    resolve_program,
    run_compiler,
)
from builder_pyc.core.workspace import scoped_workspace
from builder_pyc.io.schema import CompiledEntry, CompileReport
from builder_pyc.io.writer import write_outputs
from builder_pyc.policy.profile import Profile

logger = logging.getLogger(__name__)

Compiler = Callable[
    [Optional[threading.Event], Optional[datetime], FileReference],
    Dict[str, FileReference],
]


class ExternalCompiler:
    """
    A ``Compiler`` backed by an external command.

    Designed for CPython's ``compileall`` module, which understands the
    ``-p`` prepend-dir flag (``py_compile`` does not).
    """

    def __init__(self, cmdline: Sequence[str], profile: Optional[Profile] = None):
        if not cmdline:
            raise ValueError("empty compiler command line")
        self.profile = profile or Profile.from_settings(settings)
        self.program = resolve_program(cmdline[0])
        self.args = tuple(cmdline[1:])

    def __call__(
        self,
        cancel: Optional[threading.Event],
        clamp_time: Optional[datetime],
        source: FileReference,
    ) -> Dict[str, FileReference]:
        profile = self.profile
        with scoped_workspace(source, profile) as workdir:
            cmd = build_command(self.program, self.args, source, profile)
            run_compiler(
                cmd,
                cwd=workdir,
                env=build_env(clamp_time, profile),
                cancel=cancel,
                timeout=profile.timeout,
            )
            result = collect_outputs(workdir, source, profile, clamp_time=clamp_time)

        logger.info("Compiled %s → %d entries", source.full_name, len(result))
        return result

    def __repr__(self) -> str:
        return f"ExternalCompiler({self.program!r}, args={self.args!r})"


def external_compiler(*cmdline: str, profile: Optional[Profile] = None) -> ExternalCompiler:
    """
    Build a ``Compiler`` that runs *cmdline*.

    With no *cmdline* the profile's (settings-configured) command is used.
    The program is resolved to an absolute path here, once.
    """
    if profile is None:
        profile = Profile.from_settings(settings)
    return ExternalCompiler(cmdline or profile.command, profile)


def _sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def build_report(
    source: FileReference,
    result: Dict[str, FileReference],
    profile: Profile,
    clamp_time: Optional[datetime] = None,
) -> CompileReport:
    """Summarise one compilation; entries sorted by full name."""
    with source.open() as fh:
        source_sha = _sha256(fh.read())

    entries = []
    for full_name in sorted(result):
        ref = result[full_name]
        digest = None
        if not ref.is_dir:
            with ref.open() as fh:
                digest = _sha256(fh.read())
        entries.append(CompiledEntry(
            full_name=full_name,
            is_dir=ref.is_dir,
            size=ref.size,
            mode=oct(ref.mode),
            sha256=digest,
        ))

    return CompileReport(
        profile_id=profile.profile_id,
        source_full_name=source.full_name,
        source_sha256=source_sha,
        clamp_epoch=to_unix_seconds(clamp_time) if clamp_time is not None else None,
        entries=entries,
    )


def run_compile(
    source: FileReference,
    compiler: Optional[Compiler] = None,
    clamp_time: Optional[datetime] = None,
    output_dir: Optional[Path] = None,
    cancel: Optional[threading.Event] = None,
    profile: Optional[Profile] = None,
) -> Tuple[CompileReport, Dict[str, FileReference]]:
    """
    Compile one source file.

    Parameters
    ----------
    source : FileReference
        The file to compile, addressed by its virtual full name.
    compiler : Compiler, optional
        Any callable honouring the compiler contract.  Defaults to
        ``external_compiler()`` with the configured command.
    clamp_time : datetime, optional
        Makes the output reproducible with respect to this time.
    output_dir : Path, optional
        Directory to write the result and compile_report.json.  If None,
        nothing is written to disk.
    cancel : threading.Event, optional
        Setting it terminates the compiler; teardown still runs.
    profile : Profile, optional
        Profile recorded in the report.  Defaults to the compiler's own
        profile when it has one, else the configured profile.

    Returns
    -------
    (CompileReport, result)
    """
    if compiler is None:
        compiler = external_compiler()

    if profile is None:
        profile = getattr(compiler, "profile", None) or Profile.from_settings(settings)

    result = compiler(cancel, clamp_time, source)
    report = build_report(source, result, profile, clamp_time)

    if output_dir:
        write_outputs(report, result, output_dir)

    return report, result
