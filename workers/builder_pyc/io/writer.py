"""
Writer — materialise a compilation result on disk.

Filesystem layout per source:
    <output_dir>/<virtual full name>...   (directories and compiled files)
    <output_dir>/compile_report.json

Files keep their reported permission bits and modification time.
"""
import json
import os
import stat
from pathlib import Path, PurePosixPath
from typing import Dict, Optional

from builder_pyc.core.fileref import FileReference, to_unix_ns
from builder_pyc.io.schema import CompileReport

REPORT_NAME = "compile_report.json"


def _target(output_dir: Path, full_name: str) -> Path:
    rel = PurePosixPath(full_name)
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"refusing to write outside output dir: {full_name!r}")
    return output_dir.joinpath(*rel.parts)


def write_outputs(
    report: CompileReport,
    result: Dict[str, FileReference],
    output_dir: Path,
    report_path: Optional[Path] = None,
) -> Path:
    """
    Write every entry of *result* plus compile_report.json into *output_dir*.

    Creates *output_dir* if it does not exist.  *report_path* overrides
    where the report goes, for callers sharing one output tree across
    many sources.  Returns the output directory path.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    # Parents sort before children, so directories exist before their files.
    for full_name in sorted(result):
        ref = result[full_name]
        target = _target(output_dir, full_name)
        if ref.is_dir:
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        with ref.open() as fh:
            target.write_bytes(fh.read())
        os.chmod(target, stat.S_IMODE(ref.mode))
        mtime_ns = to_unix_ns(ref.mod_time)
        os.utime(target, ns=(mtime_ns, mtime_ns))

    if report_path is None:
        report_path = output_dir / REPORT_NAME
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(
        json.dumps(
            report.model_dump(mode="json"),
            indent=2,
            sort_keys=True,
        )
        + "\n"
    )

    return output_dir
