"""
Schema — Pydantic models for the compile report.

One report per compiled source: compile_report.json.

Runtime contract fields (present in every output):
  package_name, adapter_version, profile_id, schema_version.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from builder_pyc import ADAPTER_VERSION, PACKAGE_NAME, SCHEMA_VERSION


class CompiledEntry(BaseModel):
    """One entry of the compilation result."""

    full_name: str
    is_dir: bool = False
    size: int = 0
    mode: str                     # octal string, e.g. "0o100644"
    sha256: Optional[str] = None  # None for directories


class CompileReport(BaseModel):
    """Per-source summary — compile_report.json."""

    package_name: str = PACKAGE_NAME
    adapter_version: str = ADAPTER_VERSION
    schema_version: str = SCHEMA_VERSION
    profile_id: str

    source_full_name: str
    source_sha256: str

    # Unix seconds of the clamp; None when the run was not clamped
    clamp_epoch: Optional[int] = None

    entries: List[CompiledEntry] = Field(default_factory=list)

    @property
    def n_files(self) -> int:
        return sum(1 for e in self.entries if not e.is_dir)
