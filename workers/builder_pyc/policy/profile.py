"""
Profile — compiler invocation descriptor and output policy.

The profile encapsulates every knob of an external compilation so that
the workspace, invoker and collector contain no opinions.  Pointing the
adapter at a different compiler is a profile change, not a code change.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from builder_pyc.config import Settings


@dataclass(frozen=True)
class Profile:
    """Describes how the external compiler is invoked and what it emits."""

    # Identity
    profile_id: str

    # Default command line (program + fixed leading arguments)
    command: Tuple[str, ...] = ("python3", "-m", "compileall")
    prepend_flag: str = "-p"

    # Output selection.  Only files with this suffix are compiler output;
    # with require_outputs a run that produced none of them is an error.
    output_suffix: str = ".pyc"
    require_outputs: bool = False

    # Workspace
    workspace_prefix: str = "builder_pyc."
    tmp_root: Optional[str] = None

    # Reproducibility clamps (applied only when a clamp time is given)
    hash_seed_var: str = "PYTHONHASHSEED"
    hash_seed: str = "0"
    epoch_var: str = "SOURCE_DATE_EPOCH"

    # Invocation
    timeout: Optional[int] = None

    @classmethod
    def v1(cls) -> "Profile":
        """The locked v1 profile: CPython ``compileall`` emitting .pyc."""
        return cls(profile_id="cpython-compileall-pyc")

    @classmethod
    def from_settings(cls, settings: Settings) -> "Profile":
        """v1 profile with the environment-configured overrides applied."""
        return cls(
            profile_id="cpython-compileall-pyc",
            command=tuple(settings.command_line),
            output_suffix=settings.OUTPUT_SUFFIX,
            require_outputs=settings.REQUIRE_OUTPUTS,
            workspace_prefix=settings.WORKSPACE_PREFIX,
            tmp_root=settings.TMP_ROOT,
            timeout=settings.TIMEOUT,
        )
