"""
Invoker — build the compiler command line and environment, then run it.

The environment is inherited untouched unless a clamp time is given; with
one, the hash seed and SOURCE_DATE_EPOCH overrides pin everything the
compiler could otherwise take from the host.  A failed run is final: no
retries happen here.
"""
import logging
import os
import shutil
import subprocess
import threading
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from builder_pyc.core.fileref import FileReference, to_unix_seconds
from builder_pyc.core.vpath import prepend_dir
from builder_pyc.policy.profile import Profile

logger = logging.getLogger(__name__)

# How often a running compiler is checked against its cancel token
CANCEL_POLL_INTERVAL = 0.05
# Grace period between terminate() and kill()
TERMINATE_GRACE = 5.0


class CompilationCancelled(RuntimeError):
    """The cancel token was set while the compiler was running."""


def resolve_program(name: str) -> str:
    """
    Locate *name* on PATH and return its absolute path.

    Resolving once up front means a later working-directory change cannot
    change which binary runs.
    """
    found = shutil.which(name)
    if found is None:
        raise FileNotFoundError(f"compiler executable not found: {name!r}")
    return os.path.abspath(found)


def build_command(
    program: str,
    args: Sequence[str],
    source: FileReference,
    profile: Profile,
) -> List[str]:
    """``<program> <args...> -p <virtual dir> <base name>``"""
    return [
        program,
        *args,
        profile.prepend_flag, prepend_dir(source.full_name),
        source.name,
    ]


def build_env(clamp_time: Optional[datetime], profile: Profile) -> Optional[Dict[str, str]]:
    """
    Process environment for one run.

    Returns None (inherit as-is) without a clamp, otherwise a copy of the
    current environment with the two reproducibility overrides.
    """
    if clamp_time is None:
        return None
    env = dict(os.environ)
    env[profile.hash_seed_var] = profile.hash_seed
    env[profile.epoch_var] = str(to_unix_seconds(clamp_time))
    return env


def _log_transcript(cmd: List[str], stdout: bytes, stderr: bytes) -> None:
    if stdout:
        logger.debug("[%s] stdout:\n%s", cmd[0], stdout.decode("utf-8", "replace"))
    if stderr:
        logger.debug("[%s] stderr:\n%s", cmd[0], stderr.decode("utf-8", "replace"))


def _stop(proc: subprocess.Popen) -> None:
    proc.terminate()
    try:
        proc.communicate(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.communicate()


def run_compiler(
    cmd: List[str],
    cwd: str,
    env: Optional[Dict[str, str]] = None,
    cancel: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Run *cmd* in *cwd* to completion and capture its transcript.

    Raises
    ------
    OSError
        The process could not be started.
    subprocess.CalledProcessError
        The process exited non-zero (stdout/stderr attached).
    subprocess.TimeoutExpired
        *timeout* elapsed; the process is killed first.
    CompilationCancelled
        *cancel* was set; the process is terminated first.
    """
    logger.info("Running compiler: %s (cwd=%s)", " ".join(cmd), cwd)

    with subprocess.Popen(
        cmd,
        cwd=cwd,
        env=env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    ) as proc:
        if cancel is None:
            try:
                stdout, stderr = proc.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.communicate()
                raise
        else:
            waited = 0.0
            while True:
                if cancel.is_set():
                    _stop(proc)
                    raise CompilationCancelled(f"compilation cancelled: {cmd[0]}")
                try:
                    stdout, stderr = proc.communicate(timeout=CANCEL_POLL_INTERVAL)
                    break
                except subprocess.TimeoutExpired:
                    waited += CANCEL_POLL_INTERVAL
                    if timeout is not None and waited >= timeout:
                        proc.kill()
                        proc.communicate()
                        raise subprocess.TimeoutExpired(cmd, timeout)

    _log_transcript(cmd, stdout, stderr)

    if proc.returncode != 0:
        logger.warning("Compiler exited with %d: %s", proc.returncode, cmd[0])
        raise subprocess.CalledProcessError(proc.returncode, cmd, stdout, stderr)

    return subprocess.CompletedProcess(cmd, proc.returncode, stdout, stderr)
