"""
Compile a tree of Python sources to .pyc through builder_pyc.

Usage:
    python scripts/compile_pyc.py SRC_ROOT OUT_DIR [--clamp-epoch N]

Every *.py under SRC_ROOT is compiled under its path relative to SRC_ROOT.
Compiled files land in OUT_DIR at their virtual paths; one report per
source goes to OUT_DIR/_reports/<relative path>.json.
"""
import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from builder_pyc.config import settings
from builder_pyc.core.fileref import OSFileReference
from builder_pyc.io.writer import write_outputs
from builder_pyc.runner import build_report, external_compiler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("compile_pyc")


def main() -> int:
    parser = argparse.ArgumentParser(description="Compile Python sources to .pyc")
    parser.add_argument("src_root", type=Path)
    parser.add_argument("out_dir", type=Path)
    parser.add_argument("--clamp-epoch", type=int, default=None,
                        help="SOURCE_DATE_EPOCH to compile against")
    args = parser.parse_args()

    clamp = None
    if args.clamp_epoch is not None:
        clamp = datetime.fromtimestamp(args.clamp_epoch, tz=timezone.utc)

    compiler = external_compiler()
    failures = 0

    for path in sorted(args.src_root.rglob("*.py")):
        full_name = path.relative_to(args.src_root).as_posix()
        source = OSFileReference(path, full_name)
        try:
            result = compiler(None, clamp, source)
        except Exception as e:
            logger.error("Failed to compile %s: %s", full_name, e)
            failures += 1
            continue

        report = build_report(source, result, compiler.profile, clamp)
        write_outputs(
            report, result, args.out_dir,
            report_path=args.out_dir / "_reports" / f"{full_name}.json",
        )
        logger.info("%s: %d file(s)", full_name, report.n_files)

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
