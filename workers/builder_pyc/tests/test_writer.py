"""
Tests for builder_pyc.io.writer — materialising results and the report.
"""
import json
import os
import stat

import pytest

from builder_pyc.core.fileref import InMemFileReference, to_unix_ns
from builder_pyc.io.writer import REPORT_NAME, write_outputs
from builder_pyc.policy.profile import Profile
from builder_pyc.runner import build_report, external_compiler, run_compile

from conftest import CLAMP_TIME, make_source


class TestWriteOutputs:

    def test_layout_and_report(self, profile, fake_cmdline, source, tmp_path):
        out = tmp_path / "out"
        compiler = external_compiler(*fake_cmdline("ok"), profile=profile)
        report, result = run_compile(
            source, compiler=compiler, clamp_time=CLAMP_TIME, output_dir=out,
        )

        pyc = out / "pkg" / "__pycache__" / "mod.fake.pyc"
        assert pyc.is_file()
        with result["pkg/__pycache__/mod.fake.pyc"].open() as fh:
            assert pyc.read_bytes() == fh.read()
        assert os.stat(pyc).st_mtime_ns == to_unix_ns(CLAMP_TIME)

        data = json.loads((out / REPORT_NAME).read_text())
        assert data["package_name"] == "builder_pyc"
        assert data["clamp_epoch"] == 1640995200
        assert [e["full_name"] for e in data["entries"]] == [
            "pkg/__pycache__",
            "pkg/__pycache__/mod.fake.pyc",
        ]

    def test_mode_preserved(self, tmp_path):
        ref = InMemFileReference(
            full_name="pkg/a.pyc", content=b"x", mode=stat.S_IFREG | 0o640,
        )
        result = {"pkg/a.pyc": ref}
        report = build_report(make_source(), result, Profile.v1())
        write_outputs(report, result, tmp_path)

        assert stat.S_IMODE(os.stat(tmp_path / "pkg" / "a.pyc").st_mode) == 0o640

    def test_report_path_override(self, tmp_path):
        result = {"a.pyc": InMemFileReference(full_name="a.pyc", content=b"x")}
        report = build_report(make_source("a.py"), result, Profile.v1())
        report_path = tmp_path / "reports" / "a.py.json"
        write_outputs(report, result, tmp_path / "out", report_path=report_path)

        assert report_path.is_file()
        assert not (tmp_path / "out" / REPORT_NAME).exists()

    @pytest.mark.parametrize("bad", ["../escape.pyc", "/etc/escape.pyc"])
    def test_escaping_names_rejected(self, tmp_path, bad):
        result = {bad: InMemFileReference(full_name=bad, content=b"x")}
        report = build_report(make_source(), result, Profile.v1())
        with pytest.raises(ValueError, match="outside output dir"):
            write_outputs(report, result, tmp_path / "out")
