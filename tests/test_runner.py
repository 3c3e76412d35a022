"""Tests for running external tools."""

import logging
import sys

import pytest

from aie_packager.exceptions import ProgramNotFoundError, ToolFailedError
from aie_packager.tools import run_tool
from conftest import write_script


@pytest.fixture
def script(tmp_path):
    def _script(body: str, name: str = "tool"):
        return write_script(tmp_path / "bin" / name, f"#!{sys.executable}\nimport os, sys\n{body}\n")

    return _script


class TestRunTool:
    def test_missing_program_is_not_spawned(self, tmp_path):
        missing = tmp_path / "nope"
        with pytest.raises(ProgramNotFoundError) as exc_info:
            run_tool(missing, ["-x"])
        assert str(exc_info.value) == f"Program {missing} does not exist"

    def test_captures_stdout_and_stderr(self, script):
        tool = script('print("to stdout")\nprint("to stderr", file=sys.stderr)')
        result = run_tool(tool, [])
        assert result.returncode == 0
        assert "to stdout" in result.output
        assert "to stderr" in result.output

    def test_passes_arguments(self, script):
        tool = script('print(" ".join(sys.argv[1:]))')
        result = run_tool(tool, ["-c", "in.ll", "-o", "out.o"])
        assert result.output.strip() == "-c in.ll -o out.o"
        assert result.args == ["-c", "in.ll", "-o", "out.o"]

    def test_nonzero_exit_raises(self, script):
        tool = script('print("boom")\nsys.exit(7)')
        with pytest.raises(ToolFailedError) as exc_info:
            run_tool(tool, [])
        err = exc_info.value
        assert err.returncode == 7
        assert "boom" in err.output
        assert str(tool) in str(err)

    def test_undecodable_output_on_failure(self, script):
        tool = script(r'sys.stdout.buffer.write(b"\xff\xfe warning: caf\xe9\n")' + "\nsys.exit(3)")
        with pytest.raises(ToolFailedError) as exc_info:
            run_tool(tool, [])
        assert exc_info.value.returncode == 3
        assert "warning: caf\ufffd" in exc_info.value.output

    def test_undecodable_output_on_success(self, script):
        tool = script(r'sys.stdout.buffer.write(b"ok \xe9\n")')
        assert run_tool(tool, []).output == "ok \ufffd\n"

    def test_env_replaces_child_environment(self, script, monkeypatch):
        monkeypatch.setenv("PARENT_ONLY", "1")
        tool = script('print(os.environ.get("CHILD_VAR"), os.environ.get("PARENT_ONLY"))')
        result = run_tool(tool, [], env={"CHILD_VAR": "set"})
        assert result.output.strip() == "set None"

    def test_inherits_environment_without_override(self, script, monkeypatch):
        monkeypatch.setenv("PARENT_ONLY", "1")
        tool = script('print(os.environ.get("PARENT_ONLY"))')
        assert run_tool(tool, []).output.strip() == "1"

    def test_verbose_logs_command_and_output(self, script, caplog):
        tool = script('print("chatty")')
        with caplog.at_level(logging.INFO, logger="aie_packager.tools.runner"):
            run_tool(tool, ["--flag"], verbose=True)
        text = caplog.text
        assert "--flag" in text
        assert "Succeeded" in text
        assert "chatty" in text

    def test_quiet_by_default(self, script, caplog):
        tool = script('print("chatty")')
        with caplog.at_level(logging.INFO, logger="aie_packager.tools.runner"):
            run_tool(tool, [])
        assert "chatty" not in caplog.text

    def test_to_dict(self, script):
        tool = script("pass")
        data = run_tool(tool, ["a"]).to_dict()
        assert data["program"] == str(tool)
        assert data["args"] == ["a"]
        assert data["returncode"] == 0
