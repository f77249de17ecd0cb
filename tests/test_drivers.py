"""
Tests for external tool drivers and tool configuration.
"""

import stat
import sys
from dataclasses import fields

import pytest

from grammarextractor.config import CONFIG_ENV, ToolConfig, build_version
from grammarextractor.drivers import (
    ExecutionResult,
    RePairTools,
    RePairToolsConfig,
    ResultType,
    SubprocessDriver,
    SubprocessDriverConfig,
    ToolError,
)

# Fake tools: the encoder copies its input to <input>.rp, the decoder
# writes a fixed grammar for "abab".
FAKE_ENCODER = """\
import shutil, sys
shutil.copy(sys.argv[1], sys.argv[1] + ".rp")
"""
FAKE_DECODER = """\
import sys
with open(sys.argv[2], "w") as f:
    f.write("R257:97,98\\nSEQ:257,257\\n")
"""
FAILING_TOOL = """\
import sys
print("boom", file=sys.stderr)
sys.exit(2)
"""


def make_tool(tmp_path, name, source):
    path = tmp_path / name
    path.write_text(f"#!{sys.executable}\n{source}")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return path


def python_driver(code, **kwargs):
    return SubprocessDriver(SubprocessDriverConfig(command=[sys.executable, "-c", code], **kwargs))


class TestSubprocessDriver:
    """Tests for SubprocessDriver."""

    def test_pass(self):
        result = python_driver("print('hello')").execute([])
        assert result.result_type == ResultType.PASS
        assert result.is_pass
        assert result.stdout.strip() == "hello"
        assert result.describe().endswith("succeeded")

    def test_args_appended(self):
        result = python_driver("import sys; print(sys.argv[1:])").execute(["x", 3])
        assert result.stdout.strip() == "['x', '3']"

    def test_fail(self):
        result = python_driver("import sys; sys.exit(3)").execute([])
        assert result.result_type == ResultType.FAIL
        assert result.return_code == 3
        assert "failed with exit code 3" in result.describe()

    def test_custom_pass_codes(self):
        result = python_driver("import sys; sys.exit(3)", pass_codes={0, 3}).execute([])
        assert result.is_pass

    def test_timeout(self):
        result = python_driver("import time; time.sleep(10)", timeout=0.5).execute([])
        assert result.result_type == ResultType.TIMEOUT
        assert "timed out" in result.describe()

    def test_missing_program(self, tmp_path):
        driver = SubprocessDriver(SubprocessDriverConfig(command=[str(tmp_path / "does-not-exist")]))
        result = driver.execute([])
        assert result.result_type == ResultType.ERROR
        assert "could not be run" in result.describe()

    def test_config_fields(self):
        # Commands run in the caller's directory and environment
        names = [f.name for f in fields(SubprocessDriverConfig)]
        assert names == ["command", "timeout", "pass_codes"]


class TestRePairTools:
    """Tests for RePairTools."""

    def test_encode_and_decode(self, tmp_path):
        tools = RePairTools(RePairToolsConfig(
            encoder=make_tool(tmp_path, "encoder", FAKE_ENCODER),
            decoder=make_tool(tmp_path, "decoder", FAKE_DECODER),
        ))
        source = tmp_path / "input.txt"
        source.write_text("abab")

        rp_path = tools.encode(source)
        assert rp_path == tmp_path / "input.txt.rp"
        out = tools.decode(rp_path, tmp_path / "translated.txt")
        assert out.read_text().startswith("R257:97,98")

    def test_failure_raises(self, tmp_path):
        tools = RePairTools(RePairToolsConfig(
            encoder=make_tool(tmp_path, "encoder", FAILING_TOOL),
            decoder=make_tool(tmp_path, "decoder", FAILING_TOOL),
        ))
        source = tmp_path / "input.txt"
        source.write_text("abab")
        with pytest.raises(ToolError, match="exit code 2") as excinfo:
            tools.encode(source)
        assert isinstance(excinfo.value.result, ExecutionResult)
        assert excinfo.value.result.return_code == 2

    def test_missing_output_raises(self, tmp_path):
        tools = RePairTools(RePairToolsConfig(
            encoder=make_tool(tmp_path, "encoder", "pass\n"),
            decoder=make_tool(tmp_path, "decoder", "pass\n"),
        ))
        with pytest.raises(ToolError, match="did not produce"):
            tools.decode(tmp_path / "x.rp", tmp_path / "out.txt")

    def test_from_config_file(self, tmp_path):
        make_tool(tmp_path, "encoder", FAKE_ENCODER)
        make_tool(tmp_path, "decoder", FAKE_DECODER)
        config = tmp_path / "tools.toml"
        config.write_text('encoder = "encoder"\ndecoder = "decoder"\n')
        tools = RePairTools.from_config_file(config)
        assert tools.config.encoder == str(tmp_path / "encoder")

    def test_from_config_file_without_tools(self, tmp_path):
        config = tmp_path / "tools.toml"
        config.write_text("timeout = 5\n")
        with pytest.raises(ToolError, match="No encoder/decoder"):
            RePairTools.from_config_file(config)


class TestToolConfig:
    """Tests for ToolConfig and build_version."""

    def test_build_version_local(self, monkeypatch):
        monkeypatch.delenv("TIMESTAMP", raising=False)
        assert build_version() == "1.0-local-SNAPSHOT"

    def test_build_version_timestamp(self, monkeypatch):
        monkeypatch.setenv("TIMESTAMP", "20240101120000")
        assert build_version() == "1.0-20240101120000-SNAPSHOT"
        assert build_version("abc") == "1.0-abc-SNAPSHOT"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV, raising=False)
        config = ToolConfig.load()
        assert config == ToolConfig()
        assert not config.uses_external_tools

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'encoder = "/opt/repair/encoder"\n'
            'decoder = "bin/decoder"\n'
            "timeout = 12\n"
            'workdir = "out"\n'
            "chunk_size = 10\n"
        )
        config = ToolConfig.from_file(path)
        assert config.encoder == "/opt/repair/encoder"
        assert config.decoder == str(tmp_path / "bin" / "decoder")
        assert config.timeout == 12.0
        assert config.workdir == tmp_path / "out"
        assert config.chunk_size == 10
        assert config.uses_external_tools
        assert config.repair_tools().timeout == 12.0

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "config.toml"
        path.write_text("chunk_size = 5\n")
        monkeypatch.setenv(CONFIG_ENV, str(path))
        assert ToolConfig.load().chunk_size == 5

    def test_unknown_keys_warn(self, tmp_path, caplog):
        path = tmp_path / "config.toml"
        path.write_text("colour = 'blue'\n")
        ToolConfig.from_file(path)
        assert "unknown config keys" in caplog.text

    @pytest.mark.parametrize("content", ["timeout = 0\n", "chunk_size = -1\n"])
    def test_invalid_values(self, tmp_path, content):
        path = tmp_path / "config.toml"
        path.write_text(content)
        with pytest.raises(ValueError, match="must be positive"):
            ToolConfig.from_file(path)
