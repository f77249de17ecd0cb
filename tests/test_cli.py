"""
Tests for the command-line interface.
"""

import stat
import sys

import pytest
from click.testing import CliRunner

from grammarextractor.cli import render
from grammarextractor.cli.main import main
from grammarextractor.config import CONFIG_ENV
from grammarextractor.grammar import decompress, parse_file

from conftest import BINARY_GRAMMAR_EXPANSION

FAKE_DECODER = """\
import sys
with open(sys.argv[2], "w") as f:
    f.write("R257:97,98\\nSEQ:257,257\\n")
"""


def make_tool(directory, name, source):
    path = directory / name
    path.write_text(f"#!{sys.executable}\n{source}")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return path


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.chdir(tmp_path)
    return CliRunner()


class TestCli:
    """Tests for the grammarextractor command group."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "1.0-" in result.output
        assert "SNAPSHOT" in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("compress", "translate", "decompress", "roundtrip",
                        "extract", "metadata", "recompress", "generate"):
            assert command in result.output

    def test_compress_translate_decompress(self, runner, tmp_path):
        source = tmp_path / "input.txt"
        source.write_bytes(b"abracadabra abracadabra\n")

        result = runner.invoke(main, [
            "compress", str(source), "-o", str(tmp_path / "input.rp"),
            "--grammar-out", str(tmp_path / "grammar.txt"),
        ])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "input.rp").exists()
        assert decompress(parse_file(tmp_path / "grammar.txt")) == "abracadabra abracadabra\n"

        result = runner.invoke(main, [
            "translate", str(tmp_path / "input.rp"), "-o", str(tmp_path / "translated.txt"),
        ])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "translated.txt").read_text() == (tmp_path / "grammar.txt").read_text()

        result = runner.invoke(main, [
            "decompress", str(tmp_path / "input.rp"), "-o", str(tmp_path / "output.txt"),
        ])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "output.txt").read_bytes() == source.read_bytes()

    def test_compress_default_output(self, runner, tmp_path):
        source = tmp_path / "input.txt"
        source.write_bytes(b"xyxyxy")
        result = runner.invoke(main, ["compress", str(source)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "input.txt.rp").exists()

    def test_decompress_text_grammar(self, runner, tmp_path, grammar_file):
        result = runner.invoke(main, ["decompress", str(grammar_file)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "output.txt").read_text() == BINARY_GRAMMAR_EXPANSION

    def test_decompress_malformed_grammar(self, runner, tmp_path):
        bad = tmp_path / "bad.txt"
        bad.write_text("R300:97,301\nSEQ:300\n")
        result = runner.invoke(main, ["decompress", str(bad)])
        assert result.exit_code == 1
        assert "undefined rule R301" in result.output

    def test_decompress_cyclic_grammar(self, runner, tmp_path):
        cyclic = tmp_path / "cyclic.txt"
        cyclic.write_text("R300:301,97\nR301:300,98\nSEQ:300\n")
        for command in ("decompress", "metadata"):
            result = runner.invoke(main, [command, str(cyclic)])
            assert result.exit_code == 1
            assert "cycle" in result.output

    def test_decompress_external_tools_creates_workdir(self, runner, tmp_path):
        make_tool(tmp_path, "encoder", "pass\n")
        make_tool(tmp_path, "decoder", FAKE_DECODER)
        config = tmp_path / "config.toml"
        config.write_text('encoder = "encoder"\ndecoder = "decoder"\nworkdir = "work/nested"\n')
        rp_file = tmp_path / "input.rp"
        rp_file.write_bytes(b"")

        result = runner.invoke(main, ["decompress", str(rp_file), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "work" / "nested" / "input_translated.txt").exists()
        assert (tmp_path / "work" / "nested" / "output.txt").read_text() == "abab"

    def test_roundtrip_random(self, runner, tmp_path):
        result = runner.invoke(main, [
            "roundtrip", "--random", "300", "--seed", "1", "-o", str(tmp_path / "work"),
        ])
        assert result.exit_code == 0, result.output
        assert "Test successful. Input and output are identical" in result.output
        assert (tmp_path / "work" / "test_input_random.txt").exists()

    def test_roundtrip_file(self, runner, tmp_path):
        source = tmp_path / "input.txt"
        source.write_text("hello hello hello\n")
        result = runner.invoke(main, ["roundtrip", str(source), "-o", str(tmp_path / "work")])
        assert result.exit_code == 0, result.output
        assert "Test successful" in result.output

    @pytest.mark.parametrize("args", [[], ["input.txt", "--random", "10"]])
    def test_roundtrip_needs_one_input(self, runner, tmp_path, args):
        (tmp_path / "input.txt").write_text("abc")
        result = runner.invoke(main, ["roundtrip", *args])
        assert result.exit_code == 2
        assert "either INPUT_FILE or --random" in result.output

    def test_extract(self, runner, tmp_path, grammar_file):
        result = runner.invoke(main, ["extract", str(grammar_file), "2", "7", "-o", str(tmp_path / "out")])
        assert result.exit_code == 0, result.output
        assert "text length: 5" in result.output
        assert (tmp_path / "out" / "excerpt_output.txt").read_text() == "abcab"
        assert decompress(parse_file(tmp_path / "out" / "extracted_grammar.txt")) == "abcab"

    def test_extract_with_cache(self, runner, tmp_path, grammar_file):
        result = runner.invoke(main, ["extract", str(grammar_file), "0", "5", "--cache"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "grammar.txt.cache").exists()
        assert (tmp_path / "excerpt_output.txt").read_text() == "ababc"

    @pytest.mark.parametrize("start, end, message", [
        ("0", "100", "valid range within the uncompressed sequence"),
        ("7", "3", "Start must be less than or equal to end"),
    ])
    def test_extract_invalid_range(self, runner, grammar_file, start, end, message):
        result = runner.invoke(main, ["extract", str(grammar_file), start, end])
        assert result.exit_code == 1
        assert message in result.output

    def test_metadata(self, runner, grammar_file):
        result = runner.invoke(main, ["metadata", str(grammar_file), "--rle"])
        assert result.exit_code == 0, result.output
        assert "R257: vocc=5, length=2" in result.output
        assert "Total size |S|:" in result.output

    def test_metadata_artificial(self, runner, grammar_file):
        result = runner.invoke(main, ["metadata", str(grammar_file), "-a", "257"])
        assert result.exit_code == 0, result.output
        assert "R258: vocc=2, length=2" in result.output

    def test_metadata_cache(self, runner, tmp_path, grammar_file):
        result = runner.invoke(main, ["metadata", str(grammar_file), "--cache"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "grammar.txt.cache").exists()
        assert "R259: vocc=1, length=5" in result.output

    def test_recompress(self, runner, tmp_path, grammar_file):
        out = tmp_path / "recompressed.txt"
        result = runner.invoke(main, ["recompress", str(grammar_file), "--rounds", "5", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "Recompression roundtrip successful" in result.output
        assert decompress(parse_file(out)) == BINARY_GRAMMAR_EXPANSION

    def test_recompress_excerpt(self, runner, grammar_file):
        result = runner.invoke(main, ["recompress", str(grammar_file), "--start", "2", "--end", "7"])
        assert result.exit_code == 0, result.output
        assert "Number of rules before recompression: 1" in result.output

    def test_generate(self, runner, tmp_path):
        out = tmp_path / "random.txt"
        result = runner.invoke(main, ["generate", "64", "-o", str(out), "--seed", "5"])
        assert result.exit_code == 0, result.output
        assert len(out.read_text()) == 64

    def test_config_file(self, runner, tmp_path):
        config = tmp_path / "config.toml"
        config.write_text('workdir = "work"\n')
        result = runner.invoke(main, ["generate", "10", "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert len((tmp_path / "work" / "test_input_random.txt").read_text()) == 10

    def test_bad_config_file(self, runner, tmp_path):
        config = tmp_path / "config.toml"
        config.write_text("timeout = -5\n")
        result = runner.invoke(main, ["generate", "10", "--config", str(config)])
        assert result.exit_code == 1
        assert "timeout must be positive" in result.output


class TestRenderCli:
    """Tests for grammarextractor-render."""

    def test_render(self, runner, grammar_file):
        result = runner.invoke(render.main, [str(grammar_file), "--text"])
        assert result.exit_code == 0, result.output
        assert "# grammar.txt" in result.output
        assert "=== Grammar ===" in result.output
        assert BINARY_GRAMMAR_EXPANSION in result.output

    def test_render_rle(self, runner, grammar_file):
        result = runner.invoke(render.main, [str(grammar_file), "--rle"])
        assert result.exit_code == 0, result.output
        assert "=== Compressed Grammar ===" in result.output

    def test_render_malformed(self, runner, tmp_path):
        bad = tmp_path / "bad.txt"
        bad.write_text("nonsense\n")
        result = runner.invoke(render.main, [str(bad)])
        assert result.exit_code == 1
        assert "unrecognized line" in result.output
