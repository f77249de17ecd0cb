"""
Main CLI entry point.
"""

import functools
import logging
from contextlib import contextmanager
from pathlib import Path

import click

from grammarextractor.config import build_version

__version__ = build_version()

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def common_options(func):
    """Add --config and --verbose to a command and set up logging."""
    @click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
                  help="TOML config file (default: $GRAMMAREXTRACTOR_CONFIG)")
    @click.option("-v", "--verbose", is_flag=True, help="Verbose output")
    @functools.wraps(func)
    def wrapper(*args, config_path, verbose, **kwargs):
        from grammarextractor.config import ToolConfig

        _setup_logging(verbose)
        with user_errors():
            config = ToolConfig.load(config_path)
            return func(*args, config=config, **kwargs)
    return wrapper


@contextmanager
def user_errors():
    """Turn library errors into one-line CLI errors."""
    from grammarextractor.drivers import ToolError
    from grammarextractor.grammar import GrammarError

    try:
        yield
    except (GrammarError, ToolError, OSError, ValueError) as e:
        raise click.ClickException(str(e)) from e


def _tools(config):
    from grammarextractor.drivers import RePairTools

    if config.uses_external_tools:
        logger.debug(f"Using external tools: {config.encoder}, {config.decoder}")
        return RePairTools(config.repair_tools())
    return None


def _load_grammar(path: Path, use_cache: bool):
    from grammarextractor.corpus import GrammarCache
    from grammarextractor.grammar import parse_file

    if use_cache:
        return GrammarCache(path).grammar()
    return parse_file(path)


@click.group()
@click.version_option(version=__version__)
def main():
    """grammarextractor: RePair grammar compression, extraction and recompression."""
    pass


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Output .rp file (default: <input>.rp)")
@click.option("--grammar-out", type=click.Path(dir_okay=False, path_type=Path),
              help="Also write the human-readable grammar")
@click.option("--max-rounds", type=int, help="Cap on pair replacements (built-in encoder)")
@common_options
def compress(input_file, output, grammar_out, max_rounds, config):
    """Compress a file into a binary .rp grammar."""
    from grammarextractor.codec import decode_file, encode_file
    from grammarextractor.core import compress_file
    from grammarextractor.grammar import write_grammar

    tools = _tools(config)
    if tools is not None:
        rp_path = tools.encode(input_file)
        if output is not None and output != rp_path:
            rp_path = rp_path.replace(output)
    else:
        grammar = compress_file(input_file, max_rounds=max_rounds)
        rp_path = encode_file(grammar, output or input_file.with_name(input_file.name + ".rp"))

    logger.info(f"Input file translated successfully. The resulting binary file is saved as: {rp_path}")

    if grammar_out is not None:
        write_grammar(decode_file(rp_path), grammar_out)
        logger.info(f"Grammar saved to {grammar_out}")


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Grammar output (default: input_translated.txt in the workdir)")
@common_options
def translate(input_file, output, config):
    """Translate a binary .rp file into the human-readable grammar notation."""
    from grammarextractor.codec import decode_file
    from grammarextractor.grammar import write_grammar

    output = output or config.workdir / "input_translated.txt"
    output.parent.mkdir(parents=True, exist_ok=True)
    tools = _tools(config)
    if tools is not None:
        tools.decode(input_file, output)
    else:
        write_grammar(decode_file(input_file), output)
    logger.info(f"Binary file translated successfully. The result is saved under {output}")


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Text output (default: output.txt in the workdir)")
@common_options
def decompress(input_file, output, config):
    """Decompress a .rp file or a human-readable grammar back into text."""
    from grammarextractor.codec import decode_file
    from grammarextractor.grammar import decompress_bytes, parse_file

    if input_file.suffix == ".rp":
        tools = _tools(config)
        if tools is not None:
            translated = config.workdir / "input_translated.txt"
            translated.parent.mkdir(parents=True, exist_ok=True)
            tools.decode(input_file, translated)
            grammar = parse_file(translated)
        else:
            grammar = decode_file(input_file)
    else:
        grammar = parse_file(input_file)

    output = output or config.workdir / "output.txt"
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(decompress_bytes(grammar))
    logger.info(f"Decompression successful. Resulting text file is saved as {output}")


@main.command()
@click.argument("input_file", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--random", "random_length", type=click.IntRange(min=0),
              help="Roundtrip a random string of this length instead of a file")
@click.option("--seed", type=int, help="Random seed for reproducibility")
@click.option("--workdir", "-o", type=click.Path(file_okay=False, path_type=Path),
              help="Directory for intermediate files")
@common_options
def roundtrip(input_file, random_length, seed, workdir, config):
    """Compress, translate, parse and decompress, then compare with the input."""
    from grammarextractor.corpus import generate_random_string_to_file
    from grammarextractor.engine import compress_roundtrip

    if (input_file is None) == (random_length is None):
        raise click.UsageError("Give either INPUT_FILE or --random LENGTH")

    workdir = workdir or config.workdir
    workdir.mkdir(parents=True, exist_ok=True)
    if random_length is not None:
        input_file = generate_random_string_to_file(
            random_length, workdir / "test_input_random.txt",
            seed=seed, chunk_size=config.chunk_size,
        )

    report = compress_roundtrip(input_file, workdir, tools=_tools(config))
    click.echo(f"Input length: {report.input_length}")
    click.echo(f"Rules: {report.rule_count}, sequence length: {report.sequence_length}")
    click.echo(f".rp size: {report.rp_size} bytes")
    if not report.identical:
        raise click.ClickException(
            f"Test failed, input and output are not identical "
            f"(first difference at {report.first_difference})"
        )
    click.echo("Test successful. Input and output are identical")


@main.command()
@click.argument("grammar_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("start", type=int)
@click.argument("end", type=int)
@click.option("--output-dir", "-o", type=click.Path(file_okay=False, path_type=Path),
              help="Directory for extracted_grammar.txt and excerpt_output.txt")
@click.option("--cache/--no-cache", default=False, help="Use the parsed-grammar cache")
@common_options
def extract(grammar_file, start, end, output_dir, cache, config):
    """Extract the excerpt [START, END) of a grammar as a new grammar."""
    from grammarextractor.engine import extract_to_files

    grammar = _load_grammar(grammar_file, cache)
    report = extract_to_files(grammar, start, end, output_dir or config.workdir)
    click.echo(f"Excerpt rules: {report.excerpt.rule_count}, "
               f"sequence length: {len(report.excerpt.sequence)}, "
               f"text length: {len(report.text)}")


@main.command()
@click.argument("grammar_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--artificial", "-a", type=int, multiple=True,
              help="Rule id to treat as an artificial terminal (repeatable)")
@click.option("--rle", is_flag=True, help="Also print the run-length rule form")
@click.option("--cache/--no-cache", default=False, help="Use the parsed-grammar cache")
@common_options
def metadata(grammar_file, artificial, rle, cache, config):
    """Print per-rule metadata (vocc, length, blocks)."""
    from grammarextractor.corpus import GrammarCache
    from grammarextractor.grammar import CompressedGrammar, compute_all, format_metadata, parse_file

    if cache and not artificial:
        entry = GrammarCache(grammar_file).load()
        grammar, meta = entry.grammar, entry.metadata
    else:
        grammar = parse_file(grammar_file)
        meta = compute_all(grammar, artificial)

    click.echo(format_metadata(meta))
    if rle:
        click.echo(CompressedGrammar.from_grammar(grammar, artificial).render())


@main.command()
@click.argument("grammar_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--rounds", type=click.IntRange(min=0), help="Maximum number of recompression rounds")
@click.option("--start", type=int, help="Excerpt start (default: whole text)")
@click.option("--end", type=int, help="Excerpt end, exclusive (default: whole text)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the recompressed grammar here")
@common_options
def recompress(grammar_file, rounds, start, end, output, config):
    """Recompress a grammar (or an excerpt of it) and verify the text."""
    from grammarextractor.engine import recompression_roundtrip
    from grammarextractor.grammar import parse_file, write_grammar

    grammar = parse_file(grammar_file)
    report = recompression_roundtrip(grammar, start=start, end=end, max_rounds=rounds)
    click.echo(report.summary())

    if output is not None:
        write_grammar(report.after, output)
        logger.info(f"Recompressed grammar saved to {output}")
    if not report.identical:
        raise click.ClickException("Recompression roundtrip failed. Text changed.")


@main.command()
@click.argument("length", type=click.IntRange(min=0))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Output file (default: test_input_random.txt in the workdir)")
@click.option("--seed", type=int, help="Random seed for reproducibility")
@common_options
def generate(length, output, seed, config):
    """Generate a random [a-zA-Z0-9] string for testing."""
    from grammarextractor.corpus import generate_random_string_to_file

    output = output or config.workdir / "test_input_random.txt"
    output.parent.mkdir(parents=True, exist_ok=True)
    generate_random_string_to_file(length, output, seed=seed, chunk_size=config.chunk_size)


if __name__ == "__main__":
    main()
