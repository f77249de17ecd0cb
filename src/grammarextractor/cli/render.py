"""
Grammar rendering CLI.
"""

import click


@click.command()
@click.argument("grammar", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--rle", is_flag=True, help="Show rules in run-length form")
@click.option("--text/--no-text", default=False, help="Also print the decompressed text")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def main(grammar, rle, text, verbose):
    """Print grammar files in a human-readable form."""
    import logging
    from pathlib import Path

    from grammarextractor.cli.main import user_errors
    from grammarextractor.grammar import (
        CompressedGrammar,
        decompress,
        parse_file,
        render_grammar,
    )

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    logger = logging.getLogger(__name__)

    for path in (Path(g) for g in grammar):
        logger.debug(f"Rendering {path}")
        with user_errors():
            parsed = parse_file(path)
            click.echo(f"# {path.name}")
            if rle:
                click.echo(CompressedGrammar.from_grammar(parsed).render())
            else:
                click.echo(render_grammar(parsed))
            if text:
                click.echo(decompress(parsed))


if __name__ == "__main__":
    main()
