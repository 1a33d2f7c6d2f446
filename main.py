"""
Compatibility entrypoint.

Prefer running:
  - `ttml-lyrics parse song.ttml`
or:
  - `python -m ttml_lyrics.cli`
"""

from ttml_lyrics.cli import main as cli_main


def cli() -> None:
    cli_main()


if __name__ == "__main__":
    cli()
