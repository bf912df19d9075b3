"""Run the command line tool with ``python -m pyneopdf``."""

from .cli import main as cli_main


def main() -> None:
    """Entry point for ``python -m pyneopdf``."""
    raise SystemExit(cli_main())


if __name__ == "__main__":
    main()
