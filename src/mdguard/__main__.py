"""Entry point for `python -m mdguard` and `mdguard` CLI."""

from mdguard.cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
