"""
braketctl module entry point.

Usage
-----
$ python -m braketctl <command> [options]

Forwards to the Typer-based CLI defined in `braketctl/cli/cli.py`.
"""

from braketctl.cli.cli import app as _cli_app


def main() -> None:
    """Run the braketctl CLI."""
    _cli_app()


if __name__ == "__main__":
    main()
