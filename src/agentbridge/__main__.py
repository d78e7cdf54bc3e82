"""CLI entry point for agentbridge."""

import sys


def main() -> int:
    """Main entry point for the agentbridge CLI."""
    from agentbridge.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
