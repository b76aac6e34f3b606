"""Run the tnt-audio CLI with ``python -m tnt_audio``."""

from __future__ import annotations


def _entrypoint() -> int:
    from . import cli

    cli.main()
    return 0


if __name__ == "__main__":
    raise SystemExit(_entrypoint())
