"""Entry point for `python -m devsecguard`."""

from __future__ import annotations

from devsecguard import cli


def main(argv: list[str] | None = None) -> int:
    return cli.main(argv)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
