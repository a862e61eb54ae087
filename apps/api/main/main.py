"""
CLI entrypoint for running the SecYourFlow identity API.
"""

from __future__ import annotations

import argparse

import uvicorn


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="secyourflow-api")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument("--log-level", default="info", help="Uvicorn log level")
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Run API process using uvicorn.

    Args:
        argv: Optional command arguments without program name.
    Returns:
        int: Process exit code.
    Assumptions:
        Import path `apps.api.main.app:app` is available in PYTHONPATH.
    Raises:
        None.
    Side Effects:
        Starts HTTP server loop.
    """
    args = _build_parser().parse_args(argv)
    uvicorn.run(
        "apps.api.main.app:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
