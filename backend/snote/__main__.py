from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from snote.config import CONFIG_FILE_ENV, ConfigError, load_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="snote", description="Self-destructing notes API server")
    parser.add_argument("--host", default=None, help="bind host (default: $HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="API server port (default: $PORT or 4000)")
    parser.add_argument("--config-file", default=None, help="path to a YAML config file")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(
            config_file=args.config_file,
            overrides={"host": args.host, "port": args.port},
        )
    except ConfigError as exc:
        parser.error(str(exc))

    if args.config_file:
        # the app module loads its own settings on import
        os.environ[CONFIG_FILE_ENV] = str(Path(args.config_file).resolve())

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Starting server on %s:%d", settings.host, settings.port)
    uvicorn.run(
        "snote.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
