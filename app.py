"""Unified entrypoint for CLI and HTTP responder usage."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from atlas_recon.main import main as cli_main
from atlas_recon.session import ReconstructionSession
from atlas_recon.ui.app import create_app


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Atlas sprite reconstruction launcher")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Serve sprites over HTTP")
    serve_parser.add_argument("--manifest", type=Path, required=True, help="Path to the atlas manifest JSON")
    serve_parser.add_argument("--source-dir", type=Path, help="Directory holding the atlas images")
    serve_parser.add_argument("--format", dest="output_format", default="png", help="Default output format")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Server host")
    serve_parser.add_argument("--port", type=int, default=5000, help="Server port")
    serve_parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")

    cli_parser = subparsers.add_parser("cli", help="Run the export CLI")
    cli_parser.add_argument("cli_args", nargs=argparse.REMAINDER, help="Arguments passed to the CLI")

    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    if args.command == "serve":
        logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
        with ReconstructionSession(
            args.manifest, source_dir=args.source_dir, fmt=args.output_format
        ) as session:
            app = create_app(session)
            app.run(host=args.host, port=args.port, debug=bool(args.debug))
        return

    if args.command == "cli":
        sys.exit(cli_main(args.cli_args))

    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
