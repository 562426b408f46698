#!/usr/bin/env python3
"""CLI: Render the structuregram of one function in a Java or TypeScript file."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from structuregram import config
from structuregram.errors import MethodNotFoundError, UnsupportedLanguageError
from structuregram.source.document import SourceDocument
from structuregram.viewer.session import Session


def _write(session: Session, out: Path, scale: float) -> None:
    if out.suffix.lower() == ".png":
        session.export_png(out, scale=scale)
    else:
        out.write_text(session.export_svg(), encoding="utf-8")
    width, height = session.preferred_size()
    print(f"Wrote {out} ({width}x{height})")


def main() -> None:
    parser = argparse.ArgumentParser(description="Render a Nassi–Shneiderman diagram for a function")
    parser.add_argument("path", type=Path, help="Source file (.java, .ts, .tsx, .js, .jsx)")
    parser.add_argument(
        "--language",
        type=str,
        default=None,
        help="Override the language inferred from the file suffix",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List the functions and methods in the file, then exit",
    )
    parser.add_argument(
        "--method",
        type=str,
        default=None,
        help="Function or method name (default: the first one in the file)",
    )
    parser.add_argument(
        "--ordinal",
        type=int,
        default=0,
        help="Which overload of --method to draw, counting from 0",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output file; .png for raster, anything else for SVG (default: <method>.svg)",
    )
    parser.add_argument(
        "--theme",
        type=str,
        default=config.THEME,
        choices=["auto", "light", "dark"],
        help="Color theme",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Zoom factor for PNG output",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running and re-render whenever the file changes",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.path.is_file():
        print(f"Error: {args.path} is not a file.", file=sys.stderr)
        sys.exit(1)

    try:
        document = SourceDocument.from_path(args.path, args.language)
    except UnsupportedLanguageError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.list:
        methods = document.methods()
        if not methods:
            print("No functions found.")
        for m in methods:
            overload = f" #{m.ordinal}" if m.ordinal else ""
            print(f"  {m.line:5d}  {m.name}{overload}  ({m.kind})")
        return

    try:
        session = Session(document, args.method, args.ordinal, theme=args.theme)
    except MethodNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    out = args.out or Path(f"{session.method_name}.svg")
    _write(session, out, args.scale)

    if not args.watch:
        session.close()
        return

    session.controller.add_listener(lambda _diagram: _write(session, out, args.scale))
    print(f"Watching {args.path} (Ctrl-C to stop)")
    mtime = args.path.stat().st_mtime
    try:
        while True:
            time.sleep(0.5)
            current = args.path.stat().st_mtime
            if current != mtime:
                mtime = current
                document.set_text(args.path.read_text(encoding="utf-8", errors="replace"))
    except KeyboardInterrupt:
        pass
    finally:
        session.close()


if __name__ == "__main__":
    main()
