"""
CLI entry point for swipc.

Usage:
    python3 -m swipc ipcdefs/twili.id ipcdefs/sm.id
    python3 -m swipc ipcdefs/*.id --config swipc.yaml
    python3 -m swipc ipcdefs/twili.id --format --outdir formatted/
"""

import argparse
import os
import sys

from . import compile_idl
from .config import MAX_NESTING_LIMIT, ConfigError, Options, parse_config
from .diagnostics import CompileError, render
from .model import ManagedPort
from .printer import format_document
from .types import service_id


def _summary(path, doc) -> str:
    lines = [f"  ok {path}: {len(doc.interfaces)} interfaces, "
             f"{len(doc.types)} types"]
    for iface in doc.interfaces:
        for entry in iface.service_names or ():
            if any(isinstance(d, ManagedPort) for d in entry.decorators):
                lines.append(f"    {iface.name} is {entry.name} (managed port)")
                continue
            try:
                sid = f"serviceId=0x{service_id(entry.name):016x}"
            except ValueError:
                sid = "too long for a serviceId"
            lines.append(f"    {iface.name} is {entry.name} ({sid})")
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="SwIPC IDL checker and formatter")
    parser.add_argument("idl", nargs="+", help="Input .id files")
    parser.add_argument("--config", help="YAML options file")
    parser.add_argument("--max-nesting", type=int,
                        help="Maximum type nesting depth (overrides --config)")
    parser.add_argument("--format", action="store_true",
                        help="Print canonical IDL for each valid file")
    parser.add_argument("--outdir",
                        help="With --format, write files here instead of stdout")
    args = parser.parse_args(argv)

    options = Options()
    try:
        if args.config:
            with open(args.config) as f:
                options = parse_config(f.read())
        if args.max_nesting is not None and not 1 <= args.max_nesting <= MAX_NESTING_LIMIT:
            raise ConfigError(
                f"--max-nesting must be between 1 and {MAX_NESTING_LIMIT}")
    except (OSError, ConfigError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    options = options.override(max_nesting=args.max_nesting)

    failed = 0
    for path in args.idl:
        try:
            with open(path) as f:
                text = f.read()
        except OSError as e:
            print(f"error: {e}", file=sys.stderr)
            failed += 1
            continue

        try:
            doc = compile_idl(text, source=path, options=options)
        except CompileError as e:
            for d in e.diagnostics:
                print(render(d, text), file=sys.stderr)
            failed += 1
            continue

        if not args.format:
            print(_summary(path, doc))
        elif args.outdir:
            os.makedirs(args.outdir, exist_ok=True)
            out = os.path.join(args.outdir, os.path.basename(path))
            with open(out, "w") as f:
                f.write(format_document(doc))
            print(f"  wrote {out}")
        else:
            sys.stdout.write(format_document(doc))

    if failed:
        print(f"\n{failed} of {len(args.idl)} files had errors", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
