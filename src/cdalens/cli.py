#!/usr/bin/env python3
"""CLI entry point for cdalens package.

Usage:
    cdalens extract <file.xml> [--config cdalens.toml]
    cdalens analyze <file.xml> [--config cdalens.toml]
    cdalens transform <file.xml>
    cdalens validate <file.xml>
    cdalens stats <path> [<path> ...] [--top N] [--quiet]
    cdalens init-config [--output cdalens.toml]
    cdalens serve-mcp [--config cdalens.toml]
"""

import argparse
import json
import sys

DEFAULT_CONFIG = "cdalens.toml"


def main():
    parser = argparse.ArgumentParser(
        prog="cdalens",
        description="Extract, analyze, and summarize HL7 CDA clinical documents.",
    )
    sub = parser.add_subparsers(dest="command")

    # --- single-document commands ---
    for name, help_text in (
        ("extract", "Extract the typed document model as JSON"),
        ("analyze", "Run semantic analysis and quality scoring"),
        ("transform", "Transform to the flattened CDA-to-JSON view"),
        ("validate", "Check required CDA structure"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("file", help="CDA XML file")
        p.add_argument("--config", default=DEFAULT_CONFIG, help="Path to cdalens.toml config file")

    # --- stats ---
    stats_parser = sub.add_parser("stats", help="Aggregate statistics over many documents")
    stats_parser.add_argument("paths", nargs="+", help="CDA files or directories")
    stats_parser.add_argument("--config", default=DEFAULT_CONFIG, help="Path to cdalens.toml config file")
    stats_parser.add_argument("--top", type=int, default=None, help="Override top-N list length")
    stats_parser.add_argument("--quiet", action="store_true", help="Suppress per-document progress")
    stats_parser.add_argument("--documents", action="store_true",
                              help="Include per-document extractions in the output")

    # --- init-config ---
    config_parser = sub.add_parser("init-config", help="Write a default cdalens.toml")
    config_parser.add_argument("--output", default=DEFAULT_CONFIG, help="Config file output path")

    # --- serve-mcp ---
    mcp_parser = sub.add_parser("serve-mcp", help="Start MCP server exposing the CDA tools")
    mcp_parser.add_argument("--config", default=DEFAULT_CONFIG, help="Path to cdalens.toml config file")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "extract":
        _handle_extract(args)
    elif args.command == "analyze":
        _handle_analyze(args)
    elif args.command == "transform":
        _handle_transform(args)
    elif args.command == "validate":
        _handle_validate(args)
    elif args.command == "stats":
        _handle_stats(args)
    elif args.command == "init-config":
        _handle_init_config(args)
    elif args.command == "serve-mcp":
        _handle_serve_mcp(args)


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _load_document(args, config: dict):
    from cdalens.errors import CdaError
    from cdalens.sources.base import read_document
    from cdalens.sources.cda_document import parse_and_extract

    extraction = config["extraction"]
    try:
        return parse_and_extract(
            read_document(args.file),
            strict_numeric=extraction["strict_numeric"],
            recover=extraction["recover_xml"],
        )
    except OSError as e:
        _fail(f"cannot read {args.file}: {e}")
    except CdaError as e:
        _fail(f"{args.file}: {e.message}")


def _handle_extract(args):
    from cdalens.config import load_config
    from cdalens.models import to_json_dict

    config = load_config(args.config, quiet=True)
    _print_json(to_json_dict(_load_document(args, config)))


def _handle_analyze(args):
    from cdalens.analysis.semantic import analyze
    from cdalens.config import load_config
    from cdalens.models import to_json_dict

    config = load_config(args.config, quiet=True)
    doc = _load_document(args, config)
    analysis = analyze(
        doc,
        max_relationships=config["analysis"]["max_relationships"],
        max_samples=config["analysis"]["max_samples"],
    )
    _print_json(to_json_dict(analysis))


def _handle_transform(args):
    from cdalens.config import load_config
    from cdalens.export import transform_to_json

    config = load_config(args.config, quiet=True)
    _print_json(transform_to_json(_load_document(args, config)))


def _handle_validate(args):
    from cdalens.analysis.validation import is_valid, validate_tree
    from cdalens.core.cda import parse_doc
    from cdalens.errors import CdaError

    try:
        tree = parse_doc(args.file)
    except OSError as e:
        _fail(f"cannot read {args.file}: {e}")
    except CdaError as e:
        _fail(f"{args.file}: {e.message}")

    results = validate_tree(tree)
    for r in results:
        mark = "OK  " if r.valid else "FAIL"
        print(f"  [{mark}] {r.rule:<35} {r.message}")
    passed = sum(1 for r in results if r.valid)
    print(f"\n{passed}/{len(results)} checks passed")
    if not is_valid(results):
        sys.exit(1)


def _handle_stats(args):
    from cdalens.config import load_config, source_config
    from cdalens.models import to_json_dict
    from cdalens.sources.batch import process_batch

    config = load_config(args.config, quiet=True)
    top_n = args.top if args.top is not None else config["statistics"]["top_n"]
    result = process_batch(
        args.paths,
        config=source_config(config),
        top_n=top_n,
        verbose=not args.quiet,
    )

    output = {
        "statistics": to_json_dict(result.statistics),
        "errors": result.errors,
    }
    if args.documents:
        output["documents"] = to_json_dict(result.documents)
    _print_json(output)


def _handle_init_config(args):
    from cdalens.config import write_default_config

    path = write_default_config(config_path=args.output)
    print(f"Config generated at {path}")


def _handle_serve_mcp(args):
    import os

    os.environ["CDALENS_CONFIG"] = args.config

    from cdalens.mcp.server import mcp

    mcp.run()


if __name__ == "__main__":
    main()
