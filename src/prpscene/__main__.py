#!/usr/bin/env python3
"""prpscene CLI - Inspect scene property streams.

Usage:
    prpscene types.json props.prp --gms level.gms --buf level.buf   # Show scene tree
    prpscene types.json props.prp --gms level.gms --buf level.buf --values
    prpscene types.json props.prp --listing    # Reprint normalized listing
    prpscene types.json props.prp --lark       # Show Lark parse tree
    prpscene types.json --types                # List registered types
"""

import argparse
import logging
import pathlib
import sys

from lark import Token, Tree
from lark.exceptions import UnexpectedInput

import prpscene
from prpscene.logging_config import setup_logging


def prettylark(node, indent=0, show_positions=False):
    """Pretty-print a Lark parse tree.

    Shows tree structure with indentation and token values.
    """
    prefix = "  " * indent

    if isinstance(node, Token):
        pos = f" @{node.line}:{node.column}" if show_positions else ""
        print(f"{prefix}{node.type}: {node.value!r}{pos}")

    elif isinstance(node, Tree):
        pos = ""
        if show_positions and node.meta and not node.meta.empty:
            pos = f" @{node.meta.line}:{node.meta.column}"

        if len(node.children) == 0:
            print(f"{prefix}{node.data}(){pos}")
        elif len(node.children) == 1 and isinstance(node.children[0], Token):
            # Compact single-token nodes
            print(f"{prefix}{node.data}: {node.children[0].value!r}{pos}")
        else:
            print(f"{prefix}{node.data}:{pos}")
            for child in node.children:
                prettylark(child, indent + 1, show_positions)

    elif node is None:
        print(f"{prefix}<none>")


def prettyscene(obj, indent=0, show_values=False):
    """Pretty-print a loaded scene tree."""
    ind = "  " * indent
    props = obj.properties.type_name if obj.properties is not None else "?"
    print(f"{ind}{obj.name} <{props} 0x{obj.type_id:08X}> id={obj.instance_id}")
    if show_values and obj.properties is not None and obj.properties.fields:
        for name, value in obj.properties.fields.items():
            print(f"{ind}  .{name} = {value.to_python()!r}")
    for name, value in obj.controllers.items():
        line = f"{ind}  +{name}"
        if value.unexposed:
            line += f" ({len(value.unexposed)} unexposed)"
        print(line)
        if show_values:
            for field, item in value.fields.items():
                print(f"{ind}    .{field} = {item.to_python()!r}")
    for child in obj.children:
        prettyscene(child, indent + 1, show_values)


def show_types(registry):
    """List registered types with their hashes."""
    for type_ in registry.types():
        hashes = " ".join(f"0x{hash_:08X}" for hash_ in type_.hashes)
        short = f" ({type_.short_name})" if type_.short_name != type_.name else ""
        print(f"{type_.kind.name:<9} {type_.name}{short} {hashes}".rstrip())


def load_entities(gms_path, buf_path, max_depth):
    """Read the geometry entity table from GMS and buffer files."""
    gms = prpscene.BinaryReader(pathlib.Path(gms_path).read_bytes(), name=str(gms_path))
    buf = prpscene.BinaryReader(pathlib.Path(buf_path).read_bytes(), name=str(buf_path))
    return prpscene.read_geom_table(gms, buf, max_depth=max_depth)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="prpscene",
        description="Load Glacier scene objects from a property instruction listing")
    parser.add_argument("types",
        help="JSON file with type declarations and hashes")
    parser.add_argument("listing", nargs="?",
        help="Property instruction listing")
    parser.add_argument("--gms",
        help="Binary geometry entity table")
    parser.add_argument("--buf",
        help="Binary buffer holding entity names")
    parser.add_argument("--values", action="store_true",
        help="Show property and controller values in the tree")
    parser.add_argument("--listing", dest="show_listing", action="store_true",
        help="Reprint the parsed listing in normalized form")
    parser.add_argument("--lark", action="store_true",
        help="Show Lark parse tree of the listing")
    parser.add_argument("--pos", action="store_true",
        help="Show line:column positions with --lark")
    parser.add_argument("--types", dest="show_types", action="store_true",
        help="List registered types")
    parser.add_argument("--max-depth", type=int, default=None,
        help="Deepest object nesting accepted (default from PRPSCENE_MAX_DEPTH or 128)")
    parser.add_argument("-v", "--verbose", action="count", default=0,
        help="Log progress (-vv for debug output)")
    parser.add_argument("--log-file",
        help="Also write log output to this file")

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    setup_logging(level, args.log_file)

    try:
        registry = prpscene.load_types(args.types)
        if args.show_types:
            show_types(registry)
            return 0

        if args.listing is None:
            parser.error("A listing file is required unless --types is given")
        source = pathlib.Path(args.listing).read_text(encoding="utf-8")

        if args.lark:
            prettylark(prpscene.parse_tree(source), show_positions=args.pos)
            return 0

        instructions = prpscene.parse_listing(source)
        if args.show_listing:
            print(prpscene.format_listing(instructions), end="")
            return 0

        if not args.gms or not args.buf:
            parser.error("--gms and --buf are required to load the scene")
        entities = load_entities(args.gms, args.buf, args.max_depth)
        root = prpscene.load_scene(
            registry, entities, instructions, max_depth=args.max_depth)
        if root is None:
            print("Empty scene")
            return 0
        prettyscene(root, show_values=args.values)

    except prpscene.SceneError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (OSError, UnexpectedInput) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
