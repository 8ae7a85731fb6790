#!/usr/bin/env python3
"""
CLI for the rumtpl template engine.

Usage:
    python -m rumtpl check FILE
    python -m rumtpl tokens FILE
    python -m rumtpl render FILE [-v NAME=VALUE ...] [--json FILE] [--root DIR] [-o FILE]
    python -m rumtpl methods

Examples:
    # Check that a template parses
    python -m rumtpl check views/index.html

    # Render with a couple of variables
    python -m rumtpl render views/index.html -v title=Welcome -v count=3

    # Render with a JSON context, resolving partials under views/
    python -m rumtpl render views/index.html --json context.json --root views
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence


def parse_param(param_str: str) -> tuple:
    """Parse a variable string like 'name=value' into (name, typed_value)."""
    if '=' not in param_str:
        raise ValueError(f"Invalid variable format: {param_str} (expected name=value)")

    name, value_str = param_str.split('=', 1)
    name = name.strip()
    value_str = value_str.strip()

    # Try to parse as int, float, bool, or string
    if value_str.lower() == 'true':
        return (name, True)
    elif value_str.lower() == 'false':
        return (name, False)

    try:
        return (name, int(value_str))
    except ValueError:
        pass

    try:
        return (name, float(value_str))
    except ValueError:
        pass

    # Strip quotes if present
    if (value_str.startswith('"') and value_str.endswith('"')) or \
       (value_str.startswith("'") and value_str.endswith("'")):
        value_str = value_str[1:-1]

    return (name, value_str)


def _read_source(path: Path, encoding: str) -> Optional[str]:
    if not path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return None
    try:
        return path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        return None


def cmd_check(args):
    """Check that a template parses."""
    from . import parse_source, EngineConfig, TemplateError

    config = EngineConfig.from_env()
    source_path = Path(args.file)
    source = _read_source(source_path, config.encoding)
    if source is None:
        return 1

    try:
        template = parse_source(source, str(source_path))
    except TemplateError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    print(f"OK: {source_path.name} - {len(template.nodes)} node(s), no errors")
    return 0


def cmd_tokens(args):
    """Dump the token stream of a template."""
    from . import tokenize, EngineConfig, TemplateError

    config = EngineConfig.from_env()
    source_path = Path(args.file)
    source = _read_source(source_path, config.encoding)
    if source is None:
        return 1

    try:
        tokens = tokenize(source, str(source_path))
    except TemplateError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    for token in tokens:
        loc = token.span.start
        print(f"{loc.line:>4}:{loc.column:<4} {token}")
    return 0


def cmd_render(args):
    """Render a template to stdout or a file."""
    from . import (
        Template, Collaborators, FileSystemLoader, EngineConfig, TemplateError,
    )

    config = EngineConfig.from_env()
    source_path = Path(args.file)
    if not source_path.is_file():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    context: Dict[str, Any] = {}
    if args.json:
        try:
            with open(args.json, encoding='utf-8') as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            print(f"Error: cannot read context {args.json}: {e}", file=sys.stderr)
            return 1
        if not isinstance(loaded, dict):
            print(f"Error: context {args.json} must hold a JSON object", file=sys.stderr)
            return 1
        context.update(loaded)

    for param_str in args.var or []:
        try:
            name, value = parse_param(param_str)
            context[name] = value
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    root = args.root or config.template_root or source_path.parent
    collaborators = Collaborators(loader=FileSystemLoader(root, encoding=config.encoding))

    try:
        template = Template.from_file(source_path, collaborators, config)
        output = template.render(context)
    except TemplateError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read {source_path}: {e}", file=sys.stderr)
        return 1

    if args.output:
        try:
            Path(args.output).write_text(output, encoding=config.encoding)
        except OSError as e:
            print(f"Error: cannot write {args.output}: {e}", file=sys.stderr)
            return 1
        print(f"Wrote {len(output)} characters to {args.output}")
    else:
        sys.stdout.write(output)
    return 0


def cmd_methods(args):
    """List the built-in methods of every value type."""
    from .runtime import ValueKind, get_method_registry

    registry = get_method_registry()
    for kind in ValueKind:
        names = registry.method_names(kind)
        if not names:
            print(f"{kind}: (no methods)")
            continue

        # Group aliases under the method they share
        primary: Dict[str, list] = {}
        for name in names:
            method = registry.get_method(kind, name)
            primary.setdefault(method.name, [])
            if name != method.name:
                primary[method.name].append(name)

        print(f"{kind}:")
        for name in sorted(primary):
            method = registry.get_method(kind, name)
            aliases = f" (alias: {', '.join(primary[name])})" if primary[name] else ""
            arity = f"/{method.arity}" if method.arity else ""
            print(f"  {name}{arity}{aliases} - {method.doc}")
    return 0


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(
        prog='python -m rumtpl',
        description='rumtpl template engine',
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check that a template parses')
    check_parser.add_argument('file', help='Template file')

    # tokens command
    tokens_parser = subparsers.add_parser('tokens', help='Dump the token stream')
    tokens_parser.add_argument('file', help='Template file')

    # render command
    render_parser = subparsers.add_parser('render', help='Render a template')
    render_parser.add_argument('file', help='Template file')
    render_parser.add_argument('-v', '--var', action='append', metavar='NAME=VALUE',
                               help='Context variable (can be repeated)')
    render_parser.add_argument('--json', metavar='FILE',
                               help='JSON object holding context variables')
    render_parser.add_argument('--root', metavar='DIR',
                               help='Directory partials are loaded from')
    render_parser.add_argument('-o', '--output', metavar='FILE',
                               help='Write the output to a file')

    # methods command
    subparsers.add_parser('methods', help='List built-in methods per type')

    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG)

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'tokens':
        return cmd_tokens(args)
    elif args.action == 'render':
        return cmd_render(args)
    elif args.action == 'methods':
        return cmd_methods(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
