"""CLI entry point for csharp-splitter."""

import argparse
import logging
import sys

from .analyzer import BACKENDS, CodeAnalyzer
from .errors import RefactorError
from .models import AnalyzerConfig, QueryResult
from .render import render_result, render_split_report, to_json

log = logging.getLogger(__name__)


def _analyzer(args: argparse.Namespace) -> CodeAnalyzer:
    config = AnalyzerConfig(backend=args.backend)
    if args.analyzer:
        config.analyzer_path = args.analyzer
    if getattr(args, "max_lines", None):
        config.max_lines = args.max_lines
    return CodeAnalyzer(config)


def _emit(args: argparse.Namespace, result: QueryResult) -> int:
    print(to_json(result) if args.json else render_result(result))
    return 0 if result.found else 1


def cmd_classes(args: argparse.Namespace) -> int:
    return _emit(args, _analyzer(args).list_classes(args.path))


def cmd_methods(args: argparse.Namespace) -> int:
    return _emit(args, _analyzer(args).list_methods(args.file, args.cls))


def cmd_tree(args: argparse.Namespace) -> int:
    result = _analyzer(args).build_dependency_tree(
        args.file, args.method, args.cls, max_depth=args.max_depth,
    )
    return _emit(args, result)


def cmd_body(args: argparse.Namespace) -> int:
    return _emit(args, _analyzer(args).get_method_body(args.file, args.method, args.cls))


def cmd_callers(args: argparse.Namespace) -> int:
    return _emit(args, _analyzer(args).find_method_callers(args.file, args.method, args.cls))


def cmd_stats(args: argparse.Namespace) -> int:
    return _emit(args, _analyzer(args).get_method_statistics(args.file, args.method, args.cls))


def cmd_split(args: argparse.Namespace) -> int:
    report = _analyzer(args).split_class(args.config, dry_run=args.dry_run)
    print(to_json(report) if args.json else render_split_report(report))
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    return _emit(args, _analyzer(args).status())


def cmd_serve(args: argparse.Namespace) -> int:
    from .server import run_server
    run_server(http=args.http, port=args.port, backend=args.backend, analyzer_path=args.analyzer)
    return 0


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    parser = argparse.ArgumentParser(
        prog="csharp-splitter",
        description="Split large C# classes into partial class files and query their call graph",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--backend", choices=BACKENDS, default="lexical",
                        help="Analysis backend for class/method listings (default: lexical)")
    parser.add_argument("--analyzer", help="External analyzer executable (default: $CSHARP_ANALYZER_PATH)")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    # classes
    p = sub.add_parser("classes", help="List classes in a file or directory")
    p.add_argument("path", help="C# source file or directory")

    # methods
    p = sub.add_parser("methods", help="List methods of a class")
    p.add_argument("file", help="C# source file")
    p.add_argument("--class", dest="cls", help="Target class (default: first class)")

    # tree
    p = sub.add_parser("tree", help="Dependency tree from a start method")
    p.add_argument("file", help="C# source file")
    p.add_argument("method", help="Start method name")
    p.add_argument("--class", dest="cls", help="Target class (default: first class)")
    p.add_argument("--max-depth", type=int, default=None, help="Maximum depth (default: 3)")

    # body
    p = sub.add_parser("body", help="Print the full text of a method and its overloads")
    p.add_argument("file", help="C# source file")
    p.add_argument("method", help="Method name")
    p.add_argument("--class", dest="cls", help="Target class (default: first class)")

    # callers
    p = sub.add_parser("callers", help="Methods that call the given method")
    p.add_argument("file", help="C# source file")
    p.add_argument("method", help="Target method name")
    p.add_argument("--class", dest="cls", help="Target class (default: first class)")

    # stats
    p = sub.add_parser("stats", help="Size and call statistics for a method")
    p.add_argument("file", help="C# source file")
    p.add_argument("method", help="Method name")
    p.add_argument("--class", dest="cls", help="Target class (default: first class)")

    # split
    p = sub.add_parser("split", help="Split a class into partial class files")
    p.add_argument("config", help="Config file, or a comma-separated list of config files")
    p.add_argument("--dry-run", action="store_true", help="Validate and generate without writing")
    p.add_argument("--max-lines", type=int, default=None,
                   help="Per-file line limit when the config sets no maxLines (default: 5000)")

    # status
    sub.add_parser("status", help="Show backend availability")

    # serve
    p = sub.add_parser("serve", help="Start MCP server")
    p.add_argument("--http", action="store_true", help="HTTP transport instead of stdio")
    p.add_argument("--port", type=int, default=8000, help="HTTP port (default: 8000)")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger("csharp_splitter").setLevel(logging.DEBUG)

    handlers = {
        "classes": cmd_classes,
        "methods": cmd_methods,
        "tree": cmd_tree,
        "body": cmd_body,
        "callers": cmd_callers,
        "stats": cmd_stats,
        "split": cmd_split,
        "status": cmd_status,
        "serve": cmd_serve,
    }

    try:
        code = handlers[args.command](args)
    except RefactorError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
