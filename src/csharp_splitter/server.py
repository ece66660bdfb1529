"""
MCP server for csharp-splitter: exposes the C# class queries and the split
job as tools.

Runs over stdio by default, so nothing here prints to stdout; all
logging goes to stderr.
"""

import functools
import inspect
import logging
import os
import sys
import time
from pathlib import Path

# stdout carries the stdio MCP stream
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)

# One line per tool call and one per reply
_LOG_PATH = Path(
    os.environ.get("CSHARP_SPLITTER_LOG")
    or Path.home() / ".local" / "log" / "csharp-splitter-mcp.log"
)
_LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
_request_log = logging.getLogger("csharp_splitter.requests")
_request_log.setLevel(logging.INFO)
_request_log.propagate = False
_file_handler = logging.FileHandler(_LOG_PATH)
_file_handler.setFormatter(logging.Formatter("%(asctime)s  %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
_request_log.addHandler(_file_handler)

from mcp.server.fastmcp import FastMCP

from .analyzer import CodeAnalyzer
from .errors import RefactorError
from .models import AnalyzerConfig
from .render import render_result, render_split_report

log = logging.getLogger(__name__)


def _log_tool(fn):
    """
    Record each tool call in the request log. A RefactorError raised by the
    tool is logged under its class name and returned to the client as an
    "Error: ..." reply; anything else propagates to FastMCP.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        bound = inspect.signature(fn).bind(*args, **kwargs)
        # Empty optional class names mean "first class"; leave them out.
        params = ", ".join(f"{k}={v!r}" for k, v in bound.arguments.items() if v != "")
        _request_log.info("→ %s(%s)", fn.__name__, params)
        t0 = time.monotonic()
        try:
            result = fn(*args, **kwargs)
        except RefactorError as e:
            _request_log.info("✗ %s  %.3fs  %s: %s",
                              fn.__name__, time.monotonic() - t0, type(e).__name__, e)
            return f"Error: {e}"
        # Renderers put the summary (or the not-found message) on the first line.
        _request_log.info("← %s  %.3fs  %s",
                          fn.__name__, time.monotonic() - t0, result.split("\n", 1)[0])
        return result

    return wrapper


mcp = FastMCP(
    "csharp-splitter",
    instructions=(
        "csharp-splitter inspects large C# classes and splits them into partial "
        "class files. Use list_csharp_methods and get_method_statistics to plan a "
        "split, build_dependency_tree and find_method_callers to group related "
        "methods, then split_csharp_class with a JSON config (or a comma-separated "
        "list of configs) describing the partial classes."
    ),
)

_analyzer = CodeAnalyzer()


def configure(backend: str = "lexical", analyzer_path: str | None = None) -> CodeAnalyzer:
    """Replace the process-wide analyzer (and its parse cache)."""
    global _analyzer
    config = AnalyzerConfig(backend=backend)
    if analyzer_path:
        config.analyzer_path = analyzer_path
    _analyzer = CodeAnalyzer(config)
    return _analyzer


# ── Tools ────────────────────────────────────────────────────────────────────

@mcp.tool()
@_log_tool
def list_csharp_classes(source_file: str) -> str:
    """
    List the classes declared in a C# file, or in every .cs file under a
    directory, with their line ranges.

    Args:
        source_file: Path to a .cs file or a directory.
    """
    return render_result(_analyzer.list_classes(source_file))


@mcp.tool()
@_log_tool
def list_csharp_methods(source_file: str, target_class_name: str = "") -> str:
    """
    List the methods of a class with return type, parameters and line count.

    Args:
        source_file: Path to the .cs file.
        target_class_name: Class to inspect (default: the first class in the file).
    """
    return render_result(_analyzer.list_methods(source_file, target_class_name or None))


@mcp.tool()
@_log_tool
def build_dependency_tree(
    source_file: str,
    start_method_name: str,
    target_class_name: str = "",
    max_depth: int = 3,
) -> str:
    """
    Build the tree of methods reachable from a start method. Recursive calls
    are marked [circular]; calls that do not resolve inside the class are
    marked [not found].

    Args:
        source_file: Path to the .cs file.
        start_method_name: Method to start from.
        target_class_name: Class containing the method (default: first class).
        max_depth: Maximum tree depth (default: 3).
    """
    result = _analyzer.build_dependency_tree(
        source_file, start_method_name, target_class_name or None, max_depth=max_depth,
    )
    return render_result(result)


@mcp.tool()
@_log_tool
def get_method_body(source_file: str, method_name: str, target_class_name: str = "") -> str:
    """
    Return the full text (doc comment, signature and body) of a method and
    all its overloads.

    Args:
        source_file: Path to the .cs file.
        method_name: Method name.
        target_class_name: Class containing the method (default: first class).
    """
    return render_result(
        _analyzer.get_method_body(source_file, method_name, target_class_name or None)
    )


@mcp.tool()
@_log_tool
def find_method_callers(source_file: str, target_method_name: str, target_class_name: str = "") -> str:
    """
    Find the methods in a class that call the given method.

    Args:
        source_file: Path to the .cs file.
        target_method_name: Method whose callers to find.
        target_class_name: Class to search (default: first class).
    """
    return render_result(
        _analyzer.find_method_callers(source_file, target_method_name, target_class_name or None)
    )


@mcp.tool()
@_log_tool
def get_method_statistics(source_file: str, method_name: str, target_class_name: str = "") -> str:
    """
    Overload count, line counts, call frequencies, callers and recursion for
    a method.

    Args:
        source_file: Path to the .cs file.
        method_name: Method name.
        target_class_name: Class containing the method (default: first class).
    """
    return render_result(
        _analyzer.get_method_statistics(source_file, method_name, target_class_name or None)
    )


@mcp.tool()
@_log_tool
def split_csharp_class(config_file: str, dry_run: bool = False) -> str:
    """
    Split a class into partial class files as described by a JSON config.
    Nothing is written unless every requested method exists and every
    generated file is within the line limit.

    Args:
        config_file: Config file path, or a comma-separated list of paths
            describing one split job.
        dry_run: Validate and generate without writing files.
    """
    return render_split_report(_analyzer.split_class(config_file, dry_run=dry_run))


@mcp.tool()
@_log_tool
def get_analyzer_status() -> str:
    """Report the active analysis backend and whether optional backends are available."""
    return render_result(_analyzer.status())


# ── Entry point ───────────────────────────────────────────────────────────────

def run_server(
    http: bool = False,
    port: int = 8000,
    backend: str = "lexical",
    analyzer_path: str | None = None,
) -> None:
    configure(backend, analyzer_path)
    if http:
        mcp.settings.host = "127.0.0.1"
        mcp.settings.port = port
        mcp.run(transport="streamable-http")
    else:
        mcp.run(transport="stdio")


if __name__ == "__main__":
    run_server()
