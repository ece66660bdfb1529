"""Text and JSON rendering of query results and split reports."""

import dataclasses
import json

from .models import QueryResult, SplitReport


def to_json(obj) -> str:
    """JSON for a QueryResult, SplitReport or plain data."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        obj = dataclasses.asdict(obj)
    return json.dumps(obj, indent=2, default=str)


def render_not_found(result: QueryResult) -> str:
    lines = [result.message or f"{result.operation}: nothing found"]
    if result.available:
        lines.append(f"Available: {', '.join(result.available)}")
    return "\n".join(lines)


def render_classes(result: QueryResult) -> str:
    lines = [result.message] if result.message else []
    for row in result.data:
        span = f"lines {row.get('startLine', '?')}–{row.get('endLine', '?')}"
        where = f"  {row['filePath']}" if row.get("filePath") else ""
        lines.append(f"  {row['name']:<30} {span:<18} {row.get('lineCount', 0):>6} lines{where}")
    return "\n".join(lines)


def render_methods(result: QueryResult) -> str:
    lines = [result.message] if result.message else []
    for row in result.data:
        params = row.get("parameters", [])
        if isinstance(params, list):
            params = f"({', '.join(params)})"
        returns = row.get("returnType") or "Unknown"
        lines.append(
            f"  {row.get('lineCount', 0):>5}  {returns} {row.get('methodName', '?')}{params}"
        )
    return "\n".join(lines)


def _tree_label(node: dict) -> str:
    label = f"{node.get('className', '?')}.{node.get('methodName', '?')}"
    if node.get("circular"):
        return f"{label} [circular]"
    if not node.get("found", True):
        return f"{label} [not found]"
    return f"{label} ({node.get('lineCount', 0)} lines)"


def render_tree(node: dict) -> str:
    lines = [_tree_label(node)]

    def walk(children: list[dict], prefix: str) -> None:
        for i, child in enumerate(children):
            last = i == len(children) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{_tree_label(child)}")
            walk(child.get("children", []), prefix + ("    " if last else "│   "))

    walk(node.get("children", []), "")
    return "\n".join(lines)


def render_bodies(result: QueryResult) -> str:
    parts = []
    for row in result.data:
        parts.append(
            f"// {row['className']}.{row['methodName']}  "
            f"lines {row['startLine']}–{row['endLine']} ({row['lineCount']} lines)\n"
            f"{row['body']}"
        )
    return "\n\n".join(parts)


def render_callers(result: QueryResult) -> str:
    lines = [result.message]
    for row in result.data:
        lines.append(f"  {row['methodName']:<30} x{row['callCount']:<3} ({row['lineCount']} lines)")
    return "\n".join(lines)


def render_statistics(result: QueryResult) -> str:
    s = result.data
    lines = [
        f"Method:      {s['methodName']}",
        f"Overloads:   {s['overloadCount']}",
        f"Lines:       {s['totalLines']} total, {s['averageLines']} average",
        f"Recursive:   {'yes' if s['recursive'] else 'no'}",
        f"Callers:     {', '.join(s['callers']) or '(none)'}",
        f"Calls:       {len(s['dependencies'])} distinct",
    ]
    for name, count in sorted(s["callFrequency"].items(), key=lambda kv: (-kv[1], kv[0])):
        lines.append(f"  {name:<30} x{count}")
    return "\n".join(lines)


def render_status(result: QueryResult) -> str:
    s = result.data
    return "\n".join([
        f"Backend:       {s['backend']} ({'available' if s['backendAvailable'] else 'unavailable, using lexical'})",
        f"Analyzer path: {s['analyzerPath'] or '(not configured)'}",
        f"External:      {'yes' if s['externalAvailable'] else 'no'}",
        f"Tree-sitter:   {'yes' if s['treeSitterAvailable'] else 'no'}",
        f"Cached:        {s['cachedClasses']} parsed classes",
        f"Max lines:     {s['maxLines']}",
        f"Max depth:     {s['defaultMaxDepth']}",
    ])


_RENDERERS = {
    "list_classes": render_classes,
    "list_methods": render_methods,
    "get_method_body": render_bodies,
    "find_method_callers": render_callers,
    "get_method_statistics": render_statistics,
    "status": render_status,
}


def render_result(result: QueryResult) -> str:
    if not result.found:
        return render_not_found(result)
    if result.operation == "build_dependency_tree":
        text = render_tree(result.data)
        return f"{text}\n\n{result.message}" if result.message else text
    return _RENDERERS[result.operation](result)


def render_split_report(report: SplitReport) -> str:
    verb = "Wrote" if report.written else "Would write"
    lines = [
        f"Class:       {report.class_name}",
        f"Config:      {', '.join(report.config_files)}",
        f"Destination: {report.destination_folder}",
        f"{verb} {len(report.files)} files:",
    ]
    for f in report.files:
        tag = " (core)" if f.is_core else ""
        lines.append(f"  {f.file_name:<40} {f.line_count:>6} lines  {len(f.methods)} methods{tag}")
        if f.skipped:
            lines.append(f"    skipped (already emitted): {', '.join(f.skipped)}")
    if report.unassigned:
        lines.append(f"Left in core: {', '.join(report.unassigned)}")
    return "\n".join(lines)
