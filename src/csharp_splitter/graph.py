"""
Call-graph queries over one parsed class: dependency trees, callers and
per-method statistics. The class-wide graph is a NetworkX DiGraph.
"""

import logging
from collections import Counter

import networkx as nx

from .extract import parse_method_calls
from .models import CallerInfo, CallSite, DependencyNode, MethodStatistics, ParsedClass

log = logging.getLogger(__name__)

_SELF_QUALIFIERS = (None, "this")


def _unique_calls(calls: list[CallSite]) -> list[CallSite]:
    """First call site per (qualifier, name), in source order."""
    seen: set[tuple[str | None, str]] = set()
    unique: list[CallSite] = []
    for call in calls:
        key = ("this" if call.qualifier in _SELF_QUALIFIERS else call.qualifier, call.name)
        if key not in seen:
            seen.add(key)
            unique.append(call)
    return unique


def build_dependency_tree(
    parsed: ParsedClass,
    class_name: str,
    method_name: str,
    max_depth: int = 3,
) -> DependencyNode | None:
    """
    Tree of calls reachable from class_name.method_name.

    A node is circular when its (class, method) pair is already on the active
    recursion path; it gets no children. Sibling branches revisiting the same
    method are not circular. Returns None only when max_depth < 1.
    """
    active: set[str] = set()

    def build(cls: str, name: str, depth: int) -> DependencyNode | None:
        if depth >= max_depth:
            return None

        key = f"{cls}.{name}"
        if key in active:
            return DependencyNode(class_name=cls, method_name=name, circular=True)

        active.add(key)
        try:
            overloads = parsed.methods.lookup(name)
            if not overloads:
                return DependencyNode(class_name=cls, method_name=name, found=False)

            node = DependencyNode(
                class_name=cls,
                method_name=name,
                line_count=overloads[0].line_count,
            )
            calls: list[CallSite] = []
            for method in overloads:
                calls.extend(parse_method_calls(method.full_text))
            for call in _unique_calls(calls):
                callee_cls = cls if call.qualifier in _SELF_QUALIFIERS else call.qualifier
                child = build(callee_cls, call.name, depth + 1)
                if child is not None:
                    node.children.append(child)
            return node
        finally:
            active.discard(key)

    return build(class_name, method_name, 0)


def tree_stats(root: DependencyNode | None) -> dict:
    """Node, circular and not-found counts, and the deepest level reached."""
    stats = {"nodes": 0, "circular": 0, "not_found": 0, "max_depth": 0}
    if root is None:
        return stats
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        stats["nodes"] += 1
        stats["max_depth"] = max(stats["max_depth"], depth)
        if node.circular:
            stats["circular"] += 1
        if not node.found:
            stats["not_found"] += 1
        stack.extend((child, depth + 1) for child in node.children)
    return stats


def build_call_graph(parsed: ParsedClass) -> nx.DiGraph:
    """
    Directed graph with one node per method name and an edge caller -> callee
    for every call site that resolves inside the class. Edge attribute
    "count" holds the number of call sites.
    """
    g: nx.DiGraph = nx.DiGraph()
    index = parsed.methods

    for name, overloads in index.by_name.items():
        g.add_node(name, overloads=len(overloads), lines=sum(m.line_count for m in overloads))

    for name, overloads in index.by_name.items():
        for method in overloads:
            for call in parse_method_calls(method.full_text):
                targets = index.lookup(call.name)
                if not targets:
                    continue
                callee = targets[0].name
                if g.has_edge(name, callee):
                    g[name][callee]["count"] += 1
                else:
                    g.add_edge(name, callee, count=1)

    log.debug("Call graph: %d nodes, %d edges", g.number_of_nodes(), g.number_of_edges())
    return g


def find_method_callers(parsed: ParsedClass, target: str) -> list[CallerInfo]:
    """Methods whose bodies contain a call to target, in source order."""
    bare = target.split("<", 1)[0]
    callers: list[CallerInfo] = []
    for method in parsed.methods.all_methods():
        count = sum(1 for c in parse_method_calls(method.full_text) if c.name == bare)
        if count:
            callers.append(CallerInfo(
                method_name=method.name,
                signature=method.signature,
                call_count=count,
                line_count=method.line_count,
            ))
    return callers


def is_recursive(g: nx.DiGraph, name: str) -> bool:
    """True when name calls itself or sits in a call cycle."""
    if name not in g:
        return False
    if g.has_edge(name, name):
        return True
    for scc in nx.strongly_connected_components(g):
        if name in scc:
            return len(scc) > 1
    return False


def get_method_statistics(parsed: ParsedClass, name: str) -> MethodStatistics | None:
    """Size and call statistics across every overload of name."""
    overloads = parsed.methods.lookup(name)
    if not overloads:
        return None

    frequency: Counter[str] = Counter()
    for method in overloads:
        for call in parse_method_calls(method.full_text):
            frequency[call.name] += 1

    total = sum(m.line_count for m in overloads)
    g = build_call_graph(parsed)
    node = overloads[0].name
    callers = sorted(
        g.predecessors(node),
        key=lambda n: parsed.methods.by_name[n][0].start,
    )

    return MethodStatistics(
        method_name=node,
        overload_count=len(overloads),
        total_lines=total,
        average_lines=round(total / len(overloads), 1),
        dependencies=list(frequency),
        call_frequency=dict(frequency),
        callers=callers,
        recursive=is_recursive(g, node),
    )
