"""Source discovery: walk a directory, respect .gitignore, return .cs files."""

import logging
from pathlib import Path

import pathspec

log = logging.getLogger(__name__)

SOURCE_SUFFIX = ".cs"


def _load_gitignore_spec(root: Path) -> pathspec.PathSpec | None:
    gitignore = root / ".gitignore"
    if gitignore.exists():
        patterns = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
        return pathspec.PathSpec.from_lines("gitwildmatch", patterns)
    return None


def discover_sources(root: str, exclude_dirs: list[str]) -> list[str]:
    """
    Absolute paths of every C# source file under root, sorted.

    Skips build output and tool directories (exclude_dirs) and anything
    matched by root/.gitignore.
    """
    base = Path(root).resolve()
    gitignore_spec = _load_gitignore_spec(base)
    excluded = set(exclude_dirs)

    results: list[str] = []
    for path in sorted(base.rglob(f"*{SOURCE_SUFFIX}")):
        if not path.is_file():
            continue
        rel = path.relative_to(base)
        if any(part in excluded for part in rel.parts):
            continue
        if gitignore_spec and gitignore_spec.match_file(rel.as_posix()):
            continue
        results.append(str(path))

    log.info("Discovered %d source files under %s", len(results), base)
    return results
