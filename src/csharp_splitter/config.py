"""
Split-job configuration: load one or more JSON documents and merge them.

The first document is authoritative for the shared fields; later documents
may repeat them but must agree. Partial class lists are concatenated.
"""

import json
import logging
from pathlib import Path

from .errors import (
    ConfigError,
    ConfigFieldMismatchError,
    ConfigMissingFieldError,
    ConfigNotFoundError,
    DuplicateOutputFileNameError,
)
from .models import PartialClassSpec, SplitConfig

log = logging.getLogger(__name__)

REQUIRED_KEYS = ("sourceFile", "destinationFolder", "newNamespace", "mainPartialClassName")

# Shared fields checked for consistency across documents.
_SHARED_KEYS = {
    "sourceFile": "Source file",
    "targetClassName": "Target class name",
    "destinationFolder": "Destination folder",
    "newNamespace": "Namespace",
    "mainPartialClassName": "Main partial class name",
    "mainInterface": "Main interface",
}


def split_config_paths(config_file_input: str) -> list[str]:
    """"a.json, b.json" -> ["a.json", "b.json"]"""
    return [p.strip() for p in config_file_input.split(",") if p.strip()]


def load_config_document(path: str) -> dict:
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        raise ConfigNotFoundError(path) from None
    except OSError as e:
        raise ConfigError(f'Error reading configuration file "{path}": {e}') from e
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f'Error processing configuration file "{path}": {e}') from e
    if not isinstance(doc, dict):
        raise ConfigError(f'Configuration file "{path}" must contain a JSON object')
    return doc


def _parse_partial_classes(path: str, doc: dict) -> list[PartialClassSpec]:
    raw = doc.get("partialClasses") or []
    if not isinstance(raw, list):
        raise ConfigError(f'"partialClasses" in "{path}" must be an array')

    specs: list[PartialClassSpec] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict) or not entry.get("fileName"):
            raise ConfigMissingFieldError(path, f"partialClasses[{i}].fileName")
        methods = entry.get("methods")
        if not isinstance(methods, list) or not all(isinstance(m, str) for m in methods):
            raise ConfigError(
                f'partialClasses[{i}].methods in "{path}" must be an array of method names'
            )
        specs.append(PartialClassSpec(
            file_name=entry["fileName"],
            methods=[m.strip() for m in methods if m.strip()],
            interface=entry.get("interface") or "",
        ))
    return specs


def merge_configs(documents: list[tuple[str, dict]]) -> SplitConfig:
    """Merge (path, document) pairs describing one split job."""
    if not documents:
        raise ConfigError("At least one configuration file must be provided")

    first_path, first = documents[0]
    for key in REQUIRED_KEYS:
        if not first.get(key):
            raise ConfigMissingFieldError(first_path, key)

    max_lines = first.get("maxLines")
    if max_lines is not None and (not isinstance(max_lines, int) or max_lines < 1):
        raise ConfigError(f'"maxLines" in "{first_path}" must be a positive integer')

    config = SplitConfig(
        source_file=first["sourceFile"],
        destination_folder=first["destinationFolder"],
        new_namespace=first["newNamespace"],
        main_partial_class_name=first["mainPartialClassName"],
        partial_classes=_parse_partial_classes(first_path, first),
        target_class_name=first.get("targetClassName") or None,
        main_interface=first.get("mainInterface") or "",
        require_all_methods=bool(first.get("requireAllMethods", False)),
        max_lines=max_lines,
        config_files=[first_path],
    )

    for path, doc in documents[1:]:
        for key, label in _SHARED_KEYS.items():
            value = doc.get(key)
            expected = first.get(key) or None
            if value and value != expected:
                raise ConfigFieldMismatchError(path, label, expected, value)
        config.partial_classes.extend(_parse_partial_classes(path, doc))
        config.config_files.append(path)

    names = [pc.file_name for pc in config.partial_classes] + [config.main_partial_class_name]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise DuplicateOutputFileNameError(duplicates)

    log.debug(
        "Merged %d config document(s): %d partial classes",
        len(documents), len(config.partial_classes),
    )
    return config


def load_split_config(config_file_input: str) -> SplitConfig:
    """Load and merge a config file path or a comma-separated list of paths."""
    paths = split_config_paths(config_file_input)
    return merge_configs([(p, load_config_document(p)) for p in paths])
