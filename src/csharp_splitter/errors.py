"""Exception hierarchy for csharp-splitter."""


class RefactorError(Exception):
    """Base class for every error raised by the analyzer and split engine."""


class SourceNotFoundError(RefactorError):
    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        msg = f"Source file not found at {path}"
        if reason:
            msg = f"Error reading source file {path}: {reason}"
        super().__init__(msg)


class NoClassesFoundError(RefactorError):
    def __init__(self, path: str) -> None:
        self.path = path
        self.available: list[str] = []
        super().__init__(f"No classes found in {path}")


class ClassNotFoundError(RefactorError):
    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(
            f"Class '{name}' not found. Available classes: {', '.join(available)}"
        )


class MethodNotFoundError(RefactorError):
    def __init__(self, missing: list[str], available: list[str]) -> None:
        self.missing = missing
        self.available = available
        lines = [f"{i}. Method '{name}' not found in source code."
                 for i, name in enumerate(missing, 1)]
        super().__init__(
            "The following errors occurred:\n\n" + "\n".join(lines)
            + "\n\nAvailable methods:\n" + ", ".join(available)
        )


class MalformedBraceStructureError(RefactorError):
    def __init__(self, what: str, offset: int) -> None:
        self.what = what
        self.offset = offset
        super().__init__(
            f"No matching closing brace for {what} (opening brace at offset {offset})"
        )


class FileTooLargeError(RefactorError):
    def __init__(
        self,
        file_name: str,
        line_count: int,
        max_lines: int,
        breakdown: list[tuple[str, int]],
    ) -> None:
        self.file_name = file_name
        self.line_count = line_count
        self.max_lines = max_lines
        self.breakdown = breakdown
        method_lines = sum(n for _, n in breakdown)
        details = "\n".join(f"  - {name}: {n} lines" for name, n in breakdown)
        super().__init__(
            f"Generated partial class exceeds {max_lines}-line limit!\n\n"
            f"File: {file_name}\n"
            f"Total lines: {line_count}\n"
            f"Method lines: {method_lines}\n"
            f"Structure lines: {line_count - method_lines}\n\n"
            f"Methods included:\n{details}\n\n"
            f"Please split the methods into smaller groups to stay within "
            f"the {max_lines}-line limit."
        )


class ConfigError(RefactorError):
    pass


class ConfigNotFoundError(ConfigError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigMissingFieldError(ConfigError):
    def __init__(self, path: str, key: str) -> None:
        self.path = path
        self.key = key
        super().__init__(
            f'Configuration file "{path}" is missing required key: "{key}". '
            f"Value should not be empty."
        )


class ConfigFieldMismatchError(ConfigError):
    def __init__(self, path: str, key: str, expected: object, found: object) -> None:
        self.path = path
        self.key = key
        super().__init__(
            f'{key} mismatch in "{path}". Expected: "{expected}", Found: "{found}"'
        )


class DuplicateOutputFileNameError(ConfigError):
    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__(f"Duplicate partial class file names found: {', '.join(names)}")


class IncompleteConfigurationError(ConfigError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            "The following methods are not assigned to any partial class:\n"
            + "\n".join(f"  - {name}" for name in missing)
        )
