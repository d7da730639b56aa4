"""Tool call classification.

Maps a raw tool call (name + arguments) to a normalized operation category,
regardless of which extension provides the tool or how it names things.
Strong signals are tried before weak ones:

1. An editor tool's ``command`` argument (write, str_replace, view, ...)
2. Substring rules over the tool's base name, first match wins
3. The shape of the arguments (command, path, operation, content, query)

Anything that still can't be placed is reported as ``Other(<base name>)``
so the raw name is never lost.

Example:
    >>> classify_tool("developer__create_file", None).detailed_name()
    'developer::file_create'
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from session_ledger.constants import (
    COMMAND_ARGUMENT_KEYS,
    CONTENT_ARGUMENT_KEYS,
    DETAILED_NAME_SEPARATOR,
    FILE_PATH_ARGUMENT_KEYS,
    OPERATION_ARGUMENT_KEYS,
    OPERATION_COMMAND_EXECUTE,
    OPERATION_FILE_CREATE,
    OPERATION_FILE_DELETE,
    OPERATION_FILE_EDIT,
    OPERATION_FILE_READ,
    OPERATION_NAVIGATE,
    OPERATION_SEARCH,
    QUERY_ARGUMENT_KEYS,
    TOOL_EXTENSION_SEPARATORS,
)

# =============================================================================
# Operations
# =============================================================================


@dataclass(frozen=True)
class ToolOperation:
    """Base class of the operation categories."""

    metrics_token = ""

    def metrics_name(self) -> str:
        return self.metrics_token


@dataclass(frozen=True)
class FileCreate(ToolOperation):
    metrics_token = OPERATION_FILE_CREATE


@dataclass(frozen=True)
class FileEdit(ToolOperation):
    metrics_token = OPERATION_FILE_EDIT


@dataclass(frozen=True)
class FileRead(ToolOperation):
    metrics_token = OPERATION_FILE_READ


@dataclass(frozen=True)
class FileDelete(ToolOperation):
    metrics_token = OPERATION_FILE_DELETE


@dataclass(frozen=True)
class CommandExecute(ToolOperation):
    metrics_token = OPERATION_COMMAND_EXECUTE


@dataclass(frozen=True)
class Search(ToolOperation):
    metrics_token = OPERATION_SEARCH


@dataclass(frozen=True)
class Navigate(ToolOperation):
    metrics_token = OPERATION_NAVIGATE


@dataclass(frozen=True)
class Other(ToolOperation):
    """Unclassified operation, carrying the raw name."""

    name: str = ""

    def metrics_name(self) -> str:
        return self.name


@dataclass
class ToolMetadata:
    """Details pulled from the tool arguments."""

    file_path: str | None = None
    command: str | None = None
    query: str | None = None


@dataclass
class ClassifiedTool:
    """Result of classifying one tool call."""

    original_name: str
    operation: ToolOperation
    extension: str | None = None
    metadata: ToolMetadata = field(default_factory=ToolMetadata)

    def metrics_name(self) -> str:
        """Standardized name for metrics (file_create, search, ...)."""
        return self.operation.metrics_name()

    def detailed_name(self) -> str:
        """Metrics name prefixed with ``<extension>::`` when there is one."""
        if self.extension is not None:
            return f"{self.extension}{DETAILED_NAME_SEPARATOR}{self.metrics_name()}"
        return self.metrics_name()


# =============================================================================
# Rules
# =============================================================================


def _contains_any(*needles: str) -> Callable[[str], bool]:
    return lambda name: any(needle in name for needle in needles)


# Evaluated top to bottom against the lower-cased base name; first match wins.
# "create"+"file" must come before the generic edit substrings.
NAME_RULES: list[tuple[Callable[[str], bool], ToolOperation]] = [
    (lambda name: "create" in name and ("file" in name or "write" in name), FileCreate()),
    (_contains_any("edit", "modify", "update", "replace", "patch"), FileEdit()),
    (_contains_any("read", "view", "cat", "show"), FileRead()),
    (_contains_any("delete", "remove", "rm"), FileDelete()),
    (_contains_any("execute", "run", "command", "shell", "bash"), CommandExecute()),
    (_contains_any("search", "find", "query"), Search()),
    (_contains_any("navigate", "goto", "open"), Navigate()),
]

EDITOR_COMMANDS: dict[str, ToolOperation] = {
    "write": FileCreate(),
    "create": FileCreate(),
    "edit": FileEdit(),
    "replace": FileEdit(),
    "str_replace": FileEdit(),
    "view": FileRead(),
    "read": FileRead(),
}

FILE_ACTIONS: dict[str, ToolOperation] = {
    "create": FileCreate(),
    "write": FileCreate(),
    "edit": FileEdit(),
    "modify": FileEdit(),
    "update": FileEdit(),
    "read": FileRead(),
    "view": FileRead(),
    "delete": FileDelete(),
    "remove": FileDelete(),
}


# =============================================================================
# Classification
# =============================================================================


def split_extension(tool_name: str) -> tuple[str | None, str]:
    """Split ``ext__name`` / ``ext::name`` into (extension, base name).

    ``__`` is checked before ``::``; only the first occurrence splits.
    """
    for separator in TOOL_EXTENSION_SEPARATORS:
        if separator in tool_name:
            extension, base_name = tool_name.split(separator, 1)
            return extension, base_name
    return None, tool_name


def _first_present(args: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in args:
            return args[key]
    return None


def _first_string(args: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    value = _first_present(args, keys)
    return value if isinstance(value, str) else None


def classify_by_name(base_name: str) -> ToolOperation:
    """Apply the ordered name rules to a base tool name."""
    lowered = base_name.lower()
    for matches, operation in NAME_RULES:
        if matches(lowered):
            return operation
    return Other(base_name)


def extract_metadata(args: Mapping[str, Any] | None) -> ToolMetadata:
    """Best-effort metadata for a tool classified by name."""
    if not args:
        return ToolMetadata()
    return ToolMetadata(
        file_path=_first_string(args, FILE_PATH_ARGUMENT_KEYS),
        command=_first_string(args, COMMAND_ARGUMENT_KEYS),
        query=_first_string(args, QUERY_ARGUMENT_KEYS),
    )


def _is_editor(base_name: str) -> bool:
    return "editor" in base_name


def _classify_editor_command(
    base_name: str, args: Mapping[str, Any] | None
) -> tuple[ToolOperation, ToolMetadata] | None:
    """Classify an editor tool by its ``command`` argument, if it has one."""
    if not args or not _is_editor(base_name):
        return None
    command = args.get("command")
    if not isinstance(command, str):
        return None

    path = args.get("path")
    metadata = ToolMetadata(file_path=path if isinstance(path, str) else None)
    operation = EDITOR_COMMANDS.get(command, Other(f"text_editor_{command}"))
    return operation, metadata


def classify_by_arguments(
    base_name: str, args: Mapping[str, Any] | None
) -> tuple[ToolOperation, ToolMetadata]:
    """Classify a tool whose name matched no rule, from its argument shape."""
    if args is None:
        return Other(base_name), ToolMetadata()

    if base_name in ("shell", "bash") or "command" in base_name:
        command = args.get("command")
        metadata = ToolMetadata(command=command if isinstance(command, str) else None)
        return CommandExecute(), metadata

    path = _first_present(args, FILE_PATH_ARGUMENT_KEYS)
    if path is not None:
        metadata = ToolMetadata(file_path=path if isinstance(path, str) else None)
        action = _first_string(args, OPERATION_ARGUMENT_KEYS)
        if action is not None:
            return FILE_ACTIONS.get(action, Other(f"file_{action}")), metadata
        if any(key in args for key in CONTENT_ARGUMENT_KEYS):
            return FileCreate(), metadata

    query = _first_string(args, QUERY_ARGUMENT_KEYS)
    if query is not None:
        return Search(), ToolMetadata(query=query)

    return Other(base_name), ToolMetadata()


def classify_tool(tool_name: str, arguments: Mapping[str, Any] | None = None) -> ClassifiedTool:
    """Classify a tool call.

    Args:
        tool_name: Raw tool name, optionally prefixed with an extension.
        arguments: Tool arguments. Anything that isn't a mapping is treated
            as absent.

    Returns:
        ClassifiedTool with operation, extension and metadata.
    """
    args = arguments if isinstance(arguments, Mapping) else None
    extension, base_name = split_extension(tool_name)

    # Editor names contain "edit"; their command argument outranks the name rules
    editor = _classify_editor_command(base_name, args)
    if editor is not None:
        operation, metadata = editor
    else:
        operation = classify_by_name(base_name)
        if isinstance(operation, Other):
            operation, metadata = classify_by_arguments(base_name, args)
        else:
            metadata = extract_metadata(args)

    return ClassifiedTool(
        original_name=tool_name,
        operation=operation,
        extension=extension,
        metadata=metadata,
    )
