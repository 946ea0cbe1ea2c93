"""Core shared helpers for quazar commands."""

from __future__ import annotations

from .config import (
    TomlConfigError,
    coerce_bool,
    load_toml,
    merge_defaults,
    write_toml_template,
)
from .config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
    get_template,
    iter_templates,
)
from .files import (
    iter_json_files,
    read_json_file,
    read_text_file,
    write_json_atomic,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
    describe_layout,
)

__all__ = [
    "TomlConfigError",
    "coerce_bool",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
    "ConfigTemplate",
    "ConfigTemplateError",
    "get_template",
    "iter_templates",
    "iter_json_files",
    "read_json_file",
    "read_text_file",
    "write_json_atomic",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "describe_layout",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
