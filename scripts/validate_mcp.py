#!/usr/bin/env python3
"""
Flutter Plugin Lint - MCP Server Configuration Validator

Validates MCP server configurations shipped with the plugin: the root
.mcp.json file and inline or referenced mcpServers in plugin.json.

Usage:
    from validate_mcp import validate_mcp_config, validate_plugin_mcp
    report = validate_mcp_config(Path(".mcp.json"), plugin_root)
    report = validate_plugin_mcp(plugin_root)

Exit codes (when run directly):
    0 - All checks passed
    1 - CRITICAL issues found
    2 - MAJOR issues found
    3 - MINOR issues found
    4 - NIT issues found (--strict only)
"""

from __future__ import annotations

import argparse
import json
import os
import re
import sys
from pathlib import Path
from typing import Any

from fpl_validation_common import ValidationReport, print_json_report, print_report, relative_to_root

VALID_TRANSPORTS = {"stdio", "sse", "http"}

KNOWN_SERVER_FIELDS = {
    "command",  # stdio
    "args",
    "env",
    "cwd",
    "type",  # stdio, sse, http
    "url",  # http/sse
    "headers",
    "timeout",
}

# ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")

# Variables the host always provides to plugin servers
PLUGIN_ENV_VARS = {"CLAUDE_PLUGIN_ROOT", "CLAUDE_PROJECT_DIR"}

SERVER_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")

CREDENTIAL_HEADERS = {"authorization", "x-api-key", "api-key", "apikey"}

PLUGIN_JSON = ".claude-plugin/plugin.json"


def is_absolute_path(path: str) -> bool:
    """Absolute Unix or Windows path without env var substitution."""
    return bool(re.match(r"^/[^$]", path) or re.match(r"^[A-Za-z]:\\", path))


def validate_env_var_syntax(value: str, report: ValidationReport, context: str) -> None:
    """Check ${VAR} references are well-formed and note ones without defaults."""
    if "${" not in value:
        return

    if value.count("${") != len(ENV_VAR_PATTERN.findall(value)):
        report.major(f"Malformed env var syntax in {context}: {value}")
        return

    for var_name, default in ENV_VAR_PATTERN.findall(value):
        if not default and var_name not in PLUGIN_ENV_VARS:
            report.info(f"Env var ${{{var_name}}} has no default value in {context}")


def validate_path_value(value: str, report: ValidationReport, context: str, plugin_root: Path | None) -> None:
    if is_absolute_path(value):
        report.major(f"Absolute path found in {context}: {value} - use ${{CLAUDE_PLUGIN_ROOT}} for portability")
        return

    validate_env_var_syntax(value, report, context)

    if plugin_root and "${CLAUDE_PLUGIN_ROOT}" in value:
        resolved = Path(value.replace("${CLAUDE_PLUGIN_ROOT}", str(plugin_root)))
        if resolved.suffix and not resolved.exists():
            report.major(f"Referenced file not found in {context}: {value}")


def _validate_string_map(
    server_name: str, key: str, value: Any, report: ValidationReport, context: str
) -> dict[str, str]:
    if not isinstance(value, dict):
        report.major(f"Server {server_name} '{key}' must be an object")
        return {}
    result: dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(v, str):
            report.major(f"Server {server_name} {key}[{k}] must be a string")
            continue
        validate_env_var_syntax(v, report, f"{context}:{key}[{k}]")
        result[k] = v
    return result


def validate_mcp_server(
    server_name: str,
    config: dict[str, Any],
    report: ValidationReport,
    plugin_root: Path | None = None,
    file_context: str = "mcp-config",
) -> None:
    """Validate a single MCP server configuration.

    Args:
        server_name: Name of the server being validated
        config: Server configuration dictionary
        report: ValidationReport to add results to
        plugin_root: Plugin root for resolving ${CLAUDE_PLUGIN_ROOT} paths
        file_context: File label for messages
    """
    ctx = f"{file_context}:{server_name}"

    for key in config:
        if key not in KNOWN_SERVER_FIELDS:
            report.warning(f"Unknown field '{key}' in server {server_name}", file_context)

    transport = config.get("type", "stdio")
    if transport not in VALID_TRANSPORTS:
        report.major(f"Invalid transport type '{transport}' for server {server_name}", file_context)
        transport = "stdio"

    if transport == "stdio":
        command = config.get("command")
        if command is None:
            report.critical(f"Server {server_name} missing required 'command' field", file_context)
        elif not isinstance(command, str) or not command.strip():
            report.critical(f"Server {server_name} 'command' must be a non-empty string", file_context)
        else:
            validate_path_value(command, report, f"{ctx}:command", plugin_root)
            if plugin_root and "${CLAUDE_PLUGIN_ROOT}" in command:
                resolved = Path(command.replace("${CLAUDE_PLUGIN_ROOT}", str(plugin_root)))
                if resolved.is_file() and not os.access(resolved, os.X_OK):
                    report.major(f"Server {server_name} command not executable: {command}", file_context)
        if "url" in config:
            report.info(f"Server {server_name} has 'url' but transport is stdio - url will be ignored")
    else:
        url = config.get("url")
        if url is None:
            report.critical(f"Server {server_name} (type={transport}) missing 'url'", file_context)
        elif not isinstance(url, str):
            report.critical(f"Server {server_name} 'url' must be a string", file_context)
        else:
            validate_env_var_syntax(url, report, f"{ctx}:url")
            if not url.startswith(("${", "http://", "https://")):
                report.major(f"Server {server_name} url should be http(s):// : {url}", file_context)
        if transport == "sse":
            report.minor(f"Server {server_name} uses deprecated 'sse' transport - migrate to 'http'", file_context)
        if "command" in config:
            report.info(f"Server {server_name} has 'command' but transport is {transport} - command will be ignored")

    if "args" in config:
        args = config["args"]
        if not isinstance(args, list):
            report.major(f"Server {server_name} 'args' must be an array", file_context)
        else:
            for i, arg in enumerate(args):
                if not isinstance(arg, str):
                    report.major(f"Server {server_name} args[{i}] must be a string", file_context)
                elif "/" in arg or "\\" in arg:
                    validate_path_value(arg, report, f"{ctx}:args[{i}]", plugin_root)
                else:
                    validate_env_var_syntax(arg, report, f"{ctx}:args[{i}]")

    if "env" in config:
        _validate_string_map(server_name, "env", config["env"], report, ctx)

    if "cwd" in config:
        if not isinstance(config["cwd"], str):
            report.major(f"Server {server_name} 'cwd' must be a string", file_context)
        else:
            validate_path_value(config["cwd"], report, f"{ctx}:cwd", plugin_root)

    if "headers" in config:
        headers = _validate_string_map(server_name, "headers", config["headers"], report, ctx)
        for key, value in headers.items():
            if key.lower() in CREDENTIAL_HEADERS and "${" not in value:
                report.major(
                    f"Server {server_name} has hardcoded credential in headers[{key}] - use environment variables",
                    file_context,
                )

    report.passed(f"Server {server_name} configuration validated", file_context)


def _validate_servers(
    servers: Any, report: ValidationReport, plugin_root: Path | None, file_context: str
) -> None:
    if not isinstance(servers, dict):
        report.critical("'mcpServers' must be an object", file_context)
        return
    if not servers:
        report.info(f"No MCP servers defined in {file_context}")
        return

    for server_name, server_config in servers.items():
        if not SERVER_NAME_PATTERN.match(server_name):
            report.minor(
                f"Server name '{server_name}' should be alphanumeric with hyphens/underscores", file_context
            )
        if not isinstance(server_config, dict):
            report.critical(f"Server '{server_name}' config must be an object", file_context)
            continue
        validate_mcp_server(server_name, server_config, report, plugin_root, file_context)


def validate_mcp_config(
    config_path: Path,
    plugin_root: Path | None = None,
    report: ValidationReport | None = None,
) -> ValidationReport:
    """Validate an MCP configuration file (.mcp.json).

    Args:
        config_path: Path to the .mcp.json file
        plugin_root: Plugin root for path resolution
        report: Existing report to add to

    Returns:
        ValidationReport with all validation results
    """
    if report is None:
        report = ValidationReport()

    rel_path = relative_to_root(config_path, plugin_root) if plugin_root else config_path.name

    if not config_path.is_file():
        report.info(f"MCP config file not found: {rel_path}")
        return report

    try:
        config = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        report.critical(f"Invalid JSON: {e.msg} at line {e.lineno}", rel_path)
        return report
    except (OSError, UnicodeDecodeError) as e:
        report.critical(f"Cannot read MCP config: {e}", rel_path)
        return report

    if not isinstance(config, dict):
        report.critical("MCP config root must be a JSON object", rel_path)
        return report
    report.passed(f"{rel_path} is valid JSON", rel_path)

    if "mcpServers" not in config:
        report.major("Missing 'mcpServers' object", rel_path)
        return report

    _validate_servers(config["mcpServers"], report, plugin_root, rel_path)
    return report


def validate_plugin_mcp(plugin_root: Path, report: ValidationReport | None = None) -> ValidationReport:
    """Validate all MCP configurations in a plugin.

    Checks both .mcp.json and the mcpServers field of plugin.json, which may
    be an inline object or a ./path to another config file.
    """
    if report is None:
        report = ValidationReport()

    mcp_json = plugin_root / ".mcp.json"
    if mcp_json.exists():
        validate_mcp_config(mcp_json, plugin_root, report)
    else:
        report.info("No .mcp.json found")

    plugin_json = plugin_root / PLUGIN_JSON
    if not plugin_json.is_file():
        return report

    try:
        manifest = json.loads(plugin_json.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        # Reported by the manifest validator
        return report

    if not isinstance(manifest, dict) or "mcpServers" not in manifest:
        return report

    mcp_servers = manifest["mcpServers"]
    if isinstance(mcp_servers, str):
        external = plugin_root / mcp_servers.removeprefix("./")
        if not mcp_servers.startswith("./"):
            report.major(f"mcpServers path must start with './': {mcp_servers}", PLUGIN_JSON)
        if external.is_file():
            if external.resolve() != mcp_json.resolve():
                validate_mcp_config(external, plugin_root, report)
        else:
            report.major(f"Referenced MCP config not found: {mcp_servers}", PLUGIN_JSON)
    elif isinstance(mcp_servers, dict):
        report.info(f"Found inline mcpServers in plugin.json ({len(mcp_servers)} server(s))")
        _validate_servers(mcp_servers, report, plugin_root, f"{PLUGIN_JSON}:mcpServers")
    else:
        report.major("mcpServers must be a string (path) or object", PLUGIN_JSON)

    return report


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate Flutter plugin MCP configuration")
    parser.add_argument("path", nargs="?", help="Path to .mcp.json file or plugin directory (default: cwd)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show all results")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--strict", action="store_true", help="Strict mode - NIT issues also block validation")
    args = parser.parse_args()

    path = Path(args.path) if args.path else Path.cwd()
    if not path.exists():
        print(f"Error: {path} does not exist", file=sys.stderr)
        return 1

    if path.is_file():
        report = validate_mcp_config(path, path.parent)
    else:
        report = validate_plugin_mcp(path)

    if args.json:
        print_json_report([report])
    else:
        print_report(report, "MCP Configuration Validation Report", verbose=args.verbose)

    if args.strict:
        return report.exit_code_strict()
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
