"""
Export command configuration.

Flags are declared as a typer command so they share typer's parsing,
help output and error messages. ``resolve_config`` parses an argument
list into a validated, immutable ExportConfig without running anything.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

import click
import typer

from tsexport.constants import (
    DEFAULT_FORMAT,
    DEFAULT_SHARD_DURATION,
    SUPPORTED_FORMATS,
)
from tsexport.utils.duration import format_duration, parse_duration


class ConfigError(Exception):
    """Base class for invalid command-line configuration"""


class FlagSyntaxError(ConfigError):
    """A flag was malformed, unknown, or had an unparsable value"""


class MissingRequiredField(ConfigError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} is required")


class InvalidFormat(ConfigError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"invalid format '{value}'")


@dataclass(frozen=True)
class ExportConfig:
    """Validated export settings for a single run"""

    database: str
    config_path: str = ""
    cpu_profile: str = ""
    mem_profile: str = ""
    retention_policy: str = ""
    format: str = DEFAULT_FORMAT
    shard_duration: timedelta = DEFAULT_SHARD_DURATION
    print_only: bool = False


def build_config(
    database: str,
    config_path: str = "",
    cpu_profile: str = "",
    mem_profile: str = "",
    retention_policy: str = "",
    format: str = DEFAULT_FORMAT,
    shard_duration: timedelta = DEFAULT_SHARD_DURATION,
    print_only: bool = False,
) -> ExportConfig:
    """Validate parsed values and build an ExportConfig"""
    if not database:
        raise MissingRequiredField("database")
    if format not in SUPPORTED_FORMATS:
        raise InvalidFormat(format)
    return ExportConfig(
        database=database,
        config_path=config_path or "",
        cpu_profile=cpu_profile or "",
        mem_profile=mem_profile or "",
        retention_policy=retention_policy or "",
        format=format,
        shard_duration=shard_duration,
        print_only=print_only,
    )


def _duration_callback(value: Optional[str]) -> timedelta:
    if value is None:
        return DEFAULT_SHARD_DURATION
    try:
        duration = parse_duration(value)
    except (ValueError, OverflowError) as e:
        raise typer.BadParameter(str(e))
    if duration <= timedelta(0):
        raise typer.BadParameter(f"shard duration must be positive, got '{value}'")
    return duration


flags = typer.Typer(add_completion=False)


@flags.command(
    "export", context_settings={"help_option_names": ["-h", "-help", "--help"]}
)
def export_flags(
    config_path: str = typer.Option("", "-config", "--config", help="Config file"),
    cpu_profile: str = typer.Option(
        "", "-cpuprofile", "--cpuprofile", help="Write a CPU profile to this file"
    ),
    mem_profile: str = typer.Option(
        "", "-memprofile", "--memprofile", help="Write a heap profile to this file"
    ),
    database: str = typer.Option(
        "", "-database", "--database", help="Database name (required)"
    ),
    retention_policy: str = typer.Option(
        "", "-rp", "--rp", help="Retention policy name (default policy if empty)"
    ),
    format: str = typer.Option(
        DEFAULT_FORMAT,
        "-format",
        "--format",
        help=f"Output format ({', '.join(SUPPORTED_FORMATS)})",
    ),
    shard_duration: str = typer.Option(
        format_duration(DEFAULT_SHARD_DURATION),
        "-duration",
        "--duration",
        callback=_duration_callback,
        help="Target shard duration",
    ),
    print_only: bool = typer.Option(
        False, "-print", "--print", help="Print plan to stdout"
    ),
) -> ExportConfig:
    """Export a database as line protocol or a binary container"""
    return build_config(
        database=database,
        config_path=config_path,
        cpu_profile=cpu_profile,
        mem_profile=mem_profile,
        retention_policy=retention_policy,
        format=format,
        shard_duration=shard_duration,
        print_only=print_only,
    )


def _usage_error_types() -> Tuple[type, ...]:
    """UsageError classes the typer-built command can raise"""
    # Newer typer releases ship their own copy of click's exception tree
    types = [click.UsageError]
    for cls in typer.BadParameter.__mro__:
        if cls.__name__ == "UsageError" and cls not in types:
            types.append(cls)
    return tuple(types)


USAGE_ERRORS = _usage_error_types()

PRINT_FLAGS = ("-print", "--print")
TRUE_VALUES = ("1", "t", "T", "TRUE", "true", "True")
FALSE_VALUES = ("0", "f", "F", "FALSE", "false", "False")


def _expand_bool_flags(args: Sequence[str]) -> List[str]:
    """Rewrite ``-print=<bool>`` into the bare flag, or drop it when false"""
    expanded: List[str] = []
    for index, arg in enumerate(args):
        if arg == "--":
            expanded.extend(args[index:])
            break
        name, sep, value = arg.partition("=")
        if sep and name in PRINT_FLAGS:
            if value in TRUE_VALUES:
                expanded.append(name)
            elif value not in FALSE_VALUES:
                raise FlagSyntaxError(
                    f"invalid boolean value '{value}' for flag {name}"
                )
            continue
        expanded.append(arg)
    return expanded


def resolve_config(args: Sequence[str]) -> ExportConfig:
    """
    Parse command-line arguments into a validated ExportConfig.

    Args:
        args: Arguments following the program name

    Returns:
        ExportConfig: Fully validated configuration

    Raises:
        FlagSyntaxError: A flag or flag value could not be parsed
        MissingRequiredField: No database was given
        InvalidFormat: The format is not one of SUPPORTED_FORMATS
        typer.Exit: Help was requested
    """
    command = typer.main.get_command(flags)
    arg_list = _expand_bool_flags(args)
    try:
        ctx = command.make_context("export", arg_list)
        with ctx:
            return command.invoke(ctx)
    except USAGE_ERRORS as e:
        raise FlagSyntaxError(e.format_message()) from e

