"""
Export command.

ExportCommand ties the pieces together for a single run: it resolves the
flags, opens the store and an export session, then either prints the
session's plan or streams its records through the selected writer while
the optional profilers run.
"""

import sys
from contextlib import ExitStack
from typing import Optional, Sequence, TextIO

from tsexport.formats import select_writer
from tsexport.logging import get_logger, log_application_event
from tsexport.logging.utils import format_size
from tsexport.store import Store
from tsexport.utils.duration import format_duration
from .config import ExportConfig, resolve_config
from .exporter import Exporter, ExporterConfig
from .profiler import ProfilerController


class ExportCommand:
    """Runs one export against a store owned by the caller"""

    def __init__(
        self,
        store: Store,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ):
        self.store = store
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.logger = get_logger(
            f"tsexport.{self.__class__.__module__}.{self.__class__.__name__}"
        )

    def run(self, args: Sequence[str]) -> None:
        """
        Execute the export described by ``args``.

        Errors from the store, the session and the writer propagate
        unchanged. A failure to close the writer is raised even when
        streaming succeeded, and replaces a streaming error when both fail.

        Raises:
            ConfigError: The arguments are invalid; nothing was opened
            typer.Exit: A profile file could not be created
        """
        config = resolve_config(args)
        self.logger.debug(f"Resolved export configuration: {config}")

        with ExitStack() as stack:
            profiler = None
            if not config.print_only:
                profiler = ProfilerController(self.stderr)
                profiler.prepare(config)
                stack.callback(profiler.stop)

            self.store.open(config.config_path)

            exporter = self.open_exporter(config)
            stack.callback(exporter.close)

            if config.print_only:
                exporter.print_plan(self.stdout)
                log_application_event(
                    "export.plan_printed",
                    details={"database": config.database, "rp": exporter.retention_policy},
                )
                return

            self._export(config, exporter, profiler)

    def open_exporter(self, config: ExportConfig) -> Exporter:
        """Create and open the export session for ``config``"""
        exporter = Exporter(
            self.store,
            ExporterConfig(
                database=config.database,
                retention_policy=config.retention_policy,
                shard_duration=config.shard_duration,
            ),
        )
        exporter.open()
        return exporter

    def _export(
        self, config: ExportConfig, exporter: Exporter, profiler: ProfilerController
    ) -> None:
        log_application_event(
            "export.started",
            details={
                "database": config.database,
                "rp": exporter.retention_policy,
                "format": config.format,
                "duration": format_duration(config.shard_duration),
            },
        )

        profiler.start()
        try:
            writer = select_writer(config, self.stdout)
            try:
                exporter.write_to(writer)
            finally:
                writer.close()
        except Exception as e:
            self.logger.error(f"Export failed for {config.database}: {e}")
            raise
        finally:
            profiler.stop()

        log_application_event(
            "export.completed",
            details={
                "database": config.database,
                "records": writer.records_written,
                "size": format_size(writer.bytes_written),
            },
        )
