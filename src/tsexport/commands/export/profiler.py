"""
CPU and heap profiling around an export run.

The CPU profile is written in the marshalled format ``pstats.Stats``
loads; the heap profile is a pickled ``tracemalloc.Snapshot`` readable
with ``tracemalloc.Snapshot.load``.
"""

import cProfile
import marshal
import pickle
import sys
import tracemalloc
from typing import BinaryIO, Optional, TextIO

import typer

from tsexport.constants import MEM_PROFILE_FRAMES
from tsexport.logging import get_logger


class ProfilerController:
    """Owns the optional CPU and heap profile files for one run"""

    def __init__(self, stderr: Optional[TextIO] = None):
        self.stderr = stderr if stderr is not None else sys.stderr
        self.logger = get_logger("tsexport.commands.export.profiler")
        self.cpu: Optional[BinaryIO] = None
        self.mem: Optional[BinaryIO] = None
        self._cpu_profiler: Optional[cProfile.Profile] = None
        self._tracing = False

    def prepare(self, config) -> None:
        """
        Create the requested profile files.

        A profile path that cannot be created is a usage problem, not a
        data problem: a diagnostic goes to stderr and the process exits.

        Raises:
            typer.Exit: If a profile file cannot be created
        """
        if config.cpu_profile:
            self.cpu = self._create(config.cpu_profile, "cpuprofile")
        if config.mem_profile:
            self.mem = self._create(config.mem_profile, "memprofile")

    def start(self) -> None:
        """Begin sampling for every profile file that is open"""
        if self.cpu is not None and self._cpu_profiler is None:
            self._cpu_profiler = cProfile.Profile()
            self._cpu_profiler.enable()
            self.logger.debug(f"CPU profiling started: {self.cpu.name}")

        if self.mem is not None and not self._tracing:
            if not tracemalloc.is_tracing():
                tracemalloc.start(MEM_PROFILE_FRAMES)
                self._tracing = True
            self.logger.debug(f"Heap profiling started: {self.mem.name}")

    def stop(self) -> None:
        """Flush and close the profile files. Safe to call more than once."""
        if self.cpu is not None:
            try:
                if self._cpu_profiler is not None:
                    self._cpu_profiler.disable()
                    self._cpu_profiler.create_stats()
                    marshal.dump(self._cpu_profiler.stats, self.cpu)
                    self.logger.info(f"CPU profile written: {self.cpu.name}")
            finally:
                self.cpu.close()
                self.cpu = None
                self._cpu_profiler = None

        if self.mem is not None:
            try:
                if tracemalloc.is_tracing():
                    snapshot = tracemalloc.take_snapshot()
                    pickle.dump(snapshot, self.mem, pickle.HIGHEST_PROTOCOL)
                    self.logger.info(f"Heap profile written: {self.mem.name}")
            finally:
                if self._tracing:
                    tracemalloc.stop()
                    self._tracing = False
                self.mem.close()
                self.mem = None

    def _create(self, path: str, flag: str) -> BinaryIO:
        try:
            return open(path, "wb")
        except OSError as e:
            self.logger.error(f"{flag}: {e}")
            print(f"{flag}: {e}", file=self.stderr)
            # Close anything already created before exiting
            self.stop()
            raise typer.Exit(1)
