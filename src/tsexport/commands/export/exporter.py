"""
Export session.

An Exporter reads the shard groups of one database / retention policy
and regroups their records into target buckets of a fixed shard
duration. It can describe that plan or stream the records to a writer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, TextIO, Tuple

from tsexport.constants import DEFAULT_SHARD_DURATION
from tsexport.formats import Writer
from tsexport.logging import get_logger
from tsexport.models import Record, ShardGroupInfo
from tsexport.store import Store, StoreError
from tsexport.utils.duration import format_duration, to_nanoseconds


class ExportError(Exception):
    """Raised when an export session cannot be opened or used"""


@dataclass(frozen=True)
class ExporterConfig:
    database: str
    retention_policy: str = ""
    shard_duration: timedelta = DEFAULT_SHARD_DURATION


@dataclass
class Bucket:
    """A target shard group and the source groups that overlap it"""

    start: int
    end: int
    source_groups: List[ShardGroupInfo] = field(default_factory=list)


def format_timestamp(ns: int) -> str:
    """Render nanoseconds since the epoch as an RFC 3339 UTC timestamp"""
    seconds, remainder = divmod(ns, 1_000_000_000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if remainder:
        text += "." + f"{remainder:09d}".rstrip("0")
    return text + "Z"


def plan_buckets(
    groups: List[ShardGroupInfo], shard_duration_ns: int
) -> List[Bucket]:
    """
    Split the time range covered by ``groups`` into buckets.

    Bucket boundaries are aligned to multiples of the shard duration.
    Buckets that no source group overlaps are left out.
    """
    if not groups:
        return []
    if shard_duration_ns <= 0:
        raise ExportError("shard duration must be positive")

    min_start = min(g.start for g in groups)
    max_end = max(g.end for g in groups)

    buckets = []
    start = (min_start // shard_duration_ns) * shard_duration_ns
    while start < max_end:
        end = start + shard_duration_ns
        overlapping = [g for g in groups if g.overlaps(start, end)]
        if overlapping:
            buckets.append(Bucket(start=start, end=end, source_groups=overlapping))
        start = end
    return buckets


class Exporter:
    """Export session scoped to a database, retention policy and shard duration"""

    def __init__(self, store: Store, config: ExporterConfig):
        self.store = store
        self.config = config
        self.retention_policy: Optional[str] = None
        self.source_groups: List[ShardGroupInfo] = []
        self.buckets: List[Bucket] = []
        self._opened = False
        self._closed = False
        self.logger = get_logger("tsexport.commands.export.exporter")

    @property
    def shard_duration_ns(self) -> int:
        return to_nanoseconds(self.config.shard_duration)

    def open(self) -> None:
        """Resolve the retention policy and compute the export plan"""
        if self._opened:
            return
        try:
            db = self.store.database(self.config.database)
        except StoreError as e:
            raise ExportError(str(e)) from e

        rp_name = self.config.retention_policy or db.default_retention_policy
        if not rp_name:
            raise ExportError(
                f"database {db.name} has no default retention policy; use -rp"
            )
        if rp_name not in db.retention_policies:
            available = ", ".join(db.retention_policy_names) or "none"
            raise ExportError(
                f"retention policy not found: {db.name}/{rp_name} "
                f"(available: {available})"
            )

        self.retention_policy = rp_name
        self.source_groups = self.store.shard_groups(db.name, rp_name)
        self.buckets = plan_buckets(self.source_groups, self.shard_duration_ns)
        self._opened = True
        self.logger.info(
            f"Export session opened for {db.name}/{rp_name}: "
            f"{len(self.source_groups)} source group(s), "
            f"{len(self.buckets)} target group(s)"
        )

    def close(self) -> None:
        """Release the session"""
        if not self._opened:
            raise ExportError("export session is not open")
        if self._closed:
            return
        self._closed = True
        self.logger.debug("Export session closed")

    def print_plan(self, stream: TextIO) -> None:
        """Write a human-readable description of the export to ``stream``"""
        self._check_open()
        if not self.source_groups:
            stream.write("No data to export.\n")
            return

        min_start = min(g.start for g in self.source_groups)
        max_end = max(g.end for g in self.source_groups)
        stream.write(
            f"Source data from: {format_timestamp(min_start)} -> "
            f"{format_timestamp(max_end)}\n\n"
        )

        stream.write(
            f"{'Seq':>3} {'ID':>6} {'Start':<30} {'End':<30} {'#Shards':>7}\n"
        )
        for seq, group in enumerate(self.source_groups):
            stream.write(
                f"{seq:>3} {group.id:>6} {format_timestamp(group.start):<30} "
                f"{format_timestamp(group.end):<30} {len(group.shard_ids):>7}\n"
            )

        stream.write(
            f"\nConverting source from {len(self.source_groups)} shard group(s) "
            f"to {len(self.buckets)} shard group(s) "
            f"of {format_duration(self.config.shard_duration)}:\n\n"
        )
        stream.write(f"{'Seq':>3} {'Start':<30} {'End':<30} Source groups\n")
        for seq, bucket in enumerate(self.buckets):
            ids = ",".join(str(g.id) for g in bucket.source_groups)
            stream.write(
                f"{seq:>3} {format_timestamp(bucket.start):<30} "
                f"{format_timestamp(bucket.end):<30} {ids}\n"
            )

    def write_to(self, writer: Writer) -> None:
        """Stream every record, bucket by bucket, to ``writer``"""
        self._check_open()
        for bucket in self.buckets:
            records = self._read_bucket(bucket)
            self.logger.debug(
                f"Writing bucket {format_timestamp(bucket.start)}: "
                f"{len(records)} record(s)"
            )
            writer.begin_bucket(bucket.start, bucket.end)
            for record in records:
                writer.write(record)

    def _read_bucket(self, bucket: Bucket) -> List[Record]:
        """Collect, merge and order the records that fall inside a bucket"""
        points: Dict[Tuple[str, int], Record] = {}
        for group in bucket.source_groups:
            for shard_id in group.shard_ids:
                for record in self.store.read_shard(
                    self.config.database, self.retention_policy, shard_id
                ):
                    if not bucket.start <= record.time < bucket.end:
                        continue
                    key = (record.series_key, record.time)
                    existing = points.get(key)
                    if existing is not None:
                        # Later shards overwrite fields of the same point
                        record = Record(
                            measurement=record.measurement,
                            tags=record.tags,
                            fields={**existing.fields, **record.fields},
                            time=record.time,
                        )
                    points[key] = record
        return [points[key] for key in sorted(points)]

    def _check_open(self) -> None:
        if not self._opened or self._closed:
            raise ExportError("export session is not open")
