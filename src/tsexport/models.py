"""
Data model shared by the store, the export session and the writers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple, Union

FieldValue = Union[int, float, bool, str]


@dataclass(frozen=True)
class Record:
    """A single point: one measurement, its tags, its fields and a timestamp"""

    measurement: str
    tags: Tuple[Tuple[str, str], ...] = ()
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    time: int = 0  # nanoseconds since the epoch

    @property
    def series_key(self) -> str:
        """Return the series key, e.g. ``cpu,host=a,region=west``"""
        if not self.tags:
            return self.measurement
        tag_str = ",".join(f"{k}={v}" for k, v in self.tags)
        return f"{self.measurement},{tag_str}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Build a record from its JSON representation"""
        if "measurement" not in data:
            raise ValueError("Invalid record: Missing 'measurement' field")
        tags = data.get("tags") or {}
        if not isinstance(tags, dict):
            raise ValueError("Invalid record: 'tags' should be an object")
        fields = data.get("fields") or {}
        if not isinstance(fields, dict):
            raise ValueError("Invalid record: 'fields' should be an object")
        return cls(
            measurement=str(data["measurement"]),
            tags=normalize_tags(tags.items()),
            fields=dict(fields),
            time=int(data.get("time", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON representation of this record"""
        return {
            "measurement": self.measurement,
            "tags": dict(self.tags),
            "fields": dict(self.fields),
            "time": self.time,
        }


def normalize_tags(tags: Iterable[Tuple[str, str]]) -> Tuple[Tuple[str, str], ...]:
    """Sort tags by key so equal tag sets produce equal series keys"""
    return tuple(sorted((str(k), str(v)) for k, v in tags))


@dataclass(frozen=True)
class ShardGroupInfo:
    """A source shard group covering the time range [start, end)"""

    id: int
    start: int
    end: int
    shard_ids: Tuple[int, ...] = ()

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end


@dataclass(frozen=True)
class RetentionPolicyInfo:
    name: str
    duration: int = 0
    shard_group_duration: int = 0


@dataclass(frozen=True)
class DatabaseInfo:
    name: str
    default_retention_policy: str
    retention_policies: Dict[str, RetentionPolicyInfo] = field(default_factory=dict)

    @property
    def retention_policy_names(self) -> List[str]:
        return sorted(self.retention_policies)
