"""
Store interface consumed by the export session.
"""

from abc import ABC, abstractmethod
from typing import Iterator, List

from tsexport.models import DatabaseInfo, Record, ShardGroupInfo


class StoreError(Exception):
    """Raised when the store cannot be opened or queried"""


class Store(ABC):
    """Backing data store. The caller that creates a store owns its lifetime."""

    @abstractmethod
    def open(self, config_path: str) -> None:
        """Open the store described by the configuration at ``config_path``"""

    @abstractmethod
    def close(self) -> None:
        """Release any resources held by the store"""

    @abstractmethod
    def database(self, name: str) -> DatabaseInfo:
        """Return metadata for ``name``, raising StoreError if it does not exist"""

    @abstractmethod
    def shard_groups(self, database: str, retention_policy: str) -> List[ShardGroupInfo]:
        """Return the shard groups of a retention policy"""

    @abstractmethod
    def read_shard(
        self, database: str, retention_policy: str, shard_id: int
    ) -> Iterator[Record]:
        """Yield every record stored in a shard"""
