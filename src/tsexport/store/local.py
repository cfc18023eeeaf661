"""
Directory-backed store.

Layout under the data directory::

    meta.json                      database / retention policy / shard group metadata
    <db>/<rp>/<shard_id>.jsonl     one JSON record per line

The store configuration file is a JSON object with a ``data_dir`` key.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from tsexport.constants import (
    DATA_DIR_ENV_VAR,
    DEFAULT_DATA_DIR,
    META_FILE_NAME,
    SHARD_FILE_SUFFIX,
)
from tsexport.logging import get_logger
from tsexport.models import (
    DatabaseInfo,
    Record,
    RetentionPolicyInfo,
    ShardGroupInfo,
)
from .base import Store, StoreError


class LocalStore(Store):
    """Store that reads metadata and shards from a local directory"""

    def __init__(self):
        self.data_dir: Optional[Path] = None
        self._meta: Optional[Dict[str, Any]] = None
        self.logger = get_logger("tsexport.store.local")

    @property
    def is_open(self) -> bool:
        return self._meta is not None

    def open(self, config_path: str) -> None:
        self.data_dir = self._resolve_data_dir(config_path)
        meta_file = self.data_dir / META_FILE_NAME
        self.logger.debug(f"Opening store at {self.data_dir}")

        if not meta_file.exists():
            raise StoreError(f"Store metadata not found: {meta_file}")
        meta = self._load_json(meta_file)
        if not isinstance(meta, dict) or not isinstance(meta.get("databases"), dict):
            raise StoreError(
                f"Invalid store metadata in {meta_file}: Missing 'databases' object"
            )

        self._meta = meta
        self.logger.info(
            f"Store opened: {self.data_dir} ({len(meta['databases'])} database(s))"
        )

    def close(self) -> None:
        if self._meta is not None:
            self.logger.debug(f"Closing store at {self.data_dir}")
        self._meta = None

    def database(self, name: str) -> DatabaseInfo:
        databases = self._require_meta()["databases"]
        if name not in databases:
            raise StoreError(f"database not found: {name}")

        db = databases[name] or {}
        policies = {}
        for rp_name, rp in (db.get("retention_policies") or {}).items():
            policies[rp_name] = RetentionPolicyInfo(
                name=rp_name,
                duration=int(rp.get("duration", 0)),
                shard_group_duration=int(rp.get("shard_group_duration", 0)),
            )
        return DatabaseInfo(
            name=name,
            default_retention_policy=db.get("default_retention_policy", ""),
            retention_policies=policies,
        )

    def shard_groups(self, database: str, retention_policy: str) -> List[ShardGroupInfo]:
        rp = self._retention_policy_meta(database, retention_policy)
        groups = []
        for group in rp.get("shard_groups") or []:
            try:
                groups.append(
                    ShardGroupInfo(
                        id=int(group["id"]),
                        start=int(group["start"]),
                        end=int(group["end"]),
                        shard_ids=tuple(int(s) for s in group.get("shards", [])),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise StoreError(
                    f"Invalid shard group in {database}/{retention_policy}: {e}"
                ) from e
        return sorted(groups, key=lambda g: (g.start, g.id))

    def read_shard(
        self, database: str, retention_policy: str, shard_id: int
    ) -> Iterator[Record]:
        self._require_meta()
        shard_file = (
            self.data_dir / database / retention_policy / f"{shard_id}{SHARD_FILE_SUFFIX}"
        )
        # A shard that was created but never written has no file
        if not shard_file.exists():
            self.logger.debug(f"Shard {shard_id} has no data file, skipping")
            return

        with open(shard_file, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield Record.from_dict(json.loads(line))
                except (json.JSONDecodeError, ValueError, TypeError) as e:
                    raise StoreError(
                        f"Invalid record in {shard_file} line {line_no}: {e}"
                    ) from e

    def _resolve_data_dir(self, config_path: str) -> Path:
        """Work out the data directory from the config file or environment"""
        if not config_path:
            return Path(
                os.environ.get(DATA_DIR_ENV_VAR) or DEFAULT_DATA_DIR
            ).expanduser()

        config_file = Path(config_path).expanduser()
        if not config_file.exists():
            raise StoreError(f"Config file not found: {config_file}")

        config = self._load_json(config_file)
        if not isinstance(config, dict) or not config.get("data_dir"):
            raise StoreError(
                f"Invalid config file {config_file}: Missing 'data_dir' field"
            )

        data_dir = Path(config["data_dir"]).expanduser()
        if not data_dir.is_absolute():
            data_dir = config_file.parent / data_dir
        return data_dir

    def _load_json(self, path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Cannot read {path}: {e}") from e

    def _require_meta(self) -> Dict[str, Any]:
        if self._meta is None:
            raise StoreError("store is not open")
        return self._meta

    def _retention_policy_meta(
        self, database: str, retention_policy: str
    ) -> Dict[str, Any]:
        databases = self._require_meta()["databases"]
        if database not in databases:
            raise StoreError(f"database not found: {database}")
        policies = (databases[database] or {}).get("retention_policies") or {}
        if retention_policy not in policies:
            raise StoreError(
                f"retention policy not found: {database}/{retention_policy}"
            )
        return policies[retention_policy] or {}
