"""Shared pytest configuration and fixtures for the tsexport test suite.

This module provides:
- Common fixtures (sample records, an on-disk store, fake collaborators)
- Test configuration (isolated log directory, markers)
"""
import json
import os
import sys
from pathlib import Path

import pytest


# Add src/ to path so test modules can import the tsexport package
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from tsexport.models import Record  # noqa: E402

HOUR_NS = 3600 * 1_000_000_000
DAY_NS = 24 * HOUR_NS


@pytest.fixture(autouse=True, scope="session")
def isolated_log_home(tmp_path_factory):
    """Keep log files out of the real user data directory."""
    log_home = tmp_path_factory.mktemp("log_home")
    previous = os.environ.get("XDG_DATA_HOME")
    os.environ["XDG_DATA_HOME"] = str(log_home)
    yield log_home
    if previous is None:
        os.environ.pop("XDG_DATA_HOME", None)
    else:
        os.environ["XDG_DATA_HOME"] = previous


@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def sample_records():
    """Three records in series-key/time order."""
    return [
        Record("cpu", (("host", "a"),), {"usage": 1.5}, 10),
        Record("cpu", (("host", "a"),), {"usage": 2.5}, 20),
        Record("mem", (("host", "a"),), {"free": 100}, 10),
    ]


def _write_store(root: Path, meta: dict, shards: dict) -> Path:
    data_dir = root / "data"
    data_dir.mkdir(parents=True)
    (data_dir / "meta.json").write_text(json.dumps(meta), encoding="utf-8")
    for (db, rp, shard_id), records in shards.items():
        shard_dir = data_dir / db / rp
        shard_dir.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(r.to_dict()) for r in records]
        (shard_dir / f"{shard_id}.jsonl").write_text(
            "\n".join(lines) + "\n", encoding="utf-8"
        )
    config_file = root / "store.json"
    config_file.write_text(json.dumps({"data_dir": "data"}), encoding="utf-8")
    return config_file


@pytest.fixture
def store_config(tmp_path):
    """
    Create a directory-backed store with database ``db0``.

    ``autogen`` (default) has two daily shard groups:
    group 1 covers day 0 with shard 1, group 2 covers day 1 with shards 2 and 3.
    """
    meta = {
        "databases": {
            "db0": {
                "default_retention_policy": "autogen",
                "retention_policies": {
                    "autogen": {
                        "duration": 0,
                        "shard_group_duration": DAY_NS,
                        "shard_groups": [
                            {"id": 2, "start": DAY_NS, "end": 2 * DAY_NS, "shards": [2, 3]},
                            {"id": 1, "start": 0, "end": DAY_NS, "shards": [1]},
                        ],
                    },
                    "empty": {
                        "duration": 0,
                        "shard_group_duration": DAY_NS,
                        "shard_groups": [],
                    },
                },
            }
        }
    }
    shards = {
        ("db0", "autogen", 1): [
            Record("cpu", (("host", "b"),), {"usage": 3.0}, HOUR_NS),
            Record("cpu", (("host", "a"),), {"usage": 1.0}, 2 * HOUR_NS),
            Record("cpu", (("host", "a"),), {"usage": 0.5}, HOUR_NS),
        ],
        ("db0", "autogen", 2): [
            Record("cpu", (("host", "a"),), {"usage": 4.0}, DAY_NS + HOUR_NS),
        ],
        ("db0", "autogen", 3): [
            Record("cpu", (("host", "a"),), {"idle": 96.0}, DAY_NS + HOUR_NS),
        ],
    }
    return _write_store(tmp_path, meta, shards)


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (slower)"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their location."""
    for item in items:
        if "integration" not in item.nodeid:
            item.add_marker(pytest.mark.unit)
