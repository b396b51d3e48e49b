"""
Shared payloads and helpers for the flag client tests.
"""

import json
import time
from pathlib import Path


TEMP_DIR = Path(__file__).parent.parent / ".temp"

SAMPLE_FLAGS = {
    "dcdr": {
        "info": {"current_sha": "abc123"},
        "features": {
            "default": {
                "new_ui": True,
                "rollout": 0.3,
                "ramp": 0.5,
                "shared": False,
                "label": "blue",
            },
            "a": {"shared": True, "only_a": True, "ramp": 0.2},
            "b": {"shared": False, "ramp": 0.8},
            "region": {
                "eu": {"new_ui": False, "eu_only": True},
                "us": {"ramp": 1.0},
            },
        },
    }
}


def payload(document=None) -> bytes:
    """Serialize a flag document (the sample by default)."""
    return json.dumps(SAMPLE_FLAGS if document is None else document).encode("utf-8")


def flags_document(version: str, features: dict) -> dict:
    return {"dcdr": {"info": {"current_sha": version}, "features": features}}


def temp_path(name: str) -> Path:
    """Path inside the organized temp directory, removed if left over."""
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
    path = TEMP_DIR / name
    if path.exists():
        path.unlink()
    return path


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.05) -> bool:
    """Poll until predicate() is true or the timeout expires."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
