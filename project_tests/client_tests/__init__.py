"""
Flag Client Testing Package

Testing suite for the scoped flag client.
"""

from .test_snapshot_and_resolver import main as run_resolver_tests
from .test_evaluator import main as run_evaluator_tests
from .test_live_client import main as run_live_client_tests
from .test_change_sources import main as run_change_source_tests
from .test_cli_and_config import main as run_cli_tests

__all__ = [
    "run_resolver_tests",
    "run_evaluator_tests",
    "run_live_client_tests",
    "run_change_source_tests",
    "run_cli_tests",
]
