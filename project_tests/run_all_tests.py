"""
Flag Client Test Suite Runner

This script runs all tests across the project in order:
1. Core tests (snapshot parsing, scope resolution, evaluation, live client)
2. Integration tests (change sources, file watching, CLI and settings)

Usage:
    python run_all_tests.py
    python run_all_tests.py --verbose
    python run_all_tests.py --suite core
    python run_all_tests.py --suite integration
    python run_all_tests.py --suite all
"""

import argparse
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Tuple

# Fix Unicode encoding for Windows terminal
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding='utf-8')
    sys.stderr.reconfigure(encoding='utf-8')


SUITE_ORDER = ["core", "integration"]


class TestSuite:
    """Represents a test suite with its tests."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.tests = []

    def add_test(self, test_name: str, test_path: Path, args: list = None, description: str = ""):
        """Add a test to this suite."""
        self.tests.append({
            'name': test_name,
            'path': test_path,
            'args': args or [],
            'description': description
        })


class FlagClientTestRunner:
    """Manages execution of all project test suites."""

    def __init__(self):
        self.suites = {}
        self.setup_test_suites()

    def setup_test_suites(self):
        """Define all test suites and their tests."""
        test_dir = Path(__file__).parent / "client_tests"

        core_suite = TestSuite("core", "Resolution and Evaluation Tests")
        core_suite.add_test("resolver", test_dir / "test_snapshot_and_resolver.py", [], "Snapshot parsing and scope resolution")
        core_suite.add_test("evaluator", test_dir / "test_evaluator.py", [], "Boolean, percentile and scaled queries")
        core_suite.add_test("live_client", test_dir / "test_live_client.py", [], "Reloads, derived clients and atomicity")
        self.suites["core"] = core_suite

        integration_suite = TestSuite("integration", "Change Source and CLI Tests")
        integration_suite.add_test("change_sources", test_dir / "test_change_sources.py", [], "Memory and file change sources")
        integration_suite.add_test("cli", test_dir / "test_cli_and_config.py", [], "Settings, shared clients and CLI")
        self.suites["integration"] = integration_suite

    def run_test(self, test_name: str, test_path: Path, args: list = None, verbose: bool = False) -> bool:
        """Run a single test file."""
        print(f"\n{'='*60}")
        print(f"🧪 RUNNING {test_name.upper()}")
        print(f"{'='*60}")

        start_time = time.time()

        try:
            cmd = [sys.executable, str(test_path)]
            if args:
                cmd.extend(args)

            env = os.environ.copy()
            env['PYTHONIOENCODING'] = 'utf-8'
            if verbose:
                subprocess.run(cmd, capture_output=False, text=True, check=True, env=env)
            else:
                result = subprocess.run(cmd, capture_output=True, text=True, check=True, env=env)
                if result.stdout:
                    print(result.stdout)

            duration = time.time() - start_time
            print(f"\n✅ {test_name} completed successfully in {duration:.2f}s")
            return True

        except subprocess.CalledProcessError as e:
            duration = time.time() - start_time
            print(f"\n❌ {test_name} failed in {duration:.2f}s")
            if not verbose and e.stdout:
                print("STDOUT:", e.stdout)
            if e.stderr:
                print("STDERR:", e.stderr)
            return False

    def run_suite(self, suite_name: str, verbose: bool = False) -> Tuple[int, int]:
        """Run all tests in a suite."""
        if suite_name not in self.suites:
            print(f"❌ Unknown test suite: {suite_name}")
            return 0, 0

        suite = self.suites[suite_name]
        print(f"\n🚀 STARTING {suite.name.upper()} TEST SUITE")
        print(f"📋 {suite.description}")
        print("=" * 80)

        passed = 0
        total = len(suite.tests)

        for test in suite.tests:
            if self.run_test(test['name'], test['path'], test['args'], verbose):
                passed += 1

        print(f"\n📊 {suite.name.upper()} SUITE RESULTS:")
        print(f"✅ Passed: {passed}/{total}")
        print(f"❌ Failed: {total - passed}")

        return passed, total

    def run_all_suites(self, verbose: bool = False) -> bool:
        """Run all test suites."""
        total_passed = 0
        total_tests = 0
        suite_results = {}

        for suite_name in SUITE_ORDER:
            passed, total = self.run_suite(suite_name, verbose)
            suite_results[suite_name] = (passed, total)
            total_passed += passed
            total_tests += total

        print("\n" + "=" * 80)
        print("📊 FLAG CLIENT TEST RESULTS")
        print("=" * 80)

        for suite_name, (passed, total) in suite_results.items():
            suite = self.suites[suite_name]
            status = "✅" if passed == total else "❌"
            print(f"{status} {suite.description}: {passed}/{total}")

        print(f"\n🔢 Overall Results:")
        print(f"✅ Total Passed: {total_passed}")
        print(f"❌ Total Failed: {total_tests - total_passed}")

        if total_passed == total_tests:
            print("\n🎉 ALL TESTS PASSED!")
            return True

        print(f"\n⚠️  {total_tests - total_passed} test(s) failed.")
        print("💡 Use --verbose for detailed output")
        print("💡 Run specific suites with --suite <name>")
        return False

    def list_suites(self):
        """List all available test suites."""
        print("📋 Available Test Suites:")
        print("-" * 40)
        for suite_name, suite in self.suites.items():
            print(f"\n🔧 {suite_name}:")
            print(f"   📝 {suite.description}")
            for test in suite.tests:
                print(f"   • {test['name']}: {test['description']}")


def main():
    """Main test runner entry point."""
    parser = argparse.ArgumentParser(description="Run flag client tests")
    parser.add_argument("--suite", choices=["all"] + SUITE_ORDER,
                        default="all", help="Test suite to run")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--list", action="store_true", help="List available test suites")

    args = parser.parse_args()

    runner = FlagClientTestRunner()

    if args.list:
        runner.list_suites()
        return True

    start_time = time.time()

    try:
        if args.suite == "all":
            success = runner.run_all_suites(args.verbose)
        else:
            passed, total = runner.run_suite(args.suite, args.verbose)
            success = passed == total

        total_duration = time.time() - start_time
        print(f"\n⏱️  Total execution time: {total_duration:.2f}s")

        return success

    except KeyboardInterrupt:
        print("\n\n⚠️  Tests interrupted by user")
        return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
