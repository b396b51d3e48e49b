"""
CLI and Configuration Tests

This module tests the outer surfaces of the flag client:
- Settings from arguments and environment variables
- Shared clients from get_client
- The flag inspection CLI
"""

import io
import json
import os
import sys
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

# Fix Unicode encoding for Windows terminal
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding='utf-8')
    sys.stderr.reconfigure(encoding='utf-8')

# Add the project root so we can import flag_client
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from pydantic import ValidationError

import flag_cli
from flag_client import ClientSettings, get_client, shutdown_clients
from flag_fixtures import payload, temp_path


def run_cli(*args):
    """Run the CLI and capture its exit code and output."""
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = flag_cli.main(list(args))
    return code, out.getvalue(), err.getvalue()


def test_settings():
    """Test settings validation and scope parsing."""
    print("⚙️  TESTING SETTINGS")
    print("-" * 50)

    settings = ClientSettings(_env_file=None, scopes=" region/eu, ,cohort/beta ", log_level="debug")
    assert settings.scope_chain == ["region/eu", "cohort/beta"]
    assert settings.log_level == "DEBUG"
    assert settings.debounce_seconds == 0.1
    assert settings.path is None
    print("✅ Scope chain and log level parsed")

    for bad in ({"debounce_seconds": -1}, {"log_level": "chatty"}):
        try:
            ClientSettings(_env_file=None, **bad)
            assert False, f"Should have rejected {bad}"
        except ValidationError:
            pass
    print("✅ Invalid settings rejected")

    old_env = {key: os.environ.get(key) for key in ("FLAGS_SCOPES", "FLAGS_DEBOUNCE_SECONDS")}
    try:
        os.environ["FLAGS_SCOPES"] = "a,b"
        os.environ["FLAGS_DEBOUNCE_SECONDS"] = "0.5"
        from_env = ClientSettings(_env_file=None)
        assert from_env.scope_chain == ["a", "b"]
        assert from_env.debounce_seconds == 0.5
    finally:
        for key, value in old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
    print("✅ Environment variables read")

    print("✅ Settings test passed!")


def test_get_client():
    """Test shared client creation."""
    print("\n🏭 TESTING GET_CLIENT")
    print("-" * 50)

    path = temp_path("test_get_client.json")
    path.write_bytes(payload())
    settings = ClientSettings(_env_file=None, debounce_seconds=0.05)

    try:
        client = get_client(str(path), ["a"], settings=settings)
        assert client.is_loaded
        assert client.is_enabled("shared")
        assert client.subscribed
        assert get_client(str(path), ["a"], settings=settings) is client
        print("✅ Same file and scopes share one client")

        other = get_client(str(path), ["b"], settings=settings)
        assert other is not client
        assert not other.is_enabled("shared")
        print("✅ Different scopes get their own client")

        no_file = get_client(None, [], settings=settings)
        assert not no_file.is_loaded
        assert not no_file.subscribed
        print("✅ No flag file serves empty defaults")
    finally:
        shutdown_clients()
        if path.exists():
            path.unlink()

    assert not client.subscribed
    print("✅ Get client test passed!")


def test_cli_show_and_dump():
    """Test listing and dumping resolved flags."""
    print("\n🖥️  TESTING CLI SHOW AND DUMP")
    print("-" * 50)

    path = temp_path("test_cli.json")
    path.write_bytes(payload())

    try:
        code, out, _ = run_cli("show", str(path), "-s", "region/eu")
        assert code == 0
        assert "region/eu" in out
        assert "abc123" in out
        assert "eu_only" in out
        assert "percentile" in out
        print("✅ Show lists resolved flags")

        code, out, _ = run_cli("dump", str(path), "-s", "a", "-s", "b")
        assert code == 0
        dumped = json.loads(out)
        assert dumped["dcdr"]["features"]["shared"] is False
        assert dumped["dcdr"]["features"]["only_a"] is True
        print("✅ Dump prints the scoped view as JSON")
    finally:
        if path.exists():
            path.unlink()

    print("✅ CLI show and dump test passed!")


def test_cli_check():
    """Test checking single flags."""
    print("\n✔️  TESTING CLI CHECK")
    print("-" * 50)

    path = temp_path("test_cli_check.json")
    path.write_bytes(payload())

    try:
        code, out, _ = run_cli("check", str(path), "new_ui")
        assert code == 0
        assert "Enabled: Yes" in out

        code, out, _ = run_cli("check", str(path), "rollout", "--id", "42")
        assert code == 0
        assert "Rollout: 30%" in out
        assert "Enabled for id 42" in out

        code, out, _ = run_cli("check", str(path), "missing")
        assert code == 1
        assert "not found" in out

        code, _, err = run_cli("check", str(path), "rollout", "--id", "-5")
        assert code == 1
        assert "unsigned 64-bit" in err
        print("✅ Check reports flag evaluation")
    finally:
        if path.exists():
            path.unlink()

    print("✅ CLI check test passed!")


def test_cli_errors():
    """Test CLI failures on missing and malformed files."""
    print("\n💥 TESTING CLI ERRORS")
    print("-" * 50)

    missing = temp_path("test_cli_missing.json")
    code, _, err = run_cli("show", str(missing))
    assert code == 1
    assert "not found" in err

    broken = temp_path("test_cli_broken.json")
    broken.write_text("{ nope", encoding="utf-8")
    try:
        code, _, err = run_cli("dump", str(broken))
        assert code == 1
        assert "Could not parse" in err
    finally:
        broken.unlink()

    code, _, _ = run_cli()
    assert code == 1
    print("✅ CLI errors reported with exit code 1")

    print("✅ CLI errors test passed!")


def main():
    """Run all CLI and configuration tests."""
    print("🧪 CLI AND CONFIGURATION TESTS")
    print("=" * 70)

    test_settings()
    test_get_client()
    test_cli_show_and_dump()
    test_cli_check()
    test_cli_errors()

    print("\n🎉 ALL CLI AND CONFIGURATION TESTS PASSED!")


if __name__ == "__main__":
    main()
