import sys

import pytest
import yaml
from click.testing import CliRunner

from wasmenv import VERSION
from wasmenv import __main__ as cli
from wasmenv import gen_config
from wasmenv.scan_config import default_config, load_config

from wasmbuild import env_module


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["wasmenv", *map(str, args)])
    with pytest.raises(SystemExit) as e:
        cli.main()
    return e.value.code


def test_reports_variables(monkeypatch, capsys, wasm_file):
    path = wasm_file(env_module("REDIS_URL", "API_KEY"))
    assert run_cli(monkeypatch, path) == 0

    out = capsys.readouterr().out
    assert "Analyzing WASM module for environment dependencies..." in out
    assert str(path) in out
    assert "Required Environment Variables (2):" in out
    assert "  1. API_KEY\n  2. REDIS_URL\n" in out


def test_reports_nothing_found(monkeypatch, capsys, wasm_file):
    path = wasm_file(env_module("HTTP"))
    assert run_cli(monkeypatch, path) == 0
    out = capsys.readouterr().out
    assert "No environment variable dependencies detected." in out
    assert "Required Environment Variables" not in out


def test_missing_file(monkeypatch, capsys, tmp_path):
    assert run_cli(monkeypatch, tmp_path / "missing.wasm") == 1
    assert "Required" not in capsys.readouterr().out


def test_not_wasm(monkeypatch, wasm_file):
    path = wasm_file(b"#!/bin/sh\necho hi\n", "script.sh")
    assert run_cli(monkeypatch, path) == 1


def test_invalid_config(monkeypatch, wasm_file, tmp_path):
    config = tmp_path / "bad.yaml"
    config.write_text("classifier:\n  bogus: 1\n")
    path = wasm_file(env_module("API_KEY"))
    assert run_cli(monkeypatch, path, "--config", config) == 1


def test_config_and_jobs(monkeypatch, capsys, wasm_file, tmp_path):
    config = tmp_path / "wasmenv.yaml"
    config.write_text("classifier:\n  noise:\n    - pattern: API_KEY\n")
    path = wasm_file(env_module("API_KEY", "DATABASE_URL"))
    assert run_cli(monkeypatch, path, "--config", config, "-j", "2") == 0
    out = capsys.readouterr().out
    assert "Required Environment Variables (1):" in out
    assert "DATABASE_URL" in out


def test_output_file(monkeypatch, wasm_file, tmp_path):
    output = tmp_path / "env.yaml"
    path = wasm_file(env_module("JWT_SECRET"))
    assert run_cli(monkeypatch, path, "--output", output) == 0

    results = yaml.safe_load(output.read_text())
    assert results["environment"] == ["JWT_SECRET"]
    assert results["version"] == VERSION
    assert results["module"].endswith("app.wasm")


def test_version(monkeypatch, capsys):
    assert run_cli(monkeypatch, "--version") == 0
    assert VERSION in capsys.readouterr().out


def test_no_arguments(monkeypatch):
    assert run_cli(monkeypatch) == 2


def test_invalid_jobs(monkeypatch, wasm_file):
    assert run_cli(monkeypatch, wasm_file(env_module("API_KEY")), "-j", "0") == 2


class TestGenConfig:
    def test_writes_defaults(self, tmp_path):
        out = tmp_path / "configs" / "wasmenv.yaml"
        result = CliRunner().invoke(gen_config.main, ["--out", str(out)])
        assert result.exit_code == 0, result.output
        assert load_config(out) == default_config()

    def test_merges_overrides(self, tmp_path):
        overrides = tmp_path / "overrides.yaml"
        overrides.write_text("classifier:\n  keywords: [_ENDPOINT]\n")
        out = tmp_path / "wasmenv.yaml"
        result = CliRunner().invoke(gen_config.main, ["--out", str(out), "--config", str(overrides), "-v"])
        assert result.exit_code == 0, result.output

        written = yaml.safe_load(out.read_text())
        assert "_ENDPOINT" in written["classifier"]["keywords"]
        assert "_KEY" in written["classifier"]["keywords"]

    def test_invalid_overrides(self, tmp_path):
        overrides = tmp_path / "overrides.yaml"
        overrides.write_text("call_site:\n  min_length: 50\n  max_length: 5\n")
        out = tmp_path / "wasmenv.yaml"
        result = CliRunner().invoke(gen_config.main, ["--out", str(out), "--config", str(overrides)])
        assert result.exit_code == 1
        assert not out.exists()
