"""
End-to-end runs of the cpplite command over the sample programs in tests/e2e.

Each case directory holds main.cpl and expected.json with the exit code,
the exact stdout, optional extra CLI args and an optional stderr substring.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from cpplite.driver import EXIT_FAILURE, EXIT_OK, EXIT_USAGE, check_source, main, run_source

E2E_DIR = Path(__file__).parent / "e2e"
CASES = sorted(p for p in E2E_DIR.iterdir() if (p / "expected.json").exists())


@pytest.mark.parametrize("case_dir", CASES, ids=[p.name for p in CASES])
def test_e2e_case(case_dir, capsys):
    expected = json.loads((case_dir / "expected.json").read_text())
    argv = [str(case_dir / "main.cpl"), *expected.get("args", [])]
    code = main(argv)
    captured = capsys.readouterr()
    assert code == expected["exit_code"], captured.err
    assert captured.out == expected["stdout"]
    stderr_contains = expected.get("stderr_contains")
    if stderr_contains is not None:
        assert stderr_contains in captured.err
        assert captured.err.startswith("cpplite: ")
    else:
        assert captured.err == ""


def test_missing_file_is_a_usage_error(tmp_path, capsys):
    code = main([str(tmp_path / "nope.cpl")])
    assert code == EXIT_USAGE
    assert "cpplite: error: cannot read" in capsys.readouterr().err


def test_bad_arguments_exit_with_usage_code():
    with pytest.raises(SystemExit) as excinfo:
        main(["--no-such-flag"])
    assert excinfo.value.code == EXIT_USAGE


def test_bool_ordering_is_a_runtime_error(tmp_path, capsys):
    source = tmp_path / "bool_order.cpl"
    source.write_text("int main() { print true < false; return 0; }")
    assert main([str(source)]) == EXIT_FAILURE
    assert "cpplite: runtime error: " in capsys.readouterr().err


def test_verbose_flag_enables_debug_logging(tmp_path, capsys):
    source = tmp_path / "ok.cpl"
    source.write_text("int main() { return 0; }")
    assert main([str(source), "-vv"]) == EXIT_OK
    assert logging.getLogger("cpplite").level == logging.DEBUG
    err = capsys.readouterr().err
    assert "cpplite.interp: enter main" in err
    assert main([str(source)]) == EXIT_OK
    assert logging.getLogger("cpplite").level == logging.WARNING


def test_deep_recursion_is_reported(tmp_path, capsys):
    source = tmp_path / "forever.cpl"
    source.write_text("int down(int n) { return down(n + 1); } int main() { return down(0); }")
    assert main([str(source)]) == EXIT_FAILURE
    assert "maximum call depth exceeded" in capsys.readouterr().err


def test_run_source_and_check_source_helpers():
    result = run_source("int x; int main() { x = 2; return x * 21; }")
    assert str(result.result) == "42"
    assert result.globals.dump() == ["x = 2"]
    transformed = check_source("float f; int main() { f = 1; return 0; }")
    assert transformed.function("main") is not None
