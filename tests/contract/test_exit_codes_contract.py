from __future__ import annotations

from pathlib import Path

import asset_import.cli.__main__ as cli

"""Exit code contract: 0 all rows written, 2 partial, 1 fatal."""


def test_exit_code_values():
    assert (cli.EXIT_SUCCESS_ALL, cli.EXIT_PARTIAL_FAILURE, cli.EXIT_FATAL) == (0, 2, 1)


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    code = cli.main([str(temp_workdir / "missing.xlsx")])
    assert code == 1
    assert "ERROR workbook:" in capsys.readouterr().out


def test_exit_code_fatal_explicit_config_missing(temp_workdir: Path, capsys):
    code = cli.main(["any.xlsx", "--config", str(temp_workdir / "config" / "nope.yml")])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out
