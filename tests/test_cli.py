from __future__ import annotations

import json

import pytest

from threadlab import cli
from threadlab.labs import LABS


def test_cli_json_output(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--lab", "race", "--json", "--show-capabilities"])
    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [record["name"] for record in payload["results"]] == ["race"]
    assert payload["results"][0]["output"]["synchronized"] == 20_000
    assert payload["capabilities"]["cpu_count"] >= 1


def test_cli_text_output(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--lab", "futures", "--scale", "0.01"])
    assert exit_code == 0
    output = capsys.readouterr().out
    assert output.startswith("futures [handle]")
    assert "Ready: Pizza" in output


def test_cli_lists_labs(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--list"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert [line.split()[0] for line in lines] == list(LABS)


def test_cli_rejects_unknown_lab() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--lab", "virtual-threads"])


def test_cli_rejects_negative_scale() -> None:
    with pytest.raises(SystemExit):
        cli.main(["--lab", "futures", "--scale", "-1"])
