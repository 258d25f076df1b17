"""
Tests for the pool-api command line.
"""
import json
import logging

import pandas as pd
import pytest

from pool_api.cli import build_parser, main

from conftest import BOND_ADR, ROOT_ADR
from log_builders import bond_log, h

OWNER = "0x" + "12" * 20


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_addresses_prints_json(service, capsys):
    assert main(["addresses", ROOT_ADR], service=service) == 0
    out = json.loads(capsys.readouterr().out)
    assert out['bond_contract_adr'] == BOND_ADR


def test_logs_exported_to_csv(service, ledger, capsys, tmp_path):
    ledger.logs = [
        bond_log(10, h(1), OWNER, timestamp=100, state=0),
        bond_log(11, h(1), OWNER, timestamp=110, state=4),
    ]
    path = tmp_path / "bond_logs.csv"

    assert main(["logs", "bond", ROOT_ADR, "--hash", h(1), "--csv", str(path)], service=service) == 0

    frame = pd.read_csv(path)
    assert list(frame['block_number']) == [11, 10]
    assert list(frame['state']) == ["ISSUED", "CREATED"]
    out = json.loads(capsys.readouterr().out)
    assert len(out['event_logs']) == 2


def test_error_returns_one(service, capsys):
    assert main(["status", "0x" + "99" * 20], service=service) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "\"status_code\": 406" in captured.err


def test_bank_logs_arguments():
    args = build_parser().parse_args(["bank-logs", ROOT_ADR, "--account-type", "FUNDING_ACCOUNT",
                                      "--success", "negative"])
    assert args.account_type == "FUNDING_ACCOUNT"
    assert args.success == "negative"
    assert args.from_block == 0
