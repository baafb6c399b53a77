"""Tests for the cbtc command line interface."""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta

import httpx
import pytest
from click.testing import CliRunner

from cbtc_cli.main import cli

from conftest import KEYCLOAK, LEDGER, RECEIVER, REGISTRY, SENDER, holding_contract, offer_contract

CAROL = "carol::1220cccc"


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("CBTC_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CBTC_LEDGER_HOST", LEDGER)
    monkeypatch.setenv("CBTC_REGISTRY_URL", REGISTRY)
    monkeypatch.setenv("CBTC_KEYCLOAK_HOST", KEYCLOAK)
    monkeypatch.setenv("CBTC_KEYCLOAK_CLIENT_ID", "cbtc-cli")
    monkeypatch.setenv("CBTC_KEYCLOAK_USERNAME", "alice")
    monkeypatch.setenv("CBTC_KEYCLOAK_PASSWORD", "hunter2")
    monkeypatch.setenv("CBTC_PARTY_ID", SENDER)
    monkeypatch.setenv("CBTC_MAX_RETRIES", "1")


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def invoke(fake):
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(cli, list(args), obj={"transport": httpx.MockTransport(fake)})

    return _invoke


class TestStatus:
    """Tests for the status command."""

    def test_shows_configuration(self, invoke):
        """Should print endpoints without revealing the password."""
        result = invoke("status")

        assert result.exit_code == 0
        assert LEDGER in result.output
        assert "hunter2" not in result.output

    def test_missing_party(self, invoke, monkeypatch):
        """Should refuse party-scoped commands without a party."""
        monkeypatch.delenv("CBTC_PARTY_ID")

        result = invoke("balance")

        assert result.exit_code == 2
        assert "CBTC_PARTY_ID" in result.output


class TestBalance:
    """Tests for the balance command."""

    def test_lists_holdings(self, invoke, fake):
        """Should show each holding and the total."""
        fake.holdings = [holding_contract("h1", "1.5"), holding_contract("h2", "2")]

        result = invoke("balance")

        assert result.exit_code == 0
        assert "3.5" in result.output
        assert "2 holding(s)" in result.output

    def test_login_failure(self, invoke, fake):
        """Should report authentication errors and exit 1."""
        fake.token_queue.append(httpx.Response(401, json={"error_description": "Invalid user credentials"}))

        result = invoke("balance")

        assert result.exit_code == 1
        assert "Invalid user credentials" in result.output


class TestTransfers:
    """Tests for send and distribute."""

    def test_send(self, invoke, fake):
        """Should submit one transfer and print its update."""
        fake.holdings = [holding_contract("h1", "5")]

        result = invoke("send", RECEIVER, "1.25")

        assert result.exit_code == 0
        assert "update-1" in result.output
        assert fake.submitted_transfers()[0]["receiver"] == RECEIVER

    def test_send_uses_configured_deadline(self, invoke, fake, monkeypatch):
        """Should apply CBTC_EXECUTE_BEFORE_HOURS to the submitted transfer."""
        monkeypatch.setenv("CBTC_EXECUTE_BEFORE_HOURS", "1")
        fake.holdings = [holding_contract("h1", "5")]

        result = invoke("send", RECEIVER, "1.0")

        assert result.exit_code == 0
        transfer = fake.submitted_transfers()[0]
        offset = datetime.fromisoformat(transfer["executeBefore"]) - datetime.fromisoformat(transfer["requestedAt"])
        assert offset == timedelta(hours=1)

    def test_distribute(self, invoke, fake, tmp_path):
        """Should pay every CSV row and write the results file."""
        fake.holdings = [holding_contract("h1", "5")]
        csv_file = tmp_path / "payees.csv"
        csv_file.write_text(f"receiver,amount\n{RECEIVER},1\n{CAROL},2\n")
        results_file = tmp_path / "results.jsonl"

        result = invoke(
            "distribute", str(csv_file), "--reference-base", "june", "--results-file", str(results_file)
        )

        assert result.exit_code == 0
        assert "Succeeded: 2" in result.output
        lines = [json.loads(line) for line in results_file.read_text().splitlines()]
        assert [line["receiver"] for line in lines] == [RECEIVER, CAROL]
        assert all(line["success"] for line in lines)
        assert all(line["reference"] for line in lines)

    def test_distribute_partial_failure_exits_1(self, invoke, fake, tmp_path):
        """Should exit 1 when any transfer failed."""
        fake.holdings = [holding_contract("h1", "5")]
        fake.submit_queue.append(httpx.Response(500))
        csv_file = tmp_path / "payees.csv"
        csv_file.write_text(f"receiver,amount\n{RECEIVER},1\n{CAROL},2\n")

        result = invoke("distribute", str(csv_file))

        assert result.exit_code == 1
        assert "Failed: 1" in result.output

    def test_distribute_bad_csv(self, invoke, tmp_path):
        """Should report a malformed CSV as a usage error."""
        csv_file = tmp_path / "payees.csv"
        csv_file.write_text("receiver,amount\nbob::1,zero\n")

        result = invoke("distribute", str(csv_file))

        assert result.exit_code == 2
        assert "not a decimal" in result.output


class TestUtxos:
    """Tests for consolidate and split."""

    def test_consolidate_below_threshold(self, invoke, fake):
        """Should do nothing below the threshold."""
        fake.holdings = [holding_contract("h1", "1"), holding_contract("h2", "1")]

        result = invoke("consolidate")

        assert result.exit_code == 0
        assert "nothing to do" in result.output
        assert fake.submissions == []

    def test_consolidate_with_threshold(self, invoke, fake):
        """Should merge when the given threshold is reached."""
        fake.holdings = [holding_contract("h1", "1"), holding_contract("h2", "1")]

        result = invoke("consolidate", "--threshold", "2")

        assert result.exit_code == 0
        assert "out-1" in result.output
        assert fake.submitted_transfers()[0]["amount"] == "2"

    def test_split(self, invoke, fake):
        """Should print the produced holdings."""
        fake.holdings = [holding_contract("h1", "10")]

        result = invoke("split", "1", "2")

        assert result.exit_code == 0
        assert "out-1, out-2" in result.output

    def test_split_failure_lists_completed_outputs(self, invoke, fake):
        """Should show which outputs landed before a failed step."""
        fake.holdings = [holding_contract("h1", "10")]
        fake.submit_queue.extend([lambda r: fake._auto_submit(json.loads(r.content)), httpx.Response(500)])

        result = invoke("split", "1", "2")

        assert result.exit_code == 1
        assert "Completed before the failure: out-1" in result.output


class TestOffers:
    """Tests for offer commands."""

    def test_incoming(self, invoke, fake, monkeypatch):
        """Should list offers addressed to the party."""
        monkeypatch.setenv("CBTC_PARTY_ID", RECEIVER)
        fake.offers = [offer_contract("offer-a", SENDER, RECEIVER, "1.0")]

        result = invoke("offers", "incoming")

        assert result.exit_code == 0
        assert "1 offer(s)" in result.output

    def test_accept_all(self, invoke, fake, monkeypatch):
        """Should accept every offer with the requested batch size."""
        monkeypatch.setenv("CBTC_PARTY_ID", RECEIVER)
        fake.offers = [offer_contract(f"offer-{i}", SENDER, RECEIVER, "1") for i in range(3)]

        result = invoke("offers", "accept-all", "--batch-size", "2")

        assert result.exit_code == 0
        assert [len(s["commands"]) for s in fake.submissions] == [2, 1]
        assert "Succeeded: 3" in result.output

    def test_withdraw_all_nothing_pending(self, invoke, fake):
        """Should say so when nothing is pending."""
        result = invoke("offers", "withdraw-all")

        assert result.exit_code == 0
        assert "No pending offers" in result.output
