"""CLI tests through click's CliRunner against a temporary data directory."""

import pytest
from click.testing import CliRunner

from tms.infrastructure.cli.main import cli
from tms.infrastructure.config import Settings


@pytest.fixture
def run(tmp_path):
    runner = CliRunner()
    env = {"TMS_DATA_DIR": str(tmp_path), "TMS_ORG": "acme", "TMS_ACTOR": "alice"}

    def invoke(*args):
        return runner.invoke(cli, list(args), env=env)

    invoke("catalog", "add-product", "--id", "P", "--name", "Paracetamol")
    invoke("stock", "adjust", "--location", "A", "--product", "P", "--quantity", "20")
    return invoke


class TestTransferCommands:

    def test_full_lifecycle(self, run):
        created = run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P:10")
        assert created.exit_code == 0, created.output
        assert "Transfer #1  (status=pending)" in created.output

        dispatched = run("transfer", "dispatch", "--id", "1")
        assert "10 unit(s) in transit" in dispatched.output

        again = run("transfer", "dispatch", "--id", "1")
        assert "already dispatched" in again.output

        received = run("transfer", "receive", "--id", "1", "--lines", "1:12", "--receipt", "r1")
        assert received.exit_code == 0, received.output
        assert "only 10 of 12" in received.output
        assert "status=complete" in received.output

        replayed = run("transfer", "receive", "--id", "1", "--lines", "1:12", "--receipt", "r1")
        assert "already recorded" in replayed.output

        assert "10" == run("stock", "available", "--location", "B", "--product", "P").output.strip()

    def test_receive_all(self, run):
        run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P:10")
        run("transfer", "dispatch", "--id", "1")
        run("transfer", "receive", "--id", "1", "--lines", "1:3")

        received = run("transfer", "receive", "--id", "1", "--all")
        assert received.exit_code == 0, received.output
        assert "status=complete" in received.output
        assert "10" == run("stock", "available", "--location", "B", "--product", "P").output.strip()

    def test_receive_needs_lines_or_all(self, run):
        run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P:10")
        run("transfer", "dispatch", "--id", "1")

        neither = run("transfer", "receive", "--id", "1")
        both = run("transfer", "receive", "--id", "1", "--all", "--lines", "1:3")
        assert neither.exit_code == 2
        assert both.exit_code == 2
        assert "exactly one of --lines or --all" in both.output

    def test_insufficient_stock_is_reported(self, run):
        result = run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P:99")
        assert result.exit_code == 1
        assert "Insufficient stock" in result.output

    def test_bad_line_format(self, run):
        result = run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P10")
        assert result.exit_code == 2
        assert "Expected 'Product[@Lot]:Quantity'" in result.output

    def test_list_and_show(self, run):
        run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P:1", "--notes", "urgent")
        listed = run("transfer", "list", "--status", "pending")
        assert "pending" in listed.output
        shown = run("transfer", "show", "--id", "1")
        assert "urgent" in shown.output
        assert "A -> B" in shown.output

    def test_cancel_and_delete(self, run):
        run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P:1")
        run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P:1")
        assert "cancelled" in run("transfer", "cancel", "--id", "1").output
        assert "deleted" in run("transfer", "delete", "--id", "2").output
        assert "not found" in run("transfer", "show", "--id", "2").output

    def test_other_organization_cannot_see_transfers(self, run, tmp_path):
        run("transfer", "create", "--origin", "A", "--dest", "B", "--lines", "P:1")
        result = CliRunner().invoke(
            cli,
            ["--org", "globex", "transfer", "list"],
            env={"TMS_DATA_DIR": str(tmp_path)},
        )
        assert "No transfers found." in result.output


class TestStockAndCatalogCommands:

    def test_lots(self, run):
        run("catalog", "add-product", "--id", "V", "--lot-tracked")
        run("catalog", "add-lot", "--id", "L1", "--product", "V", "--expires", "2027-05-01")
        run("catalog", "add-lot", "--id", "L2", "--product", "V", "--expires", "2027-01-01")
        run("stock", "adjust", "--location", "A", "--product", "V", "--lot", "L1", "--quantity", "5")
        run("stock", "adjust", "--location", "A", "--product", "V", "--lot", "L2", "--quantity", "5")

        result = run("stock", "lots", "--location", "A", "--product", "V", "--quantity", "7")
        assert result.output.index("L2") < result.output.index("L1")
        assert "Suggested: L2:5, L1:2" in result.output

    def test_bad_expiry(self, run):
        result = run("catalog", "add-lot", "--id", "L1", "--product", "P", "--expires", "soon")
        assert result.exit_code == 2

    def test_show_reserve_release(self, run):
        assert "available 15" in run(
            "stock", "reserve", "--location", "A", "--product", "P", "--quantity", "5"
        ).output
        assert "available 20" in run(
            "stock", "release", "--location", "A", "--product", "P", "--quantity", "5"
        ).output
        assert "A" in run("stock", "show").output

    def test_reconcile_and_movements(self, run):
        assert "agree with the ledger" in run("stock", "reconcile").output
        assert "adjustment" in run("stock", "movements", "--location", "A").output

    def test_catalog_list(self, run):
        assert "Paracetamol" in run("catalog", "list").output


class TestSettings:

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TMS_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("TMS_RETRY_ATTEMPTS", "9")
        settings = Settings()
        assert settings.data_dir == tmp_path
        assert settings.retry_attempts == 9
        assert settings.log_level == "INFO"
