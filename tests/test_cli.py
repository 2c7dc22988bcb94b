"""Tests for the command-line interface."""

import json
import os

import pytest
from click.testing import CliRunner

from pesa_ledger.cli import cli
from pesa_ledger.storage.json_store import JSONLedgerStore


SENT = (
    "AB12CD Confirmed. Ksh1,200.00 sent to JOHN DOE on 5/3/25 at 10:00 AM. "
    "New M-PESA balance is Ksh500.00. Transaction cost, Ksh15.00."
)
DRAWDOWN = (
    "TL5FV06V3A Confirmed. Fuliza M-Pesa amount is Ksh 70.00. Access Fee charged Ksh 0.70. "
    "Total Fuliza M-Pesa outstanding amount is Ksh244.15 due on 03/12/25."
)


class TestCLI:
    """Test cases for the pesa-ledger commands"""

    @pytest.fixture(autouse=True)
    def workspace(self, tmp_path):
        self.runner = CliRunner()
        self.tmp_path = tmp_path
        self.state_file = str(tmp_path / "state.json")
        self.config_file = str(tmp_path / "config.json")
        with open(self.config_file, 'w') as f:
            json.dump({
                "state_file": self.state_file,
                "export_directory": str(tmp_path / "exports"),
                "sync_window_days": 36500
            }, f)

    def invoke(self, *args, **kwargs):
        return self.runner.invoke(cli, ['-c', self.config_file] + list(args), **kwargs)

    def write_export(self, *bodies):
        path = self.tmp_path / "sms.jsonl"
        with open(path, 'w') as f:
            for index, body in enumerate(bodies, start=1):
                f.write(json.dumps({
                    "_id": index, "address": "MPESA", "body": body,
                    "date": 1762160400000 + index * 60000
                }) + "\n")
        return str(path)

    def test_extract_recognized(self):
        result = self.invoke('extract', SENT)

        assert result.exit_code == 0
        assert "StandardTransaction" in result.output
        assert "confirmation_code: AB12CD" in result.output
        assert "amount: 1200.00" in result.output

    def test_extract_unrecognized(self):
        result = self.invoke('extract', "hello there")

        assert result.exit_code == 1
        assert "Unrecognized" in result.output

    def test_sync_and_resync(self):
        export = self.write_export(SENT, DRAWDOWN, "noise")

        first = self.invoke('sync', export)
        second = self.invoke('sync', export)

        assert first.exit_code == 0, first.output
        assert "New transactions: 2" in first.output
        assert "Credit events: 1" in first.output
        assert "Already processed: 3" in second.output

        store = JSONLedgerStore(self.state_file)
        assert store.get_transaction("AB12CD") is not None

    def test_categorize(self):
        self.invoke('sync', self.write_export(SENT))

        result = self.invoke('categorize', 'AB12CD', '4')

        assert result.exit_code == 0
        store = JSONLedgerStore(self.state_file)
        assert store.get_transaction("AB12CD").category_id == 4
        assert len(store.list_category_memory()) == 1

    def test_categorize_unknown(self):
        result = self.invoke('categorize', 'NOPE', '4')

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_rules_lifecycle(self):
        self.invoke('sync', self.write_export(SENT))

        added = self.invoke('rules', 'add', 'Family', '--category', '6', '--contains', 'john', '--apply')
        listed = self.invoke('rules', 'list')
        toggled = self.invoke('rules', 'toggle', '1', '--disable')
        deleted = self.invoke('rules', 'delete', '1')

        assert added.exit_code == 0, added.output
        assert "Applied to 1 existing transactions" in added.output
        assert "Family" in listed.output
        assert toggled.exit_code == 0
        assert deleted.exit_code == 0
        assert JSONLedgerStore(self.state_file).get_transaction("AB12CD").category_id == 6
        assert JSONLedgerStore(self.state_file).list_rules() == []

    def test_rules_add_requires_condition(self):
        result = self.invoke('rules', 'add', 'Empty', '--category', '6')

        assert result.exit_code == 1
        assert "Invalid rule" in result.output

    def test_rules_add_rejects_bad_hours(self):
        result = self.invoke('rules', 'add', 'Nights', '--category', '6', '--hours', '25-4')

        assert result.exit_code == 1

    def test_fees_and_summary(self):
        self.invoke('sync', self.write_export(DRAWDOWN, SENT))

        fees = self.invoke('fees', '--as-of', '2025-11-05')
        summary = self.invoke('summary', '--as-of', '2025-11-05')

        assert fees.exit_code == 0, fees.output
        assert "2025-11:" in fees.output
        assert summary.exit_code == 0, summary.output
        assert "Credit outstanding: 244.15" in summary.output

    def test_fees_without_credit(self):
        result = self.invoke('fees')

        assert "No credit facility fees found" in result.output

    def test_categories_list_seeds_defaults(self):
        first = self.invoke('categories', 'list')
        second = self.invoke('categories', 'list', '--type', 'income')

        assert first.exit_code == 0, first.output
        assert "default categories" in first.output
        assert "[1] Food & Dining (EXPENSE" in first.output
        assert "default categories" not in second.output
        assert "Salary (INCOME" in second.output
        assert "Groceries" not in second.output

    def test_categories_add(self):
        added = self.invoke('categories', 'add', 'Chama', '--icon', 'users', '--color', '#ec4899')
        duplicate = self.invoke('categories', 'add', 'chama')

        assert added.exit_code == 0, added.output
        assert "[1] Chama" in added.output
        assert duplicate.exit_code == 1
        assert "Invalid category" in duplicate.output
        assert JSONLedgerStore(self.state_file).get_category(1).color == "#ec4899"

    def test_categorize_shows_category_name(self):
        self.invoke('sync', self.write_export(SENT))
        self.invoke('categories', 'add', 'Family')

        result = self.invoke('categorize', 'AB12CD', '1')

        assert "-> Family" in result.output

    def test_budget_set_and_show(self):
        self.invoke('sync', self.write_export(SENT))
        self.invoke('categories', 'add', 'Family')
        self.invoke('categorize', 'AB12CD', '1')

        saved = self.invoke('budget', 'set', '2025-03', '--income', '5000', '-a', '1=1000')
        shown = self.invoke('budget', 'show', '2025-03')

        assert saved.exit_code == 0, saved.output
        assert "Remaining income: 4000.00" in saved.output
        assert shown.exit_code == 0, shown.output
        assert "Spent: 1200.00" in shown.output
        assert "✗ Family: 1200.00 of 1000.00 (-200.00 left)" in shown.output

    @pytest.mark.parametrize("args", [
        ['2025-13', '--income', '100'],
        ['2025-03', '-a', 'food=100'],
        ['2025-03', '-a', '1=lots'],
        ['2025-03', '--income', '-5'],
    ])
    def test_budget_set_rejects_bad_input(self, args):
        result = self.invoke('budget', 'set', *args)

        assert result.exit_code == 1
        assert "Invalid budget" in result.output

    def test_budget_show_rejects_bad_month(self):
        result = self.invoke('budget', 'show', 'March')

        assert result.exit_code == 1

    def test_reset_processed(self):
        self.invoke('sync', self.write_export(SENT))

        result = self.invoke('reset-processed', '--yes')

        assert result.exit_code == 0
        assert "Cleared 1" in result.output
        assert not JSONLedgerStore(self.state_file).is_message_processed("1")

    def test_export(self):
        self.invoke('sync', self.write_export(SENT))
        output = str(self.tmp_path / "ledger.csv")

        result = self.invoke('export', output)

        assert result.exit_code == 0
        assert os.path.exists(output)

    def test_init_config(self):
        output = str(self.tmp_path / "ledger_config.yaml")

        result = self.invoke('init-config', output, '--format', 'yaml')

        assert result.exit_code == 0
        assert os.path.exists(output)

    def test_corrupted_state_reports_error(self):
        with open(self.state_file, 'w') as f:
            f.write("{oops")

        result = self.invoke('rules', 'list')

        assert result.exit_code == 1
        assert "Cannot read ledger state" in result.output
