"""Command-line interface for the message ledger."""

import os
import sys
import click
from dataclasses import fields
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple
import logging

from .categorization.catalog import CategoryCatalog
from .categorization.memory import CategoryMemory
from .categorization.rules import RuleEngine
from .extraction.extractor import EventExtractor
from .ingestion.pipeline import IngestionPipeline
from .models.core import (
    AutomationRule,
    CategoryType,
    ConditionField,
    ConditionOperator,
    IngestionResult,
    ParsedEvent,
    RuleCondition,
    RuleType,
    Unrecognized,
)
from .reports.budget import build_budget_report, save_budget
from .reports.summary import build_spending_summary, category_spending
from .sources.base import MessageSource
from .sources.csv_source import CSVMessageSource
from .sources.jsonl_source import JSONLMessageSource
from .storage.base import LedgerStore, PersistenceError
from .storage.json_store import JSONLedgerStore
from .utils.config_manager import ConfigManager
from .utils.csv_writer import LedgerCSVWriter
from .utils.error_handler import ErrorHandler


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class PesaLedgerCLI:
    """Main CLI class for the message ledger"""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize CLI with configuration"""
        self.config_manager = ConfigManager(config_path)
        self.config = self.config_manager.load_config()
        self.error_handler = ErrorHandler(self.config.log_directory)
        self.csv_writer = LedgerCSVWriter(self.config)
        self._store: Optional[LedgerStore] = None
        self._pipeline: Optional[IngestionPipeline] = None

    @property
    def store(self) -> LedgerStore:
        # Opened on first use so commands that never touch the ledger
        # work without a readable state file
        if self._store is None:
            try:
                self._store = JSONLedgerStore(self.config.state_file, self.error_handler)
            except PersistenceError as e:
                raise click.ClickException(str(e))
        return self._store

    @property
    def pipeline(self) -> IngestionPipeline:
        if self._pipeline is None:
            self._pipeline = IngestionPipeline(
                self.store,
                config=self.config,
                error_handler=self.error_handler
            )
        return self._pipeline

    @property
    def memory(self) -> CategoryMemory:
        return self.pipeline.memory

    @property
    def rule_engine(self) -> RuleEngine:
        return self.pipeline.rule_engine

    @property
    def catalog(self) -> CategoryCatalog:
        return CategoryCatalog(self.store)

    def open_source(self, path: str, source_format: str = 'auto',
                    senders: Optional[List[str]] = None) -> MessageSource:
        """Pick a message source for ``path`` by format or file extension"""
        if source_format == 'auto':
            _, ext = os.path.splitext(path.lower())
            source_format = 'csv' if ext == '.csv' else 'jsonl'

        if source_format == 'csv':
            return CSVMessageSource(path, senders, self.error_handler)
        return JSONLMessageSource(path, senders, self.error_handler)

    def sync_file(self, path: str, days: Optional[int] = None,
                  source_format: str = 'auto',
                  senders: Optional[List[str]] = None) -> IngestionResult:
        source = self.open_source(path, source_format, senders)
        since = None
        if days is not None:
            since = datetime.now() - timedelta(days=days)
        return self.pipeline.sync(source, since)

    def extract(self, text: str) -> ParsedEvent:
        extractor = EventExtractor(self.config.enabled_providers, error_handler=self.error_handler)
        return extractor.extract(text)

    def generate_config_template(self, output_path: str) -> bool:
        """Generate configuration template file"""
        try:
            self.config_manager.save_config_template(output_path)
            return True
        except OSError as e:
            self.error_handler.log_error(
                f"Failed to generate config template: {str(e)}",
                "INVALID_CONFIG_VALUE",
                context={'output_path': output_path},
                exception=e
            )
            return False

    def build_rule(self, name: str, rule_type: str, category_id: int,
                   hours: Optional[str] = None,
                   amount_above: Optional[float] = None,
                   amount_below: Optional[float] = None,
                   amount_equals: Optional[float] = None,
                   contains: Optional[str] = None,
                   matches: Optional[str] = None) -> AutomationRule:
        """Assemble a rule from command-line condition options"""
        conditions = []
        if hours:
            start, _, end = hours.partition('-')
            if not start.strip().isdigit() or not end.strip().isdigit():
                raise ValueError(f"Hours must look like START-END, got {hours!r}")
            start_hour, end_hour = int(start), int(end)
            if not (0 <= start_hour <= 23 and 0 <= end_hour <= 23):
                raise ValueError("Hours must be between 0 and 23")
            conditions.append(RuleCondition(
                ConditionField.TIME, ConditionOperator.BETWEEN,
                {'start': start_hour, 'end': end_hour}
            ))

        for value, operator in ((amount_above, ConditionOperator.GREATER_THAN),
                                (amount_below, ConditionOperator.LESS_THAN),
                                (amount_equals, ConditionOperator.EQUALS)):
            if value is not None:
                conditions.append(RuleCondition(ConditionField.AMOUNT, operator, value))

        if contains:
            conditions.append(RuleCondition(ConditionField.DESCRIPTION, ConditionOperator.CONTAINS, contains))
        if matches:
            conditions.append(RuleCondition(ConditionField.DESCRIPTION, ConditionOperator.EQUALS, matches))

        if not conditions:
            raise ValueError("A rule needs at least one condition")

        return AutomationRule(
            id=None,
            name=name,
            applies_to=RuleType(rule_type.upper()),
            conditions=conditions,
            target_category_id=category_id
        )

    @staticmethod
    def parse_allocations(values: Tuple[str, ...]) -> Dict[int, Decimal]:
        """Turn ``CATEGORY_ID=AMOUNT`` options into an allocation mapping"""
        allocations = {}
        for value in values:
            category_id, separator, amount = value.partition('=')
            if not separator or not category_id.strip().isdigit():
                raise ValueError(f"Allocations must look like CATEGORY_ID=AMOUNT, got {value!r}")
            try:
                allocations[int(category_id)] = Decimal(amount.strip())
            except InvalidOperation:
                raise ValueError(f"Invalid allocation amount in {value!r}")
        return allocations

    def find_rule(self, rule_id: int) -> Optional[AutomationRule]:
        for rule in self.store.list_rules():
            if rule.id == rule_id:
                return rule
        return None


def _end_of_day(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.now()
    return value.replace(hour=23, minute=59, second=59)


def _describe_event(event: ParsedEvent) -> List[str]:
    lines = [type(event).__name__]
    for f in fields(event):
        value = getattr(event, f.name)
        if value is None or value == '':
            continue
        if hasattr(value, 'value'):
            value = value.value
        lines.append(f"  {f.name}: {value}")
    return lines


def _describe_rule(rule: AutomationRule) -> str:
    state = "enabled" if rule.enabled else "disabled"
    conditions = ", ".join(
        f"{c.field.value} {c.operator.value} {c.value}" for c in rule.conditions
    )
    return (
        f"[{rule.id}] {rule.name} ({rule.applies_to.value}, {state}) "
        f"-> category {rule.target_category_id}: {conditions}"
    )


# CLI Commands using Click
@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Pesa Ledger - Build a categorized ledger from M-PESA and bank SMS"""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj['cli'] = PesaLedgerCLI(config)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--days', type=int, help='Only ingest messages from the last N days')
@click.option('--format', 'source_format', type=click.Choice(['auto', 'jsonl', 'csv']),
              default='auto', help='Message export format')
@click.option('--sender', '-s', multiple=True, help='Only ingest messages from this sender')
@click.pass_context
def sync(ctx, file, days, source_format, sender):
    """Ingest messages from an SMS export file"""

    cli_instance = ctx.obj['cli']

    try:
        result = cli_instance.sync_file(file, days, source_format, list(sender) or None)
    except (PersistenceError, OSError, ValueError) as e:
        click.echo(f"✗ Sync failed: {str(e)}")
        sys.exit(1)

    click.echo("✓ Sync completed")
    click.echo(f"  Messages seen: {result.messages_seen}")
    click.echo(f"  Already processed: {result.messages_skipped}")
    click.echo(f"  New transactions: {result.new_transactions}")
    click.echo(f"  Updated transactions: {result.updated_transactions}")
    click.echo(f"  Credit events: {result.credit_events}")
    click.echo(f"  Unrecognized: {result.unrecognized}")
    if result.fee_months_updated:
        click.echo(f"  Fee months updated: {', '.join(result.fee_months_updated)}")


@cli.command()
@click.argument('text')
@click.pass_context
def extract(ctx, text):
    """Show what a single message body parses to"""

    cli_instance = ctx.obj['cli']
    event = cli_instance.extract(text)

    for line in _describe_event(event):
        click.echo(line)
    if isinstance(event, Unrecognized):
        sys.exit(1)


@cli.command()
@click.option('--as-of', type=click.DateTime(formats=['%Y-%m-%d']),
              help='Replay credit events through this day (default: now)')
@click.pass_context
def fees(ctx, as_of):
    """Recompute monthly credit facility fees"""

    cli_instance = ctx.obj['cli']

    try:
        months = cli_instance.pipeline.recompute_fees(_end_of_day(as_of))
    except PersistenceError as e:
        click.echo(f"✗ Error recomputing fees: {str(e)}")
        sys.exit(1)

    if not months:
        click.echo("No credit facility fees found")
        return

    click.echo("Credit Facility Fees")
    click.echo("=" * 40)
    for month in months:
        fee_row = cli_instance.store.get_transaction(f"FEES-{month}")
        click.echo(f"  {month}: {fee_row.amount}")


@cli.command()
@click.option('--as-of', type=click.DateTime(formats=['%Y-%m-%d']),
              help='Summarize through this day (default: now)')
@click.pass_context
def summary(ctx, as_of):
    """Show spending summary"""

    cli_instance = ctx.obj['cli']
    as_of = _end_of_day(as_of)

    try:
        result = build_spending_summary(cli_instance.store, as_of, cli_instance.pipeline.simulator)
        by_category = category_spending(cli_instance.store, f"{as_of.year}-{as_of.month:02d}")
    except PersistenceError as e:
        click.echo(f"✗ Error reading ledger: {str(e)}")
        sys.exit(1)

    click.echo(f"Spending Summary ({as_of:%Y-%m-%d})")
    click.echo("=" * 40)
    click.echo(f"Current balance: {result.current_balance}")
    click.echo(f"Spent today: {result.daily_total}")
    click.echo(f"Spent this week: {result.weekly_total}")
    click.echo(f"Spent this month: {result.monthly_total}")
    click.echo(f"Transaction costs this month: {result.monthly_transaction_cost}")
    click.echo(f"Total spent: {result.total_spent}")
    click.echo(f"Total income: {result.total_income}")
    click.echo(f"Transactions: {result.transaction_count}")
    click.echo(f"Credit outstanding: {result.credit_outstanding}")

    if by_category:
        click.echo()
        click.echo("Spending by category:")
        for category_id, total in sorted(by_category.items(), key=lambda item: -item[1]):
            click.echo(f"  {cli_instance.catalog.name_for(category_id)}: {total}")


@cli.command()
@click.argument('transaction_id')
@click.argument('category_id', type=int)
@click.option('--no-remember', is_flag=True, help='Do not learn the counterparty mapping')
@click.pass_context
def categorize(ctx, transaction_id, category_id, no_remember):
    """Assign a category to a transaction"""

    cli_instance = ctx.obj['cli']

    try:
        updated = cli_instance.memory.categorize_transaction(
            transaction_id, category_id, remember=not no_remember
        )
    except PersistenceError as e:
        click.echo(f"✗ Error saving category: {str(e)}")
        sys.exit(1)

    if updated is None:
        click.echo(f"✗ Transaction not found: {transaction_id}")
        sys.exit(1)

    label = cli_instance.catalog.name_for(category_id)
    click.echo(f"✓ {transaction_id} ({updated.counterparty_name}) -> {label}")


@cli.group()
def rules():
    """Manage automation rules"""


@rules.command('list')
@click.pass_context
def list_rules(ctx):
    """List automation rules"""

    cli_instance = ctx.obj['cli']
    all_rules = cli_instance.store.list_rules()

    if not all_rules:
        click.echo("No automation rules defined")
        return

    for rule in all_rules:
        click.echo(_describe_rule(rule))


@rules.command('add')
@click.argument('name')
@click.option('--type', 'rule_type', type=click.Choice(['expense', 'income']),
              default='expense', help='Transaction type the rule applies to')
@click.option('--category', 'category_id', type=int, required=True, help='Target category id')
@click.option('--hours', help='Hour window START-END, e.g. 22-4')
@click.option('--amount-above', type=float, help='Amount greater than')
@click.option('--amount-below', type=float, help='Amount less than')
@click.option('--amount-equals', type=float, help='Amount equal to')
@click.option('--contains', help='Counterparty contains keyword')
@click.option('--matches', help='Counterparty equals text')
@click.option('--apply', 'apply_now', is_flag=True, help='Also apply to existing transactions')
@click.pass_context
def add_rule(ctx, name, rule_type, category_id, hours, amount_above, amount_below,
             amount_equals, contains, matches, apply_now):
    """Create an automation rule"""

    cli_instance = ctx.obj['cli']

    try:
        rule = cli_instance.build_rule(name, rule_type, category_id, hours,
                                       amount_above, amount_below, amount_equals,
                                       contains, matches)
        rule = cli_instance.store.save_rule(rule)
        click.echo(f"✓ Rule created: {_describe_rule(rule)}")
        if apply_now:
            count = cli_instance.rule_engine.apply_rule_to_existing(rule)
            click.echo(f"  Applied to {count} existing transactions")
    except ValueError as e:
        click.echo(f"✗ Invalid rule: {str(e)}")
        sys.exit(1)
    except PersistenceError as e:
        click.echo(f"✗ Error saving rule: {str(e)}")
        sys.exit(1)


@rules.command('toggle')
@click.argument('rule_id', type=int)
@click.option('--enable/--disable', default=True, help='Enable or disable the rule')
@click.pass_context
def toggle_rule(ctx, rule_id, enable):
    """Enable or disable a rule"""

    cli_instance = ctx.obj['cli']
    if not cli_instance.store.toggle_rule(rule_id, enable):
        click.echo(f"✗ Rule not found: {rule_id}")
        sys.exit(1)
    click.echo(f"✓ Rule {rule_id} {'enabled' if enable else 'disabled'}")


@rules.command('delete')
@click.argument('rule_id', type=int)
@click.pass_context
def delete_rule(ctx, rule_id):
    """Delete a rule"""

    cli_instance = ctx.obj['cli']
    if not cli_instance.store.delete_rule(rule_id):
        click.echo(f"✗ Rule not found: {rule_id}")
        sys.exit(1)
    click.echo(f"✓ Rule {rule_id} deleted")


@rules.command('apply')
@click.argument('rule_id', type=int)
@click.pass_context
def apply_rule(ctx, rule_id):
    """Apply a rule to every stored transaction"""

    cli_instance = ctx.obj['cli']
    rule = cli_instance.find_rule(rule_id)
    if rule is None:
        click.echo(f"✗ Rule not found: {rule_id}")
        sys.exit(1)

    count = cli_instance.rule_engine.apply_rule_to_existing(rule)
    click.echo(f"✓ Rule '{rule.name}' applied to {count} transactions")


@cli.group()
def categories():
    """Manage the category catalogue"""


@categories.command('list')
@click.option('--type', 'category_type', type=click.Choice(['expense', 'income']),
              help='Only show categories of this type')
@click.pass_context
def list_categories(ctx, category_type):
    """List categories, seeding the defaults on first use"""

    cli_instance = ctx.obj['cli']
    catalog = cli_instance.catalog

    try:
        seeded = catalog.ensure_defaults()
    except PersistenceError as e:
        click.echo(f"✗ Error saving categories: {str(e)}")
        sys.exit(1)
    if seeded:
        click.echo(f"✓ Created {seeded} default categories")

    wanted = CategoryType(category_type.upper()) if category_type else None
    for category in catalog.list_categories(wanted):
        custom = " custom" if category.is_custom else ""
        click.echo(
            f"[{category.id}] {category.name} ({category.type.value}, "
            f"{category.icon}, {category.color}{custom})"
        )


@categories.command('add')
@click.argument('name')
@click.option('--type', 'category_type', type=click.Choice(['expense', 'income']),
              default='expense', help='Category type')
@click.option('--icon', default='tag', help='Icon name')
@click.option('--color', default='#64748b', help='Hex color, e.g. #3b82f6')
@click.option('--description', default='', help='Optional description')
@click.pass_context
def add_category(ctx, name, category_type, icon, color, description):
    """Create a custom category"""

    cli_instance = ctx.obj['cli']

    try:
        category = cli_instance.catalog.add_category(
            name, CategoryType(category_type.upper()), icon, color, description
        )
    except ValueError as e:
        click.echo(f"✗ Invalid category: {str(e)}")
        sys.exit(1)
    except PersistenceError as e:
        click.echo(f"✗ Error saving category: {str(e)}")
        sys.exit(1)

    click.echo(f"✓ Category created: [{category.id}] {category.name}")


@cli.group()
def budget():
    """Plan monthly budgets and compare them with spending"""


@budget.command('set')
@click.argument('month')
@click.option('--income', type=float, help='Planned income for the month')
@click.option('--allocate', '-a', multiple=True,
              help='CATEGORY_ID=AMOUNT; an amount of 0 removes the allocation')
@click.pass_context
def set_budget(ctx, month, income, allocate):
    """Set income and category allocations for MONTH (YYYY-MM)"""

    cli_instance = ctx.obj['cli']

    try:
        allocations = cli_instance.parse_allocations(allocate)
        total_income = Decimal(str(income)) if income is not None else None
        saved = save_budget(cli_instance.store, month, total_income, allocations)
    except (ValueError, ArithmeticError) as e:
        click.echo(f"✗ Invalid budget: {str(e)}")
        sys.exit(1)
    except PersistenceError as e:
        click.echo(f"✗ Error saving budget: {str(e)}")
        sys.exit(1)

    click.echo(f"✓ Budget saved for {month}")
    click.echo(f"  Income: {saved.total_income}")
    click.echo(f"  Allocated: {saved.total_allocated}")
    click.echo(f"  Remaining income: {saved.remaining_income}")


@budget.command('show')
@click.argument('month', required=False)
@click.pass_context
def show_budget(ctx, month):
    """Compare allocations with spending for MONTH (default: current month)"""

    cli_instance = ctx.obj['cli']
    month = month or f"{datetime.now():%Y-%m}"

    try:
        report = build_budget_report(cli_instance.store, month)
    except ValueError as e:
        click.echo(f"✗ Invalid month: {str(e)}")
        sys.exit(1)

    click.echo(f"Budget {report.month}")
    click.echo("=" * 40)
    click.echo(f"Income: {report.total_income}")
    click.echo(f"Allocated: {report.total_allocated}")
    click.echo(f"Remaining income: {report.remaining_income}")
    click.echo(f"Spent: {report.total_spent}")
    if report.uncategorized_spent:
        click.echo(f"Uncategorized: {report.uncategorized_spent}")

    for line in report.lines:
        if not line.allocated and not line.spent:
            continue
        marker = "✗" if line.over_budget else "✓"
        click.echo(f"  {marker} {line.name}: {line.spent} of {line.allocated} ({line.remaining} left)")


@cli.command('reset-processed')
@click.confirmation_option(prompt='Forget which messages were processed?')
@click.pass_context
def reset_processed(ctx):
    """Forget processed message ids so the next sync re-reads everything"""

    cli_instance = ctx.obj['cli']
    count = cli_instance.store.clear_processed_messages()
    click.echo(f"✓ Cleared {count} processed message ids")


@cli.command()
@click.argument('output', required=False)
@click.pass_context
def export(ctx, output):
    """Export the ledger to CSV"""

    cli_instance = ctx.obj['cli']
    output_path = output or cli_instance.csv_writer.default_output_path()
    transactions = cli_instance.store.list_transactions()

    if not transactions:
        click.echo("No transactions to export")
        return

    if cli_instance.csv_writer.write_transactions(transactions, output_path):
        click.echo(f"✓ Exported {len(transactions)} transactions to {output_path}")
    else:
        click.echo(f"✗ Failed to write {output_path}")
        sys.exit(1)


@cli.command('init-config')
@click.argument('output_path', default='ledger_config.json')
@click.option('--format', type=click.Choice(['json', 'yaml']), default='json', help='Configuration file format')
@click.pass_context
def init_config(ctx, output_path, format):
    """Generate configuration template file"""

    cli_instance = ctx.obj['cli']

    if format == 'yaml' and not output_path.endswith(('.yml', '.yaml')):
        output_path = output_path.replace('.json', '.yml')
    elif format == 'json' and not output_path.endswith('.json'):
        output_path = output_path.replace('.yml', '.json').replace('.yaml', '.json')

    if cli_instance.generate_config_template(output_path):
        click.echo(f"✓ Configuration template generated: {output_path}")
    else:
        click.echo("✗ Failed to generate configuration template")
        sys.exit(1)


if __name__ == '__main__':
    cli()
