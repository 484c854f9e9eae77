"""Nomina Engine Command Line Interface.

Runs the calculators from a shell and prints JSON:
- Settlements (finiquito / liquidación)
- ISR against JSON tables
- Contributions against a JSON rate table
- Formula evaluation and preview

Usage:
    python -m nomina_engine.cli settlement --salary 300 --start 2020-01-01 \\
        --termination 2024-01-01 --type renuncia_voluntaria
    python -m nomina_engine.cli settlement --salary 500 --start 2022-03-01 \\
        --termination 2024-03-01 --type despido_injustificado \\
        --vacation-balance-days 20 --deduction prestamo=1000
    python -m nomina_engine.cli tax --income 15000 --periodicity mensual \\
        --tax-table isr.json --subsidy-table subsidio.json
    python -m nomina_engine.cli contributions --base 524.64 --days 15 --rate-table imss.json
    python -m nomina_engine.cli evaluate "SALARIO_DIARIO * 15" --var SALARIO_DIARIO=350
    python -m nomina_engine.cli preview "MIN(SALARIO_DIARIO, 3 * UMA_DIARIA)" --examples
    python -m nomina_engine.cli variables
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable

from nomina_engine.calculators.concepts import STANDARD_VARIABLES, example_context
from nomina_engine.calculators.contributions import compute_contributions
from nomina_engine.calculators.errors import NominaEngineError
from nomina_engine.calculators.formula import FormulaEvaluator
from nomina_engine.calculators.severance import SettlementPolicy, compute_settlement
from nomina_engine.calculators.tables import (
    load_contribution_table,
    load_subsidy_table,
    load_tax_table,
)
from nomina_engine.calculators.tax_calculator import compute_tax
from nomina_engine.calculators.types import (
    ConceptKind,
    EmploymentPeriod,
    Periodicity,
    SettlementLineItem,
    TerminationType,
)


def parse_decimal(s: str) -> Decimal:
    """Parse a decimal argument."""
    try:
        value = Decimal(s)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {s!r}") from None
    if not value.is_finite():
        raise argparse.ArgumentTypeError(f"not a finite number: {s!r}")
    return value


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_variable(s: str) -> tuple[str, Decimal]:
    """Parse NAME=VALUE."""
    name, sep, value = s.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {s!r}")
    return name.strip(), parse_decimal(value.strip())


def load_json(path: str) -> dict[str, Any]:
    """Read a JSON table payload."""
    return json.loads(Path(path).read_text(encoding="utf-8"))


class NominaCli:
    """Nomina Engine Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()
        self.evaluator = FormulaEvaluator()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m nomina_engine.cli",
            description="Mexican payroll calculations",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # settlement command
        settlement = subparsers.add_parser(
            "settlement",
            help="Compute a finiquito / liquidación",
        )
        settlement.add_argument("--salary", type=parse_decimal, required=True, help="Daily integrated salary")
        settlement.add_argument("--start", type=parse_date, required=True, help="Start date (YYYY-MM-DD)")
        settlement.add_argument(
            "--termination",
            type=parse_date,
            required=True,
            help="Termination date, first day not worked (YYYY-MM-DD)",
        )
        settlement.add_argument(
            "--type",
            choices=[t.value for t in TerminationType],
            required=True,
            help="Termination type",
        )
        settlement.add_argument("--paid-bonus-days", type=parse_decimal, default=Decimal("0"))
        settlement.add_argument("--paid-vacation-days", type=parse_decimal, default=Decimal("0"))
        settlement.add_argument("--unpaid-salary-days", type=parse_decimal, default=Decimal("0"))
        settlement.add_argument(
            "--minimum-wage",
            type=parse_decimal,
            default=SettlementPolicy.minimum_wage,
            help="Daily general minimum wage (default: %(default)s)",
        )
        settlement.add_argument(
            "--bonus-days",
            type=int,
            default=SettlementPolicy.bonus_days,
            help="Annual bonus (aguinaldo) days, at least 15 (default: %(default)s)",
        )
        settlement.add_argument(
            "--vacation-premium-percent",
            type=parse_decimal,
            default=SettlementPolicy.vacation_premium_percent,
            help="Vacation premium percent, at least 25 (default: %(default)s)",
        )
        settlement.add_argument(
            "--vacation-balance-days",
            type=parse_decimal,
            default=None,
            help="Pending vacation days from the kardex; replaces the statutory table",
        )
        settlement.add_argument(
            "--deduction",
            type=parse_variable,
            action="append",
            default=[],
            metavar="CONCEPT=AMOUNT",
            help="Outstanding debt to subtract (repeatable)",
        )

        # tax command
        tax = subparsers.add_parser("tax", help="Compute ISR for one period")
        tax.add_argument("--income", type=parse_decimal, required=True, help="Taxable income")
        tax.add_argument(
            "--periodicity",
            choices=[p.value for p in Periodicity],
            default=Periodicity.MONTHLY.value,
        )
        tax.add_argument("--tax-table", required=True, help="ISR table JSON file")
        tax.add_argument("--subsidy-table", required=True, help="Subsidy table JSON file")

        # contributions command
        contributions = subparsers.add_parser("contributions", help="Compute social security contributions")
        contributions.add_argument("--base", type=parse_decimal, required=True, help="Daily contribution base")
        contributions.add_argument("--days", type=int, default=1)
        contributions.add_argument("--rate-table", required=True, help="Rate table JSON file")

        # evaluate / preview commands
        for name, help_text in (
            ("evaluate", "Evaluate a formula"),
            ("preview", "Substitute known variables into a formula"),
        ):
            sub = subparsers.add_parser(name, help=help_text)
            sub.add_argument("formula", help="Formula text")
            sub.add_argument(
                "--var",
                type=parse_variable,
                action="append",
                default=[],
                metavar="NAME=VALUE",
                help="Variable value (repeatable)",
            )
            sub.add_argument(
                "--examples",
                action="store_true",
                help="Start from the documented example values",
            )

        # variables command
        subparsers.add_parser("variables", help="List documented formula variables")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "settlement": self._cmd_settlement,
            "tax": self._cmd_tax,
            "contributions": self._cmd_contributions,
            "evaluate": self._cmd_evaluate,
            "preview": self._cmd_preview,
            "variables": self._cmd_variables,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return handler(parsed)
        except NominaEngineError as e:
            print(f"ERROR ({e.kind}): {e}", file=sys.stderr)
            return 1
        except (OSError, json.JSONDecodeError) as e:
            print(f"ERROR: cannot read table: {e}", file=sys.stderr)
            return 1

    def _print(self, payload: Any) -> None:
        print(json.dumps(payload, indent=2, ensure_ascii=False))

    def _context(self, args: argparse.Namespace) -> dict[str, Decimal]:
        context: dict[str, Decimal] = example_context() if args.examples else {}
        context.update(dict(args.var))
        return context

    def _cmd_settlement(self, args: argparse.Namespace) -> int:
        """Compute a settlement."""
        result = compute_settlement(
            EmploymentPeriod(
                daily_integrated_salary=args.salary,
                start_date=args.start,
                termination_date=args.termination,
            ),
            TerminationType(args.type),
            args.paid_bonus_days,
            args.paid_vacation_days,
            policy=SettlementPolicy(
                minimum_wage=args.minimum_wage,
                bonus_days=args.bonus_days,
                vacation_premium_percent=args.vacation_premium_percent,
            ),
            unpaid_salary_days=args.unpaid_salary_days,
            vacation_balance_days=args.vacation_balance_days,
            deductions=[
                SettlementLineItem(
                    concept=concept,
                    description="",
                    calculation_trace="",
                    amount=amount,
                    kind=ConceptKind.DEDUCTION,
                )
                for concept, amount in args.deduction
            ],
        )
        self._print({**result.to_dict(), "fingerprint": result.fingerprint()})
        return 0

    def _cmd_tax(self, args: argparse.Namespace) -> int:
        """Compute ISR."""
        result = compute_tax(
            args.income,
            Periodicity(args.periodicity),
            load_tax_table(load_json(args.tax_table)),
            load_subsidy_table(load_json(args.subsidy_table)),
        )
        self._print(result.to_dict())
        return 0

    def _cmd_contributions(self, args: argparse.Namespace) -> int:
        """Compute contributions."""
        items = compute_contributions(
            args.base,
            load_contribution_table(load_json(args.rate_table)),
            args.days,
        )
        self._print([item.to_dict() for item in items])
        return 0

    def _cmd_evaluate(self, args: argparse.Namespace) -> int:
        """Evaluate a formula."""
        result = self.evaluator.evaluate(args.formula, self._context(args))
        self._print({"formula": args.formula, "result": str(result)})
        return 0

    def _cmd_preview(self, args: argparse.Namespace) -> int:
        """Preview a formula."""
        self._print(self.evaluator.preview(args.formula, self._context(args)).to_dict())
        return 0

    def _cmd_variables(self, args: argparse.Namespace) -> int:
        """List documented variables."""
        self._print([variable.to_dict() for variable in STANDARD_VARIABLES])
        return 0


def main() -> int:
    """CLI entry point."""
    cli = NominaCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
