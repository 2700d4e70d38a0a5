"""
main.py – CLI entry point for the GHG accounting and reduction-planning engine.

Usage
-----
Calculate an inventory from a JSON/CSV file of activity inputs or a saved
scenario snapshot:
    python -m ghg_engine.main calculate --file "inputs/site.json" --region JP

Project the emissions trajectory with the strategies stored in a snapshot:
    python -m ghg_engine.main timeline --file "out/site/snapshot.json" --target 30

Regulatory lookups:
    python -m ghg_engine.main legislation --region uk --revenue 60000000 --employees 300
    python -m ghg_engine.main offsets --region AU --emissions 80000

Common options:
    --outdir "out/"    write result.json + snapshot.json (calculate only)
    --use-db           load factors from the emission_factors table (needs DATABASE_URL)
    --verbose
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ghg_engine.compliance import ComplianceWeights
from ghg_engine.config import Config, get_config
from ghg_engine.constants import SCOPE_LABELS
from ghg_engine.db import DatabaseFactorProvider, test_connection
from ghg_engine.io_utils import load_session, write_all_artifacts
from ghg_engine.legislation import (
    applicable_legislation,
    normalize_jurisdiction,
    reporting_group,
    reporting_timeline,
)
from ghg_engine.offsets import compute_offset_requirement
from ghg_engine.resolver import load_catalog
from ghg_engine.session import CalculationResult, CalculationSession, SnapshotError, recalculate

console = Console()


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def _configure_logging(cfg: Config, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)-8s %(name)s %(message)s")


def _session_from_args(args: argparse.Namespace, cfg: Config) -> CalculationSession | None:
    """Load the session named by --file and apply CLI overrides; None on error."""
    path = Path(args.file)
    if not path.exists():
        console.print(f"[red]Error:[/] File not found: {path}")
        return None
    try:
        session = load_session(path)
    except (ValueError, SnapshotError) as exc:
        console.print(f"[red]Error:[/] Could not read {path}: {exc}")
        return None

    changes = {}
    if args.region:
        changes["region"] = args.region
    elif not session.region:
        changes["region"] = cfg.default_jurisdiction
    if args.year:
        changes["reporting_year"] = args.year
    if getattr(args, "target", None) is not None:
        changes["reduction_target"] = args.target
    if changes:
        session = replace(session, **changes)

    if args.use_db:
        if not cfg.database_url:
            console.print("[yellow]Warning:[/] --use-db given but DATABASE_URL is not set; using built-in factors.")
        else:
            provider = DatabaseFactorProvider(cfg.database_url)
            year = session.reporting_year or date.today().year
            session = replace(session, factor_catalog=tuple(load_catalog(provider, session.jurisdiction, year)))
    return session


def _recalculate(session: CalculationSession, cfg: Config) -> CalculationResult:
    return recalculate(
        session,
        horizon=cfg.timeline_horizon,
        weights=ComplianceWeights.from_mapping(cfg.compliance_weights),
    )


def _print_emissions(result: CalculationResult) -> None:
    """Render the scope totals and the per-source breakdown."""
    em = result.emissions
    table = Table(title=f"GHG Inventory – {result.session.jurisdiction}", show_lines=False)
    table.add_column("Scope", style="bold")
    table.add_column("tCO2e", justify="right", style="green")
    table.add_column("Share", justify="right")
    for scope, value in ((1, em.scope1), (2, em.scope2), (3, em.scope3)):
        table.add_row(SCOPE_LABELS[scope], f"{value:,.2f}", f"{result.shares[scope]:.1f}%")
    table.add_row("[bold]Total[/]", f"[bold]{em.total:,.2f}[/]", "100.0%" if em.total > 0 else "0.0%")
    console.print(table)

    if result.breakdown:
        sources = Table(title="By source")
        sources.add_column("Source", style="cyan")
        sources.add_column("Scope", justify="center")
        sources.add_column("tCO2e", justify="right")
        sources.add_column("Share", justify="right")
        for row in result.breakdown:
            sources.add_row(row.label, str(row.scope), f"{row.tco2e:,.2f}", f"{row.share_pct:.1f}%")
        console.print(sources)

    if result.resolved.missing_factors:
        console.print(
            f"[yellow]No emission factor for:[/] {', '.join(result.resolved.missing_factors)} "
            "[dim](counted as 0)[/]"
        )


def _print_timeline(result: CalculationResult) -> None:
    table = Table(title=f"Reduction trajectory (target {result.target.target_percent:.0f}%)")
    table.add_column("Year", style="bold")
    table.add_column("Baseline", justify="right", style="dim")
    table.add_column("Projected", justify="right", style="green")
    table.add_column("Reduction", justify="right")
    table.add_column("Target", justify="right", style="cyan")
    for point in result.timeline:
        colour = "green" if point.emissions <= point.target else "red"
        table.add_row(
            str(point.year),
            f"{point.baseline:,.1f}",
            f"[{colour}]{point.emissions:,.1f}[/]",
            f"{point.reduction:,.1f}",
            f"{point.target:,.1f}",
        )
    console.print(table)
    t = result.target
    status = "[green]on track[/]" if t.on_track else f"[red]gap {t.gap:,.1f} tCO2e[/]"
    console.print(
        f"Required reduction [bold]{t.required_reduction:,.1f}[/] tCO2e, "
        f"planned [bold]{t.planned_reduction:,.1f}[/] tCO2e – {status}"
    )


def _print_compliance(result: CalculationResult) -> None:
    if not result.legislation:
        console.print("[dim]No reporting instrument applies at these thresholds.[/]")
        return
    table = Table(title="Applicable legislation", show_lines=True)
    table.add_column("Instrument", style="bold")
    table.add_column("Reason")
    table.add_column("Readiness", justify="right")
    table.add_column("Missing")
    for instrument in result.legislation:
        s = result.compliance[instrument.name]
        colour = "green" if s.is_complete else "yellow"
        table.add_row(
            instrument.name,
            instrument.reason or "",
            f"[{colour}]{s.percentage}%[/]",
            ", ".join(s.missing),
        )
    console.print(table)
    console.print(f"[dim]{next(iter(result.compliance.values())).notice}[/]")


# ─────────────────────────────────────────────────────────────
# Sub-command handlers
# ─────────────────────────────────────────────────────────────

def cmd_calculate(args: argparse.Namespace) -> int:
    """Handle: python -m ghg_engine.main calculate --file <path>."""
    cfg = get_config()
    _configure_logging(cfg, args.verbose)
    session = _session_from_args(args, cfg)
    if session is None:
        return 1

    result = _recalculate(session, cfg)
    _print_emissions(result)
    _print_compliance(result)

    offsets = result.offsets
    if offsets.is_required:
        amount = f"{offsets.offset_amount:,.1f} tCO2e" if offsets.tier_label is None else offsets.tier_label
        console.print(Panel(f"{offsets.description}\nOffset obligation: [bold]{amount}[/]",
                            title="Mandatory offsets", border_style="red"))

    if args.outdir:
        name = Path(args.file).stem
        paths = write_all_artifacts(name=name, outdir=Path(args.outdir), result=result)
        console.print(f"[green]Written:[/] {paths['result']}  {paths['snapshot']}")
    return 0


def cmd_timeline(args: argparse.Namespace) -> int:
    """Handle: python -m ghg_engine.main timeline --file <snapshot>."""
    cfg = get_config()
    _configure_logging(cfg, args.verbose)
    session = _session_from_args(args, cfg)
    if session is None:
        return 1
    result = _recalculate(session, cfg)
    confirmed = [s for s in result.session.reduction_strategies if s.is_confirmed]
    console.print(
        f"Baseline [bold]{result.emissions.total:,.2f}[/] tCO2e, "
        f"{len(confirmed)} confirmed of {len(result.session.reduction_strategies)} strategies"
    )
    _print_timeline(result)
    return 0


def cmd_legislation(args: argparse.Namespace) -> int:
    """Handle: python -m ghg_engine.main legislation --region <name>."""
    cfg = get_config()
    _configure_logging(cfg, args.verbose)
    region = normalize_jurisdiction(args.region, cfg.default_jurisdiction)
    instruments = applicable_legislation(region, args.revenue, args.employees, args.emissions)

    table = Table(title=f"Legislation – {region}", show_lines=True)
    table.add_column("Instrument", style="bold")
    table.add_column("Full name")
    table.add_column("Scope 3", justify="center")
    table.add_column("Targets", justify="center")
    table.add_column("Reason")
    for instrument in instruments:
        table.add_row(
            instrument.name,
            instrument.full_name,
            "✓" if instrument.requires_scope3 else "",
            "✓" if instrument.requires_reduction_targets else "",
            instrument.reason or "",
        )
    console.print(table)

    group = reporting_group(args.revenue, args.employees, args.emissions)
    console.print(f"Reporting group: [bold]{group if group is not None else 'none'}[/]")
    for milestone in reporting_timeline(region, args.year):
        console.print(f"  {milestone.date}  {milestone.milestone}: {milestone.action}")
    return 0


def cmd_offsets(args: argparse.Namespace) -> int:
    """Handle: python -m ghg_engine.main offsets --region <name> --emissions <t>."""
    cfg = get_config()
    _configure_logging(cfg, args.verbose)
    req = compute_offset_requirement(args.region or cfg.default_jurisdiction, args.emissions)

    table = Table(title=f"Offset requirement – {req.jurisdiction}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Mandatory regime", "yes" if req.mandatory else "no")
    table.add_row("Threshold (tCO2e)", f"{req.threshold_value:,.0f}")
    table.add_row("Required", "[red]yes[/]" if req.is_required else "[green]no[/]")
    table.add_row("Offset share", req.tier_label or f"{req.offset_percentage:.0f}%")
    table.add_row("Offset amount (tCO2e)", f"{req.offset_amount:,.1f}")
    table.add_row("Carbon neutral", f"{req.voluntary_benchmarks.carbon_neutral:,.1f}")
    table.add_row("Science-based target", f"{req.voluntary_benchmarks.science_based_target:,.1f}")
    table.add_row("Net zero", f"{req.voluntary_benchmarks.net_zero:,.1f}")
    console.print(table)
    console.print(f"Compliance credits: {', '.join(req.allowed_credit_types) or '–'}")
    console.print(f"Voluntary credits:  {', '.join(req.voluntary_credit_types)}")
    if req.description:
        console.print(f"[dim]{req.description}[/]")
    return 0


def cmd_test_db(_args: argparse.Namespace) -> int:
    """Handle: python -m ghg_engine.main test-db. Verify PostgreSQL connection (DATABASE_URL)."""
    cfg = get_config()
    if not cfg.database_url:
        console.print(
            "[red]Error:[/] DATABASE_URL is not set. Set it in .env or the environment."
        )
        return 1
    ok, err = test_connection(cfg.database_url)
    if ok:
        console.print("[green]PostgreSQL connection OK.[/]")
        return 0
    console.print(f"[red]PostgreSQL connection failed:[/] {err}")
    return 1


# ─────────────────────────────────────────────────────────────
# Argument parsing
# ─────────────────────────────────────────────────────────────

def _build_shared_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments shared by the file-based sub-commands."""
    parser.add_argument(
        "--file",
        required=True,
        help='JSON/CSV activity inputs or a snapshot, e.g. "inputs/site.json"',
    )
    parser.add_argument("--region", default=None, help="Jurisdiction name or code (e.g. AU, uk, Japan)")
    parser.add_argument("--year", type=int, default=None, help="Reporting year / first timeline year")
    parser.add_argument(
        "--use-db",
        action="store_true",
        default=False,
        dest="use_db",
        help="Load emission factors from the database (falls back to built-ins)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )


def build_parser() -> argparse.ArgumentParser:
    """Construct and return the top-level argument parser."""
    root = argparse.ArgumentParser(
        prog="python -m ghg_engine.main",
        description="GHG emissions accounting & reduction planning – local CLI tool.",
    )
    sub = root.add_subparsers(dest="command", required=True)

    # ── calculate ───────────────────────────────────────────────
    p_calc = sub.add_parser("calculate", help="Calculate scope emissions and compliance readiness.")
    _build_shared_args(p_calc)
    p_calc.add_argument("--target", type=float, default=None, help="Reduction target in percent")
    p_calc.add_argument("--outdir", default=None, help="Write result.json and snapshot.json here")

    # ── timeline ────────────────────────────────────────────────
    p_timeline = sub.add_parser("timeline", help="Project emissions with confirmed strategies and credits.")
    _build_shared_args(p_timeline)
    p_timeline.add_argument("--target", type=float, default=None, help="Reduction target in percent")

    # ── legislation ─────────────────────────────────────────────
    p_leg = sub.add_parser("legislation", help="List reporting instruments that apply.")
    p_leg.add_argument("--region", default=None, help="Jurisdiction name or code")
    p_leg.add_argument("--revenue", type=float, default=0.0, help="Annual revenue")
    p_leg.add_argument("--employees", type=int, default=0, help="Employee count")
    p_leg.add_argument("--emissions", type=float, default=0.0, help="Total emissions (tCO2e)")
    p_leg.add_argument("--year", type=int, default=None, help="Year for the reporting timeline")
    p_leg.add_argument("--verbose", action="store_true", default=False)

    # ── offsets ─────────────────────────────────────────────────
    p_off = sub.add_parser("offsets", help="Show the offset obligation for a jurisdiction.")
    p_off.add_argument("--region", default=None, help="Jurisdiction name or code")
    p_off.add_argument("--emissions", type=float, required=True, help="Total emissions (tCO2e)")
    p_off.add_argument("--verbose", action="store_true", default=False)

    # ── test-db (verify PostgreSQL connection) ───────────────────
    sub.add_parser(
        "test-db",
        help="Test PostgreSQL connection using DATABASE_URL.",
    )

    return root


# ─────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────

def main() -> None:
    """Parse arguments and dispatch to the correct sub-command."""
    parser = build_parser()
    args = parser.parse_args()

    dispatch = {
        "calculate": cmd_calculate,
        "timeline": cmd_timeline,
        "legislation": cmd_legislation,
        "offsets": cmd_offsets,
        "test-db": cmd_test_db,
    }
    handler = dispatch.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(handler(args))
    except EnvironmentError as exc:
        console.print(f"[red]Configuration error:[/] {exc}")
        sys.exit(2)


if __name__ == "__main__":
    main()
