from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd
from dateutil import parser as dateparser

from .io_utils import Snapshot, ensure_directory, load_config, load_snapshot, write_csv
from .models import ForecastConfig
from .reports import availability_frame, impact_frame, release_frame, trend_frame
from .team import team_elasticity, upcoming_months


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Capacity forecasting batch tool (snapshot in, CSV reports out)."
    )
    parser.add_argument("--snapshot-dir", required=True, help="Directory holding the snapshot input files")
    parser.add_argument("--config", help="Path to configuration JSON file (default: <snapshot-dir>/config.json)")
    parser.add_argument("--month", help="Month to report as YYYY-MM (default: the trend window)")
    parser.add_argument("--today", help="Override today's date (ISO format)")
    parser.add_argument(
        "--what-if",
        type=float,
        dest="what_if",
        help="Simulate a new sale of this many hours on every collaborator",
    )
    parser.add_argument(
        "--outdir",
        default=None,
        help="Output directory for generated CSV files (default: <snapshot-dir>/output)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute and print summary without writing output CSV files",
    )
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace, snapshot_dir: Path) -> ForecastConfig:
    config_path = Path(args.config) if args.config else snapshot_dir / "config.json"
    if args.config and not config_path.is_file():
        raise ValueError(f"config file not found at {config_path}")
    cfg = load_config(config_path) if config_path.is_file() else ForecastConfig()
    if args.today:
        try:
            cfg = replace(cfg, today=dateparser.isoparse(args.today).date())
        except (ValueError, TypeError) as exc:
            raise ValueError(f"invalid --today value: {args.today}") from exc
    if args.what_if is not None:
        if args.what_if < 0:
            raise ValueError("--what-if hours must be non-negative")
        cfg = replace(cfg, what_if_hours=args.what_if)
    return cfg


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _print_dry_run_summary(
    availability: pd.DataFrame,
    releases: pd.DataFrame,
    trend: pd.DataFrame,
    elasticity: float,
    impact: Optional[pd.DataFrame],
) -> None:
    if availability.empty:
        print("No operational collaborators.")
    else:
        print("Availability:")
        for row in availability.itertuples(index=False):
            print(
                f"- {row.name} {row.month}: {row.total_occupancy:.2f}h of {row.capacity:.2f}h "
                f"({row.occupancy_rate:.0%}, {row.status})"
            )
    print("\nBacklog clear dates:")
    if releases.empty:
        print("- none")
    for row in releases.itertuples(index=False):
        flag = " [saturated]" if row.is_saturated else ""
        print(f"- {row.name}: ideal {row.ideal}, realistic {row.realistic}{flag}")
    print("\nSaturation trend:")
    for row in trend.itertuples(index=False):
        print(f"- {row.month}: {row.saturation_rate:.2f}% saturated, average load {row.avg_load:.2f}%")
    print(f"\nTeam elasticity: {elasticity:.2f}%")
    if impact is not None:
        print("\nWhat-if impact:")
        if impact.empty:
            print("- no collaborator has a current backlog")
        for row in impact.itertuples(index=False):
            print(f"- {row.name}: {row.release_date_before} → {row.release_date_after}")


def _elasticity(snapshot: Snapshot, month: str, today: date) -> float:
    return team_elasticity(
        snapshot.users,
        month,
        snapshot.projects,
        snapshot.project_members,
        snapshot.tasks,
        snapshot.timesheets,
        snapshot.holidays,
        snapshot.allocations,
        today=today,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    snapshot_dir = Path(args.snapshot_dir)
    try:
        cfg = _resolve_config(args, snapshot_dir)
        snapshot = load_snapshot(snapshot_dir, cfg)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)
    _configure_logging(cfg.logging_level)

    today = cfg.resolve_today()
    trend_months = upcoming_months(today, cfg.trend_months)
    months: List[str] = [args.month] if args.month else trend_months
    try:
        availability = availability_frame(snapshot, months, today=today)
    except ValueError as exc:
        print(f"invalid --month value: {exc}", file=sys.stderr)
        sys.exit(2)
    releases = release_frame(snapshot, today=today)
    trend = trend_frame(snapshot, cfg.trend_months, today=today)
    elasticity = _elasticity(snapshot, months[0], today)
    impact = impact_frame(snapshot, cfg.what_if_hours, today=today) if args.what_if is not None else None

    if args.dry_run:
        _print_dry_run_summary(availability, releases, trend, elasticity, impact)
        return

    outdir_path = ensure_directory(args.outdir or snapshot_dir / "output")
    outputs = {
        "availability.csv": availability,
        "release_dates.csv": releases,
        "saturation_trend.csv": trend,
    }
    if impact is not None:
        outputs["what_if_impact.csv"] = impact
    for filename, frame in outputs.items():
        path = outdir_path / filename
        write_csv(frame, path)
        print(f"Wrote {path}")
    print(f"Team elasticity for {months[0]}: {elasticity:.2f}%")


if __name__ == "__main__":
    main()
