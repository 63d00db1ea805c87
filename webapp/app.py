from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Optional

from dateutil import parser as dateparser
from flask import Flask, abort, jsonify, request

from capacity_forecast.effort import member_allocations
from capacity_forecast.engine import forecast_task, simulate_daily_allocation
from capacity_forecast.io_utils import Snapshot, load_config, load_snapshot
from capacity_forecast.models import ForecastConfig
from capacity_forecast.reports import availability_frame, release_frame, trend_frame
from capacity_forecast.team import simulate_new_project_impact, team_elasticity
from capacity_forecast.workdays import month_bounds, month_key


def _default_snapshot_dir() -> Path:
    return (Path(__file__).resolve().parent.parent / "snapshot").resolve()


def _resolve_snapshot_dir() -> Path:
    env_value = os.getenv("SNAPSHOT_DIR")
    if env_value:
        return Path(env_value).expanduser().resolve()
    return _default_snapshot_dir()


def _parse_date_arg(name: str) -> Optional[date]:
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return dateparser.isoparse(raw).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid date for '{name}': {raw}") from exc


def _parse_month_arg(today: date) -> str:
    month = request.args.get("month") or month_key(today)
    month_bounds(month)
    return month


def create_app(snapshot_dir: Optional[Path] = None) -> Flask:
    app = Flask(__name__)
    app.config["SNAPSHOT_DIR"] = Path(snapshot_dir) if snapshot_dir else _resolve_snapshot_dir()

    def _config() -> ForecastConfig:
        config_path = app.config["SNAPSHOT_DIR"] / "config.json"
        return load_config(config_path) if config_path.is_file() else ForecastConfig()

    def _snapshot(cfg: ForecastConfig) -> Snapshot:
        # Reloaded per request so answers always reflect the latest files.
        return load_snapshot(app.config["SNAPSHOT_DIR"], cfg)

    @app.errorhandler(ValueError)
    def bad_request(exc: ValueError):
        return jsonify({"error": str(exc)}), 400

    @app.get("/api/availability")
    def availability():
        cfg = _config()
        today = cfg.resolve_today()
        month = _parse_month_arg(today)
        frame = availability_frame(_snapshot(cfg), [month], today=today)
        return jsonify({"month": month, "users": frame.to_dict("records")})

    @app.get("/api/release-dates")
    def release_dates():
        cfg = _config()
        frame = release_frame(_snapshot(cfg), today=cfg.resolve_today())
        return jsonify({"users": frame.to_dict("records")})

    @app.get("/api/trend")
    def trend():
        cfg = _config()
        frame = trend_frame(_snapshot(cfg), cfg.trend_months, today=cfg.resolve_today())
        return jsonify({"trend": frame.to_dict("records")})

    @app.get("/api/elasticity")
    def elasticity():
        cfg = _config()
        today = cfg.resolve_today()
        month = _parse_month_arg(today)
        snap = _snapshot(cfg)
        value = team_elasticity(
            snap.users,
            month,
            snap.projects,
            snap.project_members,
            snap.tasks,
            snap.timesheets,
            snap.holidays,
            snap.allocations,
            today=today,
        )
        return jsonify({"month": month, "elasticity": value})

    @app.post("/api/what-if")
    def what_if():
        cfg = _config()
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return jsonify({"error": "request body must be a JSON object"}), 400
        hours = data.get("hours", cfg.what_if_hours)
        if not isinstance(hours, (int, float)) or isinstance(hours, bool) or hours < 0:
            return jsonify({"error": "hours must be a non-negative number"}), 400
        snap = _snapshot(cfg)
        rows = simulate_new_project_impact(
            float(hours),
            snap.users,
            snap.projects,
            snap.project_members,
            snap.tasks,
            snap.timesheets,
            snap.holidays,
            snap.allocations,
            today=cfg.resolve_today(),
        )
        return jsonify({"hours": hours, "impact": [row.to_dict() for row in rows]})

    @app.get("/api/tasks/<task_id>/forecast")
    def task_forecast(task_id: str):
        cfg = _config()
        snap = _snapshot(cfg)
        task = snap.task(task_id)
        if task is None:
            abort(404)
        owner = snap.user(task.developer_id) if task.developer_id else None
        daily_cap = owner.daily_cap if owner else cfg.default_daily_hours
        forecast = forecast_task(
            task,
            snap.projects,
            snap.tasks,
            snap.project_members,
            snap.timesheets,
            snap.holidays,
            daily_cap,
            snap.allocations,
            today=cfg.resolve_today(),
        )
        return jsonify({"task_id": task.id, **forecast.to_dict()})

    @app.get("/api/tasks/<task_id>/members")
    def task_members(task_id: str):
        snap = _snapshot(_config())
        task = snap.task(task_id)
        if task is None:
            abort(404)
        members = member_allocations(task, snap.users, snap.tasks, snap.allocations, snap.timesheets)
        return jsonify({"task_id": task.id, "members": [member.to_dict() for member in members]})

    @app.get("/api/users/<user_id>/daily")
    def user_daily(user_id: str):
        cfg = _config()
        snap = _snapshot(cfg)
        user = snap.user(user_id)
        if user is None:
            abort(404)
        today = cfg.resolve_today()
        start = _parse_date_arg("start") or today
        end = _parse_date_arg("end") or month_bounds(month_key(start))[1]
        days = simulate_daily_allocation(
            user.id,
            start,
            end,
            snap.projects,
            snap.tasks,
            snap.project_members,
            snap.timesheets,
            snap.holidays,
            user.daily_cap,
        )
        return jsonify({"user_id": user.id, "days": [day.to_dict() for day in days]})

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
