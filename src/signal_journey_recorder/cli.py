"""Command line interface for Signal Journey Recorder."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Sequence

from sjr.errors import JourneyRecorderError, RecorderStateError
from sjr.logging_utils import configure_logging
from sjr.models import Journey, QualityThresholds
from sjr.recording import RecordingController, SimulatedPositionSource, SimulatedThroughputProbe
from sjr.storage import JourneyStore, build_store
from sjr.transfer import export_samples_csv, import_journey_file, write_export

from . import __version__
from .config import load_recorder_config
from .reporting import format_duration, format_speed, render_journey_report, write_journey_report
from .service import create_app


def _print_result(result: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result, indent=2))
    else:
        print(result)


def _thresholds(config: Dict[str, Any]) -> QualityThresholds:
    section = config["thresholds"]
    return QualityThresholds(moderate_floor=float(section["moderate_floor"]), good_floor=float(section["good_floor"]))


def _describe(journey: Journey, thresholds: QualityThresholds) -> str:
    stats = journey.stats(thresholds)
    state = "ongoing" if journey.is_recording else "ended"
    return (
        f"{journey.id}  {journey.name}  samples={stats.point_count} "
        f"mean={format_speed(stats.mean_throughput)} duration={format_duration(stats.duration_ms)} ({state})"
    )


async def _require(store: JourneyStore, journey_id: str) -> Journey:
    journey = await store.get(journey_id)
    if journey is None:
        raise JourneyRecorderError(f"Journey '{journey_id}' not found")
    return journey


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sjr",
        description="Record, inspect and exchange network-quality journeys.",
    )
    parser.add_argument("--config", type=Path, help="Path to recorder configuration (YAML or JSON)")
    parser.add_argument("--db", type=Path, help="Journey database path (overrides storage.path)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON logs")

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_cmd = subparsers.add_parser("list", help="List stored journeys, most recent first")
    list_cmd.add_argument("--json", action="store_true", help="Emit journeys as JSON")

    show = subparsers.add_parser("show", help="Show one journey with its statistics")
    show.add_argument("journey_id", help="Journey id")
    show.add_argument("--json", action="store_true", help="Emit the journey record and stats as JSON")

    export = subparsers.add_parser("export", help="Write a journey transfer file")
    export.add_argument("journey_id", help="Journey id")
    export.add_argument("--output-dir", type=Path, default=Path("."), help="Directory for the transfer file")
    export.add_argument("--csv", type=Path, help="Also write the samples as CSV to this path")

    import_cmd = subparsers.add_parser("import", help="Import a journey transfer file into the store")
    import_cmd.add_argument("path", type=Path, help="Transfer file (.json)")

    delete = subparsers.add_parser("delete", help="Delete a stored journey")
    delete.add_argument("journey_id", help="Journey id")

    clear = subparsers.add_parser("clear", help="Delete every stored journey")
    clear.add_argument("--yes", action="store_true", help="Confirm deleting all journeys")

    report = subparsers.add_parser("report", help="Render a Markdown summary of a journey")
    report.add_argument("journey_id", help="Journey id")
    report.add_argument("--output", type=Path, help="Optional path for the report")

    simulate = subparsers.add_parser("simulate", help="Record a journey from simulated position and probe")
    simulate.add_argument("--name", help="Journey name")
    simulate.add_argument("--duration-s", type=float, default=5.0, help="How long to record")
    simulate.add_argument("--interval-s", type=float, default=1.0, help="Sampling interval")
    simulate.add_argument("--seed", type=int, help="Random seed for reproducible runs")
    simulate.add_argument("--json", action="store_true", help="Emit the recorded journey as JSON")

    serve = subparsers.add_parser("serve", help="Run FastAPI service")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    subparsers.add_parser("version", help="Display the installed version")

    return parser


async def _simulate(args: argparse.Namespace, store: JourneyStore, config: Dict[str, Any]) -> Journey:
    position_source = SimulatedPositionSource(
        update_interval_s=min(args.interval_s, 1.0),
        seed=args.seed,
    )
    probe = SimulatedThroughputProbe(seed=args.seed)
    controller = RecordingController(
        store,
        position_source,
        probe,
        interval_s=args.interval_s,
        first_fix_wait_s=0.0,
        position_timeout_s=float(config["position"]["timeout_s"]) or None,
        thresholds=_thresholds(config),
    )
    async with controller:
        await controller.start(args.name)
        await asyncio.sleep(args.duration_s)
        result = await controller.stop()
    if result is None:
        raise RecorderStateError("Recording did not start")
    if result.error is not None:
        print(f"Warning: final save failed: {result.error}")
    return result.journey


async def _run(args: argparse.Namespace, store: JourneyStore, config: Dict[str, Any]) -> None:
    thresholds = _thresholds(config)

    if args.command == "list":
        journeys = await store.get_all()
        if args.json:
            _print_result(
                {"journeys": [{"id": j.id, "name": j.name, **j.stats(thresholds).as_dict()} for j in journeys]},
                as_json=True,
            )
        elif not journeys:
            print("No journeys stored.")
        else:
            for journey in journeys:
                print(_describe(journey, thresholds))
    elif args.command == "show":
        journey = await _require(store, args.journey_id)
        if args.json:
            _print_result({"journey": journey.to_record(), "stats": journey.stats(thresholds).as_dict()}, as_json=True)
        else:
            print(_describe(journey, thresholds))
    elif args.command == "export":
        journey = await _require(store, args.journey_id)
        path = write_export(journey, args.output_dir)
        print(f"Exported journey to {path}")
        if args.csv:
            csv_path = export_samples_csv(journey, args.csv, thresholds)
            print(f"Wrote samples CSV to {csv_path}")
    elif args.command == "import":
        journey = await import_journey_file(args.path, store)
        print(f"Imported journey {journey.id} ({journey.name}, {len(journey.samples)} samples)")
    elif args.command == "delete":
        await store.delete(args.journey_id)
        print(f"Deleted journey {args.journey_id}")
    elif args.command == "clear":
        await store.clear_all()
        print("Deleted all journeys")
    elif args.command == "report":
        journey = await _require(store, args.journey_id)
        if args.output:
            path = write_journey_report(journey, args.output, thresholds)
            print(f"Generated report at {path}")
        else:
            print(render_journey_report(journey, thresholds))
    elif args.command == "simulate":
        journey = await _simulate(args, store, config)
        if args.json:
            _print_result(journey.to_record(), as_json=True)
        else:
            print(f"Recorded {_describe(journey, thresholds)}")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, json_logs=args.json_logs)

    if args.command == "version":
        print(__version__)
        return

    if args.command == "clear" and not args.yes:
        raise SystemExit("Refusing to delete all journeys without --yes.")

    try:
        config = load_recorder_config(args.config)
        if args.db:
            config["storage"] = {**config["storage"], "type": "sqlite", "path": str(args.db)}
        store = build_store(config["storage"])
    except (JourneyRecorderError, FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Error: {exc}")

    if args.command == "serve":
        app = create_app(store, thresholds=_thresholds(config))
        try:
            import uvicorn
        except ModuleNotFoundError:
            raise SystemExit("uvicorn is required to run the service. Install with `pip install uvicorn`.")
        try:
            uvicorn.run(app, host=args.host, port=args.port)
        finally:
            store.close()
        return

    try:
        asyncio.run(_run(args, store, config))
    except (JourneyRecorderError, FileNotFoundError) as exc:
        raise SystemExit(f"Error: {exc}")
    finally:
        store.close()


if __name__ == "__main__":
    main()
