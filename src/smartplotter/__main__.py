"""CLI entry point for SmartPlotter."""

import argparse
import logging
import sys
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path

from smartplotter.chart import LogPlot, save_plot
from smartplotter.config import ViewerConfig
from smartplotter.ingest import IngestionFailed, submit_ingestion
from smartplotter.record import Series
from smartplotter.zoom import PlotSession

logger = logging.getLogger("smartplotter")

# Seconds between busy-indicator dots while a log is converting
BUSY_INTERVAL = 0.5


def _prompt_for_log() -> Path | None:
    """Ask for the next log file; None means quit."""
    try:
        answer = input("Log file to open (blank to quit): ").strip()
    except EOFError:
        return None
    return Path(answer) if answer else None


def _load_series(executor: Executor, path: Path, config: ViewerConfig) -> Series | None:
    """Ingest a log file, printing a busy indicator until it finishes."""
    try:
        data = path.read_bytes()
    except OSError as e:
        print(f"Error: Could not read {path}: {e}")
        return None

    print(f"Converting {path.name}", end="", flush=True)
    future = submit_ingestion(executor, data, path.name, config)
    while True:
        try:
            series = future.result(timeout=BUSY_INTERVAL)
            break
        except TimeoutError:
            print(".", end="", flush=True)
        except IngestionFailed as e:
            print()
            logger.debug("Ingestion of %s failed: %s", path, e)
            print("Error: File conversion failed.")
            return None
    print()
    print(f"Loaded {len(series)} records from {path.name}")
    return series


def main() -> None:
    """Main entry point for SmartPlotter CLI."""
    parser = argparse.ArgumentParser(
        description="Plot deadman and feedback pressure from a binary log file"
    )
    parser.add_argument(
        "logs",
        nargs="*",
        type=Path,
        help="Log files to open in turn. If none are given, prompts for one.",
    )
    parser.add_argument(
        "--converter",
        type=Path,
        help="Log-to-SQLite converter executable "
        "(default: $SMARTPLOTTER_CONVERTER or resources/uSQLiteFinalize.exe)",
    )
    parser.add_argument(
        "--visible-points",
        type=int,
        help="Maximum number of points drawn at once (default: 1000)",
    )
    parser.add_argument(
        "--decimation",
        type=int,
        help="Keep one logged row in this many (default: 10)",
    )
    parser.add_argument(
        "--save",
        type=Path,
        metavar="DIR",
        help="Save a PNG of each log's full view to DIR instead of opening a window",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log ingestion and zoom details",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ViewerConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    overrides: dict[str, object] = {}
    if args.converter is not None:
        overrides["converter"] = args.converter
    if args.visible_points is not None:
        overrides["visible_points"] = args.visible_points
    if args.decimation is not None:
        overrides["decimation_ratio"] = args.decimation
    config = replace(config, **overrides)

    if config.visible_points < 1 or config.decimation_ratio < 1:
        print("Error: --visible-points and --decimation must be at least 1")
        sys.exit(1)

    if args.save is not None:
        args.save.mkdir(parents=True, exist_ok=True)

    session = PlotSession(cap=config.visible_points)
    pending = list(args.logs)
    loaded_count = 0

    with ThreadPoolExecutor(max_workers=1) as executor:
        try:
            while True:
                if pending:
                    path = pending.pop(0)
                elif args.save is None:
                    path = _prompt_for_log()
                else:
                    path = None
                if path is None:
                    break

                series = _load_series(executor, path, config)
                if series is None:
                    continue
                loaded_count += 1
                session.load(series)

                if args.save is not None:
                    plot_filename = args.save / f"{path.stem}.png"
                    save_plot(
                        session.view,
                        str(plot_filename),
                        title=path.name,
                        tick_count=config.tick_count,
                    )
                    print(f"Saved plot to {plot_filename}")
                    session.reset_upload()
                    continue

                plot = LogPlot(session, title=path.name, tick_count=config.tick_count)
                plot.show()
                if session.is_loaded:
                    # Window closed without asking for another log
                    break
        except KeyboardInterrupt:
            print()

    if loaded_count == 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
