"""CLI entrypoint for the choromap renderer."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .errors import ChoromapError
from .inspect_report import write_join_report
from .models import normalize_region_id
from .pipeline import MapModel, build_map_model, format_report_lines
from .state import InteractionState, MarkerHover
from .util import ensure_directories, setup_logging
from .validate import Validator
from .validate import format_report_lines as format_validation_lines

LOGGER = logging.getLogger("choromap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="choromap",
        description="Dominant-category choropleth with population markers.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    validate_p = subparsers.add_parser("validate", help="Validate config and input files.")
    add_common(validate_p)

    inspect_p = subparsers.add_parser(
        "inspect",
        help="Write a JSON report of join results, anchors and classifications.",
    )
    add_common(inspect_p)
    inspect_p.add_argument(
        "--output",
        default=None,
        help="Report path (default: <reports_dir>/join_report.json).",
    )

    render_p = subparsers.add_parser("render", help="Render the map to a PNG file.")
    add_common(render_p)
    render_p.add_argument(
        "--output",
        default=None,
        help="PNG path (default: paths.output_png from config).",
    )
    render_p.add_argument(
        "--hover",
        default=None,
        help="Region identifier whose marker tooltip is drawn in the image.",
    )

    show_p = subparsers.add_parser("show", help="Open the interactive map window.")
    add_common(show_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.paths.logs_dir / "choromap.log", verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _build_model(cfg: AppConfig) -> MapModel | None:
    model, report = build_map_model(cfg)
    for line in format_report_lines(report):
        LOGGER.info(line)
    if model is None:
        LOGGER.error("Map model could not be built; nothing rendered.")
    return model


def _run_validate(cfg: AppConfig) -> int:
    report = Validator(cfg).run()
    for line in format_validation_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_inspect(cfg: AppConfig, *, output: str | None) -> int:
    model, report = build_map_model(cfg)
    for line in format_report_lines(report):
        LOGGER.info(line)
    if model is None:
        return 1
    path = Path(output) if output else cfg.paths.reports_dir / "join_report.json"
    write_join_report(model, report, path)
    LOGGER.info("Join report written to %s", path)
    return 0


def _run_render(cfg: AppConfig, *, output: str | None, hover: str | None) -> int:
    from .view import render_png

    model = _build_model(cfg)
    if model is None:
        return 1
    state = InteractionState()
    if hover is not None:
        hovered = _find_hover_record(model, hover)
        if hovered is None:
            LOGGER.error("No record with region identifier '%s'", hover)
            return 1
        state = InteractionState(hover=hovered)
    render_png(model, cfg, Path(output) if output else cfg.paths.output_png, state=state)
    return 0


def _run_show(cfg: AppConfig) -> int:
    from .view import show_interactive

    model = _build_model(cfg)
    if model is None:
        return 1
    show_interactive(model, cfg)
    return 0


def _find_hover_record(model: MapModel, raw_id: str) -> MarkerHover | None:
    try:
        region_id = normalize_region_id(raw_id, model.schema.id_mode)
    except ValueError:
        return None
    enriched = model.join.record_for(region_id)
    if enriched is None:
        return None
    return MarkerHover(record=enriched.record, anchor=enriched.anchor)


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "validate":
        return _run_validate(cfg)
    if command == "inspect":
        return _run_inspect(cfg, output=args.output)
    if command == "render":
        return _run_render(cfg, output=args.output, hover=args.hover)
    if command == "show":
        return _run_show(cfg)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return _dispatch(args)
    except (ChoromapError, FileNotFoundError) as exc:
        LOGGER.error("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
