"""Validation layer for config and input datasets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .classify import category_colors
from .config import AppConfig
from .errors import ChoromapError
from .join import index_features
from .sources import GeometrySource, RecordSource
from .util import format_id_list


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Checks config values and both data sources without rendering."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self) -> ValidationReport:
        report = ValidationReport()
        self._validate_schema(report)
        self._validate_input_files(report)
        if report.ok:
            self._validate_sources(report)
        return report

    def _validate_schema(self, report: ValidationReport) -> None:
        schema = self.cfg.schema
        if not schema.categories:
            report.add_error("schema.categories is empty; at least one category is required")
            return
        report.add_info(
            f"Category order (tie-break order): {', '.join(schema.category_names)}"
        )
        try:
            category_colors(schema, self.cfg.style.palette)
        except ChoromapError as exc:
            report.add_error(str(exc))

    def _validate_input_files(self, report: ValidationReport) -> None:
        for path in self.cfg.paths.required_input_files:
            if not path.exists():
                report.add_error(f"Missing required input file: {path}")

    def _validate_sources(self, report: ValidationReport) -> None:
        try:
            features = GeometrySource(self.cfg.paths.geometry, self.cfg.schema).load()
        except ChoromapError as exc:
            report.add_error(str(exc))
            return
        try:
            records = RecordSource(self.cfg.paths.records, self.cfg.schema).load()
        except ChoromapError as exc:
            report.add_error(str(exc))
            return

        if not features:
            report.add_error(f"Geometry file has no usable features: {self.cfg.paths.geometry}")
        else:
            report.add_info(f"Loaded {len(features)} region features")
        if not records:
            report.add_warning(f"Record file has no usable rows: {self.cfg.paths.records}")
        else:
            report.add_info(f"Loaded {len(records)} demographic records")

        index, duplicates = index_features(features)
        if duplicates:
            report.add_warning(
                "Duplicate region identifiers (first feature wins): "
                + format_id_list(duplicates)
            )
        record_ids = [record.region_id for record in records]
        unmatched = [str(item) for item in record_ids if item not in index]
        if unmatched:
            report.add_warning(
                "Records without a region feature: " + format_id_list(unmatched)
            )
        record_id_set = set(record_ids)
        missing = [str(item) for item in index if item not in record_id_set]
        if missing:
            report.add_warning(
                "Region features without a record: " + format_id_list(missing)
            )


def format_report_lines(report: ValidationReport) -> Iterable[str]:
    if report.infos:
        for info in report.infos:
            yield f"[INFO] {info}"
    if report.warnings:
        for warning in report.warnings:
            yield f"[WARN] {warning}"
    if report.errors:
        for error in report.errors:
            yield f"[ERROR] {error}"
    if report.ok:
        yield "[OK] Validation completed with no errors."
