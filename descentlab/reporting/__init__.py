"""Reporting utilities for descentlab."""

from .artifacts import json_safe, write_json, write_manifest
from .metrics import CsvSink, JsonlSink, ProgressPrinter
from .plots import PlotAdapter, plot_loss_grid
from .records import dataset_record, loss_grid_record, run_record, snapshot_record
from .summary import summarize_run, write_summary

__all__ = [
    "CsvSink",
    "JsonlSink",
    "PlotAdapter",
    "ProgressPrinter",
    "dataset_record",
    "json_safe",
    "loss_grid_record",
    "plot_loss_grid",
    "run_record",
    "snapshot_record",
    "summarize_run",
    "write_json",
    "write_manifest",
    "write_summary",
]
