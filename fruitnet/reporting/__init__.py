"""Reporting utilities for fruitnet."""

from .metrics import ConsoleProgress, CsvSink, JsonlSink
from .plots import PlotAdapter, plot_training_history
from .summary import write_summary

__all__ = [
    "ConsoleProgress",
    "CsvSink",
    "JsonlSink",
    "PlotAdapter",
    "plot_training_history",
    "write_summary",
]
