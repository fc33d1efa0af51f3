"""Disk sync: write generated output to a sync root and fold edits back."""

from pagesmith.sync.baseline import Baseline, BaselineEntry
from pagesmith.sync.engine import SyncEngine, SyncReport
from pagesmith.sync.reconcile import PageParseError, fold_page, page_shell, parse_page, read_page

__all__ = [
    "Baseline",
    "BaselineEntry",
    "PageParseError",
    "SyncEngine",
    "SyncReport",
    "fold_page",
    "page_shell",
    "parse_page",
    "read_page",
]
