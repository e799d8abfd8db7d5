"""Diagnostics and reporting."""

from atlas_recon.diagnostics.tracker import Timer, format_stats_table, write_stats_report

__all__ = ["Timer", "format_stats_table", "write_stats_report"]
