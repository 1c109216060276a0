"""Run orchestration."""

from .orchestrator import AdapterRunResult, IngestionRunner, RunSummary, print_run_summary

__all__ = ["AdapterRunResult", "IngestionRunner", "RunSummary", "print_run_summary"]
