"""Scenario execution engine for build benchmarking."""

__version__ = "0.1.0"
