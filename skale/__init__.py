"""Replay reports, node headroom sanity checks and SVG timeline rendering for predictive autoscaling."""

__version__ = "0.1.0"