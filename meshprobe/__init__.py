"""Helpers for end-to-end tests of service mesh clusters: versions, ratios, retries, templates, request options and Prometheus queries."""

__version__ = "0.1.0"

__all__ = ["prometheus", "ratios", "request", "retry", "template", "version"]