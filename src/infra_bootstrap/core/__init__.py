"""Core fetch models."""

from infra_bootstrap.core.artifact import FetchRequest, FetchResult

__all__ = ["FetchRequest", "FetchResult"]
