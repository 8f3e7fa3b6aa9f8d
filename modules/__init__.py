"""Pure helper modules for the Cafe Queue Web application."""

__all__ = [
    "metrics_aggregator",
    "wait_estimator",
]
