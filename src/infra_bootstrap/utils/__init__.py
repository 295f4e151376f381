"""Console output, logging and path helpers."""
