"""Operator reconciling Kafka topics for registry applications."""

__version__ = "0.1.0"
