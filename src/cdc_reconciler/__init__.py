"""Provision and reconcile a Debezium CDC pipeline on Kafka Connect."""

__version__ = "0.1.0"
