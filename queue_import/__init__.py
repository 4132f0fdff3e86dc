"""
Queue CSV Importer

A one-shot batch importer that restores messages captured by the queue
exporter from a CSV file back into a message queue, recreating label,
priority, durability and routing flags for each record.
"""

__version__ = "0.1.0"
