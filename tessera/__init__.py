"""tessera: delimited text and JSON ingestion, schema inference, validation, diffing and edit history."""

__version__ = "0.3.0"
