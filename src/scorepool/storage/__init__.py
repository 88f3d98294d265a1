"""DuckDB persistence: schema, records, event log, export."""
