"""HTTP transport for the table engine."""
