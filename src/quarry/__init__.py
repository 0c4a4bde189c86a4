"""quarry: pagination and query composition over a record store."""
