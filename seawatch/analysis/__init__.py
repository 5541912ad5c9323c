"""Pure filter and aggregation helpers over in-memory collections."""
