"""Feed parsing, event extraction and date-time normalization."""
