"""Internal helpers for libspawn, not covered by versioning policy."""
