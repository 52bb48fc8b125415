"""HTTP status surface."""
