"""Token cache."""
