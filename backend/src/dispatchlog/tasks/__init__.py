"""Task lifecycle and routing engine."""
