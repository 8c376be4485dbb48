class InvariantError(RuntimeError):
    """Raised when an internal invariant is broken (should not reach here)."""
