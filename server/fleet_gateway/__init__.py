"""Fleet Gateway: operator dashboard API for locally-managed processes."""
