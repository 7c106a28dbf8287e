"""Forum record storage."""
