"""HTTP layer for Agora."""
