"""Application services wrapping the Entry Store."""
