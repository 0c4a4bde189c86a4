"""Application factories."""
