"""Core resolution model: versions, ranges, and the backtracking resolver."""
