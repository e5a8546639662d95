"""Integration Hub HTTP host."""
