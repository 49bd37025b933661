"""Deal model command-line interface."""
