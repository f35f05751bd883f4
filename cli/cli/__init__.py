"""buildbench command-line interface."""
