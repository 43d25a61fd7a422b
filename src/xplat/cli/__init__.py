"""xplat command line interface."""
