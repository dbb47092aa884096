"""Command-line entry points: theme-sender and theme-override."""
