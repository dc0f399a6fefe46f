"""Core building blocks shared by the export engine and the CLI."""
