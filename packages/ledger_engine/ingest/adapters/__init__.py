"""Layout-specific row adapters used by the format registry."""
