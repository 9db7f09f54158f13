"""Command-line interface for PaperForm."""
