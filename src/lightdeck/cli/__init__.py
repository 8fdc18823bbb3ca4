"""Command line interface for lightdeck."""
