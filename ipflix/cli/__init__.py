"""Command line entry points for ipflix."""
