"""Command-line interface for sepolia-wallet."""
