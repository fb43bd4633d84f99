"""MYST economy: ledger, wheel, predictions and leaderboards."""
