"""Flask web API for the match ledger."""
