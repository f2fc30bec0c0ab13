"""Infrastructure: ledger RPC transport and wallet discovery."""
