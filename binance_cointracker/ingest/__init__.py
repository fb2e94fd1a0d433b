"""Row sources for ledger exports."""
