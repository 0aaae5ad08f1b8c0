"""Import, analytics and reconciliation over account ledgers."""
