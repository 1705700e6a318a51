"""Read-only selectors over posted ledger data."""

from ledger_kernel.selectors.ledger_selector import AccountBalance, LedgerLine, LedgerSelector

__all__ = ["AccountBalance", "LedgerLine", "LedgerSelector"]
