"""
Ledger Kernel

Tenant-scoped double-entry bookkeeping core:
- Chart of accounts with typed, hierarchical accounts
- Balanced journal entries with atomic entry numbering
- Void-by-reversal, never deletion
- Fiscal year / period state machine gating posting
"""

__version__ = "0.1.0"
