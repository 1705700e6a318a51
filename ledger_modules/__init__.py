"""
Ledger Modules.

Orchestration layers over the ledger kernel:
- Reporting: trial balance, income statement, balance sheet
- Tax: Timor-Leste WIT / INSS returns, due dates and filing tracker
- Integrations: ledger postings triggered by invoicing and payroll

Modules read and write through kernel services; none of them touches
journal tables directly.
"""
