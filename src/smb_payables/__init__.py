# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Payables
------------

Recurring financial obligation engine for small service businesses.

A handful of cost definitions (one-time or recurring daily, weekly,
monthly or yearly) feed two independent computations:

- the payable ledger: concrete due-date instances reconciled against
  payment records and classified as Paid / Open / Overdue,
- the profit report: revenue from completed sales minus ad-hoc expenses
  and the obligations' cost prorated over any date range.

The engine modules (expansion, reconciliation, proration, profit) are
pure functions over plain records. The SQLite store (db), the TOML
configuration (config) and the CLI are thin layers around them.

Version: 0.2.0

Usage:
    python -m smb_payables.cli --help
"""

__all__ = ["expansion", "reconciliation", "proration", "profit", "models"]

__version__ = "0.2.0"
