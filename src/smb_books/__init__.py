# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Books
---------

Computation core of a small-business invoicing and expense tracking
application. The package turns invoice and expense records fetched by an
external data layer into dashboard view models, and renders invoices from
user-editable templates.

Main capabilities:
- financial summary (revenue, expenses, net profit, outstanding invoices),
- monthly revenue / expense / profit series over an explicit window,
- expense breakdown by category,
- month-over-month changes and a recent activity feed,
- invoice totals from line items,
- template-driven invoice rendering to a block tree or HTML markup,
- a thin command-line interface over CSV / TOML / JSON inputs.

The core modules (records, metrics, invoices, template_config, render) are
pure: they perform no I/O and never read the clock. Reading files and
printing results is the job of io.py, config.py and cli.py.

Version: 0.2.0

Usage:
    python -m smb_books.cli --help
"""

__all__ = ["records", "metrics", "invoices", "template_config", "render"]

__version__ = "0.2.0"
