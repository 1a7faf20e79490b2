"""Ledger package: wire-level access to the ledger gateway and the relay.

Public surface
--------------
- :class:`LedgerClient`:  gateway balance, fee, anchor, submit, fetch, GraphQL.
- :class:`RelayClient`:   bundling relay fee, balance and upload.
- :func:`winston_to_ar`:  atomic unit conversion for display.

Transaction and data item construction live in
:mod:`rate_anybody.ledger.transaction` and :mod:`rate_anybody.ledger.data_item`;
they are imported from there directly because they depend on the wallet,
which itself depends on :mod:`rate_anybody.ledger.encoding`.
"""

from rate_anybody.ledger.client import (
    ACCEPTED_STATUSES,
    WINSTON_PER_AR,
    LedgerClient,
    RelayClient,
    winston_to_ar,
)

__all__ = [
    "ACCEPTED_STATUSES",
    "WINSTON_PER_AR",
    "LedgerClient",
    "RelayClient",
    "winston_to_ar",
]
