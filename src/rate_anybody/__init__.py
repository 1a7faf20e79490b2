"""RateAnybody: permanent, tag-indexed ratings on the Arweave ledger.

A rating (name, location, associations, score, comments) is serialized to a
JSON payload, labelled with searchable ledger tags, paid for and submitted
either directly to the ledger or through a bundling relay.  Ratings are read
back by querying the gateway's GraphQL index by tag and reconciling each
transaction's tags with its payload body.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("rate-anybody")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
