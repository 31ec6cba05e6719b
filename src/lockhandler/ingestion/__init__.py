"""Ingestion layer.

Adapters that turn network-server messages into :class:`Uplink` objects
for the lock service.
"""

from lockhandler.ingestion.uplink import Uplink, parse_uplink

__all__ = ["Uplink", "parse_uplink"]
