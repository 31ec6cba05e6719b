"""Downlink command queueing for Class-A locks."""

from lockhandler.downlink.queue import DownlinkQueue, DownlinkSender

__all__ = ["DownlinkQueue", "DownlinkSender"]
