"""Vessel relay: live table, fan-out and eviction."""

from straitwatch.relay.broadcaster import Broadcaster, ChannelClosed, Consumer
from straitwatch.relay.eviction import EvictionScheduler
from straitwatch.relay.relay import VesselRelay
from straitwatch.relay.store import VesselStore

__all__ = [
    "Broadcaster",
    "ChannelClosed",
    "Consumer",
    "EvictionScheduler",
    "VesselRelay",
    "VesselStore",
]
