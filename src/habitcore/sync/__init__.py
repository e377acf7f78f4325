"""Write path: offline mutation queue, gateway contract and flush triggers."""

from .gateway import RemoteGateway
from .health import GatewayHealth, GatewayHealthConfig
from .mutations import MutationKind, QueuedMutation
from .queue import Delivery, FlushResult, OfflineMutationQueue
from .triggers import SyncTriggers

__all__ = [
    "Delivery",
    "FlushResult",
    "GatewayHealth",
    "GatewayHealthConfig",
    "MutationKind",
    "OfflineMutationQueue",
    "QueuedMutation",
    "RemoteGateway",
    "SyncTriggers",
]
