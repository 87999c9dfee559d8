"""Network interface enumeration (default interface source for All)."""

import socket
from dataclasses import dataclass, field
from typing import Any, Dict, List

import psutil

from tcp_repeat.core.logging_utils import get_module_logger


logger = get_module_logger("Devices")

# Pseudo devices a capture cannot be replayed onto
EXCLUDED_INTERFACES = frozenset({"any", "nflog", "nfqueue"})


@dataclass
class NetworkInterface:
    name: str
    addresses: List[str] = field(default_factory=list)
    is_up: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "addresses": list(self.addresses), "isUp": self.is_up}


def list_interfaces() -> List[NetworkInterface]:
    """Return usable interfaces in the order the OS reports them."""
    try:
        stats = psutil.net_if_stats()
        addrs = psutil.net_if_addrs()
    except OSError as e:
        logger.error("Could not enumerate network interfaces: %s", e)
        return []

    interfaces: List[NetworkInterface] = []
    for name in addrs.keys() | stats.keys():
        if name in EXCLUDED_INTERFACES:
            continue
        addresses = [
            a.address for a in addrs.get(name, [])
            if a.family in (socket.AF_INET, socket.AF_INET6)
        ]
        is_up = bool(stats[name].isup) if name in stats else False
        interfaces.append(NetworkInterface(name=name, addresses=addresses, is_up=is_up))

    order = list(addrs.keys()) + [n for n in stats.keys() if n not in addrs]
    interfaces.sort(key=lambda nic: order.index(nic.name))
    logger.debug("Found %d network interfaces", len(interfaces))
    return interfaces
