"""
Interface resolution for multicasting

Maps requested interface names to sockets that send from that interface's
IPv4 address to the multicast group.
"""
import socket
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import netifaces

from lanclip import config
from lanclip.common.errors import NoInterfacesError

logger = logging.getLogger(__name__)


@dataclass
class InterfaceInfo:
    """A local interface and its first IPv4 address (None if it has none)"""
    name: str
    address: Optional[str] = None


@dataclass
class MulticastTarget:
    """A ready-to-send socket bound to one interface"""
    name: str
    address: str
    sock: socket.socket

    def send(self, data: bytes) -> int:
        return self.sock.send(data)

    def close(self):
        try:
            self.sock.close()
        except OSError as e:
            logger.debug(f"Error closing socket for {self.name}: {e}")


@dataclass
class ResolvedInterfaces:
    """Interfaces that can be multicast on, plus their names for logging"""
    targets: List[MulticastTarget] = field(default_factory=list)

    @property
    def names(self) -> List[str]:
        return [target.name for target in self.targets]

    def __len__(self) -> int:
        return len(self.targets)

    def __iter__(self):
        return iter(self.targets)

    def close(self):
        """Close every socket"""
        for target in self.targets:
            target.close()


def get_all_interface_names() -> List[str]:
    """Names of every local network interface"""
    return list(netifaces.interfaces())


def get_ipv4_address(interface_name: str) -> Optional[str]:
    """
    First IPv4 address assigned to an interface.

    Returns None if the interface has no IPv4 address.
    Raises ValueError if the interface does not exist.
    """
    addresses = netifaces.ifaddresses(interface_name).get(netifaces.AF_INET, [])
    for entry in addresses:
        addr = entry.get('addr')
        if addr:
            return addr
    return None


def list_interfaces() -> List[InterfaceInfo]:
    """Every local interface with its IPv4 address, if any"""
    result = []
    for name in get_all_interface_names():
        try:
            address = get_ipv4_address(name)
        except ValueError:
            address = None
        result.append(InterfaceInfo(name=name, address=address))
    return result


def normalize_interface_names(requested: Optional[Iterable[str]]) -> List[str]:
    """
    Expand the requested names.

    Empty input, or input containing "all", selects every local interface.
    """
    names = sorted(set(requested or []))
    if not names or config.ALL_INTERFACES in names:
        logger.info("Trying to get multicast address for all interfaces")
        names = sorted(set(get_all_interface_names()))
    return [name for name in names if name != config.ALL_INTERFACES]


def _open_multicast_socket(local_address: str, group: str, port: int, ttl: int) -> socket.socket:
    """UDP socket sending from local_address to the multicast group"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, ttl)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(local_address))
        sock.bind((local_address, 0))
        sock.connect((group, port))
    except OSError:
        sock.close()
        raise
    return sock


def resolve_interfaces(requested: Optional[Iterable[str]] = None,
                       group: str = config.MULTICAST_GROUP,
                       port: int = config.MULTICAST_PORT,
                       ttl: int = config.MULTICAST_TTL) -> ResolvedInterfaces:
    """
    Open one multicast socket per usable interface.

    Interfaces that do not exist or have no IPv4 address are skipped with a
    warning. Raises NoInterfacesError if nothing is usable.
    """
    resolved = ResolvedInterfaces()

    for name in normalize_interface_names(requested):
        try:
            address = get_ipv4_address(name)
        except ValueError as e:
            logger.warning(f"Error for interface {name}: {e}. Skipping...")
            continue

        if address is None:
            logger.warning(f"Error for interface {name}: no IPv4 address found. Skipping...")
            continue

        try:
            sock = _open_multicast_socket(address, group, port, ttl)
        except OSError as e:
            logger.warning(f"Error for interface {name} ({address}): {e}. Skipping...")
            continue

        resolved.targets.append(MulticastTarget(name=name, address=address, sock=sock))
        logger.debug(f"Multicasting on {name} from {address}")

    if not resolved.targets:
        raise NoInterfacesError(get_all_interface_names())

    return resolved
