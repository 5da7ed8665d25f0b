"""Discover tubes over multicast DNS and flash firmware to them."""

from __future__ import annotations

import ipaddress
import logging
import socket
import subprocess
import time
from typing import Callable, Optional

import dns.exception
import dns.message
import dns.name
import dns.rdatatype

log = logging.getLogger(__name__)

MDNS_GROUP = "224.0.0.251"
MDNS_PORT = 5353
DEFAULT_SERVICE = "_arduino._tcp"
OTA_PORT = 8266
ESPOTA_SCRIPT = "../espota.py"

Discover = Callable[[str, float], list[str]]


def _service_name(service: str) -> dns.name.Name:
    return dns.name.from_text(f"{service}.local.")


def build_query(service: str = DEFAULT_SERVICE) -> bytes:
    """An mDNS PTR query for ``service`` in the ``local`` domain."""
    query = dns.message.make_query(_service_name(service), dns.rdatatype.PTR)
    query.id = 0
    query.flags = 0
    return query.to_wire()


def _ipv4(rdata: object) -> Optional[str]:
    address = getattr(rdata, "address", None)
    if address is not None:
        return str(address)
    data = getattr(rdata, "data", b"")
    if len(data) == 4:
        return str(ipaddress.IPv4Address(bytes(data)))
    return None


def parse_response(data: bytes, service: str = DEFAULT_SERVICE) -> list[str]:
    """IPv4 addresses announced in a response that advertises ``service``."""
    try:
        message = dns.message.from_wire(data)
    except (dns.exception.DNSException, ValueError):
        return []
    name = _service_name(service)
    records = [*message.answer, *message.additional]
    if not any(r.rdtype == dns.rdatatype.PTR and r.name == name for r in records):
        return []
    addresses: list[str] = []
    for rrset in records:
        if rrset.rdtype != dns.rdatatype.A:
            continue
        for rdata in rrset:
            address = _ipv4(rdata)
            if address is not None and address not in addresses:
                addresses.append(address)
    return addresses


def discover_devices(service: str = DEFAULT_SERVICE, timeout: float = 3.0) -> list[str]:
    """Query the network and collect device addresses until ``timeout`` passes."""
    query = build_query(service)
    found: list[str] = []
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP) as sock:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 255)
        sock.settimeout(timeout)
        sock.sendto(query, (MDNS_GROUP, MDNS_PORT))
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            sock.settimeout(remaining)
            try:
                data, _ = sock.recvfrom(9000)
            except socket.timeout:
                break
            for address in parse_response(data, service):
                if address not in found:
                    log.info("Found device at %s", address)
                    found.append(address)
    return found


def flash_command(ip: str, firmware: str) -> list[str]:
    """The OTA upload command for one device."""
    return ["python3", ESPOTA_SCRIPT, "-p", str(OTA_PORT), "-i", ip, "-f", str(firmware)]


def flash(firmware: str, timeout: float = 3.0, discover: Optional[Discover] = None) -> list[str]:
    """Flash ``firmware`` to every discovered device; return their addresses."""
    finder = discover if discover is not None else discover_devices
    log.info("Searching for devices...")
    hosts = finder(DEFAULT_SERVICE, timeout)
    log.info("Found %d devices.", len(hosts))
    for ip in hosts:
        log.info("Flashing %s...", ip)
        subprocess.run(flash_command(ip, firmware), check=False)
    return hosts