"""Match an IP address against a list of allowed subnets.

A list is comma separated; each entry is one of
  - a full address, `192.168.10.1`
  - a CIDR block, `192.168.0.0/16` or `2001:db8::/32`
  - a range over the last octet, `192.168.10.1-20`
  - a dotted prefix, `192.168.` or `10.`
"""

from __future__ import annotations

import ipaddress
import logging
import re

logger = logging.getLogger(__name__)

_LastOctetRange = re.compile(r"^(\d{1,3}\.\d{1,3}\.\d{1,3}\.)(\d{1,3})-(\d{1,3})$")


def address_in_subnets(address: str, subnets: str) -> bool:
    try:
        ip = ipaddress.ip_address(address.strip())
    except ValueError:
        logger.warning("unparseable client address", extra={"address": address})
        return False

    for entry in subnets.split(","):
        entry = entry.strip()
        if entry and _matches(ip, entry):
            return True
    return False


def _matches(ip: ipaddress.IPv4Address | ipaddress.IPv6Address, entry: str) -> bool:
    if "/" in entry:
        try:
            return ip in ipaddress.ip_network(entry, strict=False)
        except ValueError:
            logger.warning("ignoring malformed subnet", extra={"subnet": entry})
            return False

    if m := _LastOctetRange.match(entry):
        prefix, low, high = m.group(1), int(m.group(2)), int(m.group(3))
        if ip.version != 4 or not str(ip).startswith(prefix):
            return False
        last = int(str(ip).rsplit(".", 1)[1])
        return low <= last <= high

    if entry.endswith("."):
        return ip.version == 4 and str(ip).startswith(entry)

    try:
        return ip == ipaddress.ip_address(entry)
    except ValueError:
        # a prefix written without its trailing dot, e.g. `10.1`
        return ip.version == 4 and str(ip).startswith(entry + ".")
