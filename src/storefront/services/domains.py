"""Distributor custom-domain verification via DNS."""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Any, Dict, List

from storefront import settings
from storefront.db_distributors import DomainStatus, get_domain, set_domain_status
from storefront.errors import NotFound

logger = logging.getLogger(__name__)


async def lookup_host(domain: str, timeout: float) -> List[str]:
    """Resolve the domain to its addresses; raises on failure or timeout."""
    loop = asyncio.get_running_loop()
    infos = await asyncio.wait_for(loop.getaddrinfo(domain, None), timeout=timeout)
    addresses: List[str] = []
    for family, _, _, _, sockaddr in infos:
        if family in (socket.AF_INET, socket.AF_INET6) and sockaddr[0] not in addresses:
            addresses.append(sockaddr[0])
    return addresses


async def verify_domain(distributor_id: int, domain_id: int) -> Dict[str, Any]:
    """Look the domain up and record the outcome as verified/failed."""
    record = get_domain(distributor_id, domain_id)
    if not record:
        raise NotFound("Domain not found")

    domain = record["domain"]
    timeout = settings.DOMAIN_VERIFY_TIMEOUT_SECONDS
    try:
        records = await lookup_host(domain, timeout)
        details: Dict[str, Any] = {"success": bool(records), "records": records}
    except asyncio.TimeoutError:
        details = {"success": False, "records": [], "error": "DNS resolution timed out"}
    except (OSError, UnicodeError) as e:
        details = {"success": False, "records": [], "error": str(e)}

    status = DomainStatus.VERIFIED if details["success"] else DomainStatus.FAILED
    logger.info(f"domains: verify {domain} (distributor_id={distributor_id}) -> {status}")
    return set_domain_status(domain_id, status, details)
