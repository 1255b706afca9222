"""Storefront-as-distributor tenant resolution from the inbound host."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from storefront.db_distributors import find_distributor_for_host, find_verified_domain_distributor

logger = logging.getLogger(__name__)

TENANT_HOST_HEADER = "x-tenant-host"


def normalize_host(host: Optional[str]) -> str:
    """Strip the port and lower-case: "Chromet.Example.com:3000" -> "chromet.example.com"."""
    if not host:
        return ""
    return host.strip().split(":")[0].lower()


def extract_subdomain(host: str) -> Optional[str]:
    """Leading label of a 3+ part host, or of "<name>.localhost" during local dev."""
    parts = host.split(".")
    if len(parts) > 2:
        return parts[0]
    if len(parts) == 2 and parts[1] == "localhost":
        return parts[0]
    return None


def resolve_tenant(host: Optional[str]) -> Optional[Dict[str, Any]]:
    """Distributor serving this host, or None for unknown hosts.

    Email domain equal to the host (with or without "www.") and distributor
    name containing the subdomain are one direct match, lowest id first.
    Verified domain records are consulted only when nothing matches directly.
    """
    host_only = normalize_host(host)
    if not host_only:
        return None

    subdomain = extract_subdomain(host_only)
    if subdomain == "www":
        subdomain = None

    tenant = find_distributor_for_host(host_only, subdomain)
    if tenant is None:
        tenant = find_verified_domain_distributor(host_only)

    if tenant is not None:
        logger.debug(f"tenant: host={host_only} -> distributor_id={tenant['id']}")
    return tenant


def tenant_host_from_headers(headers) -> str:
    """Explicit tenant header first, then the request's own Host."""
    return normalize_host(headers.get(TENANT_HOST_HEADER) or headers.get("host") or "")
