"""Static probe target table.

The endpoints are chosen for being cheap, public and widely reachable:
- generate_204 endpoints answer with an empty 204 and are the standard
  connectivity-check targets.
- The Cloudflare trace endpoint is addressed through a domain rather than a
  bare IP because carriers block raw-IP HTTPS far more often.
- The DoH query is best-effort: it is frequently blocked or filtered.

Domain evidence (which probes prove that *name-bearing* domains resolve) is
fixed here, on the endpoint itself, and nowhere else: only `primary-a` and
`primary-c` count. The trace endpoint is a diagnostic path target, not a
human-facing domain, so it never counts.
"""

from __future__ import annotations

from core.domain.models import Endpoint, EndpointRole


PRIMARY_ROLES: tuple[EndpointRole, ...] = (
    EndpointRole.PRIMARY_A,
    EndpointRole.PRIMARY_B,
    EndpointRole.PRIMARY_C,
)

DEFAULT_ENDPOINTS: tuple[Endpoint, ...] = (
    Endpoint(
        key="google204",
        url="https://www.google.com/generate_204",
        role=EndpointRole.PRIMARY_A,
        domain_bearing=True,
        observe=True,
    ),
    Endpoint(
        key="cfTrace",
        url="https://one.one.one.one/cdn-cgi/trace",
        role=EndpointRole.PRIMARY_B,
        domain_bearing=False,
        observe=True,
    ),
    Endpoint(
        key="cfHome",
        url="https://www.cloudflare.com/",
        role=EndpointRole.PRIMARY_C,
        domain_bearing=True,
        observe=False,
    ),
    Endpoint(
        key="gstatic204",
        url="https://www.gstatic.com/generate_204",
        role=EndpointRole.CAPTIVE_PROBE,
        domain_bearing=True,
        observe=True,
    ),
    Endpoint(
        key="dohCloudflare",
        url="https://cloudflare-dns.com/dns-query?name=example.com&type=A",
        role=EndpointRole.RESOLUTION_PROBE,
        domain_bearing=True,
        observe=True,
        headers={"Accept": "application/dns-json"},
    ),
)


def endpoint_for(role: EndpointRole, endpoints: tuple[Endpoint, ...] = DEFAULT_ENDPOINTS) -> Endpoint:
    """Return the endpoint configured for `role`.

    The table holds exactly one endpoint per role; a missing role is a
    configuration bug and raises `LookupError`.
    """

    for endpoint in endpoints:
        if endpoint.role is role:
            return endpoint
    raise LookupError(f"No endpoint configured for role {role.value!r}")
