"""
Member Enricher — Best-effort 2FA and SAML lookups for the full export.

The enterprise members query does not expose two-factor status or SAML
identities. Both are only visible per organization, so for each member the
enricher asks the member's first organization (in membership order):

    organization(login: <first org>) {
      membersWithRole(query: <login>) { edges { hasTwoFactorEnabled } }
      samlIdentityProvider { externalIdentities(login: <login>) { ... nameId } }
    }

This needs org owner access. A member with no organizations, or any failed
lookup, yields Enrichment.absent(); the lookup never raises and never stops
the export. For N members this costs up to N extra requests, so the lookups
can run on a bounded thread pool (ENRICH_WORKERS). Results are written into
an indexed slot per member, so output order always matches input order.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import TransportError
from .graphql_queries import ORGANIZATION_MEMBER_DETAILS_QUERY


@dataclass
class Enrichment:
    two_factor_enabled: Optional[bool] = None
    saml_name_id: Optional[str] = None
    verified_domain_emails: list = field(default_factory=list)

    @classmethod
    def absent(cls) -> "Enrichment":
        return cls()

    @property
    def is_absent(self) -> bool:
        return self.two_factor_enabled is None and self.saml_name_id is None


def member_login(member: Dict[str, Any]) -> str:
    """Profile login, else enterprise account login, else ""."""
    user = member.get("user") or {}
    return user.get("login") or member.get("login") or ""


def first_organization_login(member: Dict[str, Any]) -> Optional[str]:
    """Login of the first non-null membership edge, as listed in the export row."""
    edges = (member.get("organizations") or {}).get("edges") or []
    for edge in edges:
        if edge:
            return (edge.get("node") or {}).get("login")
    return None


class MemberEnricher:
    """Looks up 2FA status and SAML NameID for enterprise members.

    Attributes:
        client: A GitHubGraphQLClient.
        workers: Thread pool size; 1 or less runs lookups sequentially.
        debug: If True, print a warning for each failed lookup.
        failures: Number of lookups that degraded to Enrichment.absent().
    """

    def __init__(self, client, workers: int = 1, debug: bool = False):
        self.client = client
        self.workers = workers
        self.debug = debug
        self.failures = 0
        self._lock = threading.Lock()

    def enrich(self, member: Dict[str, Any]) -> Enrichment:
        login = member_login(member)
        org_login = first_organization_login(member)
        if not login or not org_login:
            return Enrichment.absent()

        try:
            data = self.client.execute_graphql(
                ORGANIZATION_MEMBER_DETAILS_QUERY,
                {"login": login, "orgLogin": org_login},
            )
            return self._parse(data)
        except (TransportError, AttributeError, TypeError) as e:
            with self._lock:
                self.failures += 1
            if self.debug:
                print(f"  Warning: could not get 2FA/SAML details for {login} in {org_login}: {e}")
            return Enrichment.absent()

    def enrich_all(self, members: List[Dict[str, Any]]) -> List[Enrichment]:
        """Enrich a page of members; result[i] always belongs to members[i]."""
        if self.workers <= 1 or len(members) <= 1:
            return [self.enrich(m) for m in members]

        results: List[Enrichment] = [Enrichment.absent()] * len(members)
        executor = ThreadPoolExecutor(max_workers=self.workers)
        try:
            futures = {executor.submit(self.enrich, m): i for i, m in enumerate(members)}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            # Ctrl+C: drop queued lookups, only the in-flight ones finish
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown()
        return results

    @staticmethod
    def _parse(data: Dict[str, Any]) -> Enrichment:
        organization = data.get("organization") or {}

        two_factor = None
        edges = (organization.get("membersWithRole") or {}).get("edges") or []
        if edges and edges[0]:
            two_factor = edges[0].get("hasTwoFactorEnabled")

        name_id = None
        provider = organization.get("samlIdentityProvider") or {}
        nodes = (provider.get("externalIdentities") or {}).get("nodes") or []
        if nodes and nodes[0]:
            name_id = (nodes[0].get("samlIdentity") or {}).get("nameId")

        return Enrichment(two_factor_enabled=two_factor, saml_name_id=name_id)
