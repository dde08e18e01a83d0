"""
Row Mapper — Flattens enterprise member nodes into CSV rows.

This module sits between the raw member pages (MemberFetcher) and the CSV
writer (OutputManager). Each EnterpriseUserAccount node becomes exactly one
flat dict keyed by the column ids in config.settings:

    {
      "login": "octocat",
      "name": "Mona",
      "user": {                       # null when the account has no public user
        "login", "name", "email", "company", "location", "isSiteAdmin",
        "websiteUrl", "twitterUsername", "createdAt", "updatedAt"
      },
      "organizations": {
        "edges": [ { "role": "ADMIN", "node": { "login": "acme" } }, ... ]
      },
      "createdAt", "updatedAt"
    }

Fallback rules:
  - login / name: user value, else account value, else ""
  - email, company, location, website, twitter, site admin: user only
  - created_at / updated_at: user value, else account value, else ""
  - organizations: "acme; beta" in membership order
  - organization_roles: "acme: ADMIN; beta: MEMBER" in membership order

Mapping never raises on missing or null fields. Quoting of commas, quotes
and newlines is left to the csv writer.
"""

from typing import Any, Dict, List, Optional

from .enricher import Enrichment

SEPARATOR = "; "
NOT_AVAILABLE = "N/A"
# Enterprise-level role is not exposed by the members query
DEFAULT_ENTERPRISE_ROLE = "MEMBER"


def _membership_edges(member: Dict[str, Any]) -> List[Dict[str, Any]]:
    edges = (member.get("organizations") or {}).get("edges") or []
    return [e for e in edges if e]


def _org_login(edge: Dict[str, Any]) -> str:
    return (edge.get("node") or {}).get("login") or ""


class RowMapper:
    """Builds basic and full export rows from member nodes."""

    def _core_fields(self, member: Dict[str, Any]) -> Dict[str, Any]:
        user = member.get("user") or {}
        edges = _membership_edges(member)
        return {
            "login": user.get("login") or member.get("login") or "",
            "name": user.get("name") or member.get("name") or "",
            "email": user.get("email") or "",
            "organizations": SEPARATOR.join(_org_login(e) for e in edges),
            "organization_roles": SEPARATOR.join(
                f"{_org_login(e)}: {e.get('role') or ''}" for e in edges
            ),
            "created_at": user.get("createdAt") or member.get("createdAt") or "",
            "updated_at": user.get("updatedAt") or member.get("updatedAt") or "",
        }

    def to_basic_row(self, member: Dict[str, Any]) -> Dict[str, Any]:
        user = member.get("user") or {}
        row = self._core_fields(member)
        row.update({
            "company": user.get("company") or "",
            "location": user.get("location") or "",
            "website_url": user.get("websiteUrl") or "",
            "twitter_username": user.get("twitterUsername") or "",
            "is_site_admin": bool(user.get("isSiteAdmin") or False),
            "organizations_count": len(_membership_edges(member)),
        })
        return row

    def to_full_row(self, member: Dict[str, Any],
                    enrichment: Optional[Enrichment] = None) -> Dict[str, Any]:
        enrichment = enrichment or Enrichment.absent()
        two_factor = enrichment.two_factor_enabled

        row = self._core_fields(member)
        row.update({
            "role": DEFAULT_ENTERPRISE_ROLE,
            "two_factor_enabled": two_factor if two_factor is not None else NOT_AVAILABLE,
            "two_factor_method_security": "SECURE" if two_factor is True else "NOT_CONFIGURED",
            "saml_name_id": enrichment.saml_name_id or "",
            "verified_domain_emails": SEPARATOR.join(enrichment.verified_domain_emails),
            "enterprise_server_user_ids": "",
        })
        return row

    def to_basic_rows(self, members: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self.to_basic_row(m) for m in members]

    def to_full_rows(self, members: List[Dict[str, Any]],
                     enrichments: List[Enrichment]) -> List[Dict[str, Any]]:
        return [self.to_full_row(m, e) for m, e in zip(members, enrichments)]
