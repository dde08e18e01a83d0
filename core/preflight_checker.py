"""
Preflight Checker - Validates the token and enterprise access before an export.

Runs five checks against the GitHub GraphQL API and reports PASS/FAIL for each:

  token        viewer { login name }                  token is valid
  enterprise   enterprise(slug) { name slug members } enterprise is visible
  users        first 3 members with organizations     member data is readable
  rate_limit   rateLimit { limit remaining resetAt }  quota is not nearly spent
  advanced     2FA/SAML detail for one member         org owner access (optional)

The export is considered ready when enterprise and users pass. A failing
advanced check only means the full export will leave 2FA/SAML columns empty.
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass, field

from .errors import TransportError
from .graphql_queries import (
    ENTERPRISE_ACCESS_QUERY,
    MEMBER_SAMPLE_QUERY,
    RATE_LIMIT_QUERY,
    FIRST_MEMBER_ORGANIZATION_QUERY,
    ORGANIZATION_MEMBER_DETAILS_QUERY,
)

LOW_RATE_LIMIT_THRESHOLD = 100


@dataclass
class PreflightResult:
    token: bool = False
    enterprise: bool = False
    users: bool = False
    rate_limit: bool = False
    advanced: bool = False
    viewer_login: Optional[str] = None
    total_members: Optional[int] = None
    rate_limit_remaining: Optional[int] = None
    errors: dict = field(default_factory=dict)

    @property
    def ready(self) -> bool:
        return self.enterprise and self.users


class PreflightChecker:
    """Check that the token can read the enterprise before exporting."""

    def __init__(self, client, enterprise_slug: str, debug: bool = False):
        self.client = client
        self.enterprise_slug = enterprise_slug
        self.debug = debug

    def run_all(self) -> PreflightResult:
        """Run preflight checks."""
        result = PreflightResult()

        result.token = self.check_token(result)
        result.enterprise = self.check_enterprise(result)

        if result.enterprise:
            result.users = self.check_user_sample(result)
            result.rate_limit = self.check_rate_limit(result)
            result.advanced = self.check_advanced_permissions(result)

        return result

    def check_token(self, result: PreflightResult) -> bool:
        print("\nTesting token...")
        try:
            viewer = self.client.test_token()
        except TransportError as e:
            return self._fail(result, "token", e)

        result.viewer_login = viewer.get("login")
        print(f"  Token is valid, authenticated as: {viewer.get('login')}")
        print(f"  Name: {viewer.get('name') or 'Not set'}")
        return True

    def check_enterprise(self, result: PreflightResult) -> bool:
        print("\nTesting enterprise access...")
        try:
            data = self.client.execute_graphql(
                ENTERPRISE_ACCESS_QUERY, {"enterpriseSlug": self.enterprise_slug}
            )
        except TransportError as e:
            return self._fail(result, "enterprise", e)

        enterprise = data.get("enterprise")
        if not enterprise:
            print(f"  Enterprise '{self.enterprise_slug}' not found")
            result.errors["enterprise"] = "not found"
            return False

        result.total_members = (enterprise.get("members") or {}).get("totalCount")
        print("  Enterprise access successful")
        print(f"  Name: {enterprise.get('name')}")
        print(f"  Slug: {enterprise.get('slug')}")
        print(f"  Total Members: {result.total_members}")
        print(f"  Description: {enterprise.get('description') or 'N/A'}")
        return True

    def check_user_sample(self, result: PreflightResult) -> bool:
        print("\nTesting user data retrieval...")
        try:
            data = self.client.execute_graphql(
                MEMBER_SAMPLE_QUERY, {"enterpriseSlug": self.enterprise_slug}
            )
        except TransportError as e:
            return self._fail(result, "users", e)

        nodes = ((data.get("enterprise") or {}).get("members") or {}).get("nodes") or []
        print(f"  User data retrieval successful, got {len(nodes)} sample users")

        for index, node in enumerate(n for n in nodes if n):
            user = node.get("user") or {}
            orgs = node.get("organizations") or {}
            print(f"  User {index + 1}:")
            print(f"    Login: {node.get('login')}")
            print(f"    Name: {node.get('name') or 'N/A'}")
            print(f"    Email: {user.get('email') or 'N/A'}")
            print(f"    Organizations: {orgs.get('totalCount', 0)}")
            edges = [e for e in orgs.get("edges") or [] if e]
            if edges:
                details = ", ".join(
                    f"{(e.get('node') or {}).get('login')} ({e.get('role')})" for e in edges
                )
                print(f"    Org Details: {details}")
        return True

    def check_rate_limit(self, result: PreflightResult) -> bool:
        print("\nChecking rate limit status...")
        try:
            data = self.client.execute_graphql(RATE_LIMIT_QUERY)
        except TransportError as e:
            return self._fail(result, "rate_limit", e)

        rate_limit = data.get("rateLimit") or {}
        result.rate_limit_remaining = rate_limit.get("remaining")
        print(f"  Limit: {rate_limit.get('limit')} points per hour")
        print(f"  Remaining: {rate_limit.get('remaining')}")
        print(f"  Reset At: {rate_limit.get('resetAt')}")

        remaining = rate_limit.get("remaining")
        if remaining is not None and remaining < LOW_RATE_LIMIT_THRESHOLD:
            print("  WARNING: Low rate limit remaining. "
                  "Consider waiting before running the full export.")
        return True

    def check_advanced_permissions(self, result: PreflightResult) -> bool:
        print("\nTesting advanced permissions (2FA, SAML data)...")
        try:
            data = self.client.execute_graphql(
                FIRST_MEMBER_ORGANIZATION_QUERY, {"enterpriseSlug": self.enterprise_slug}
            )
            nodes = ((data.get("enterprise") or {}).get("members") or {}).get("nodes") or []
            member = nodes[0] if nodes else None
            edges = ((member or {}).get("organizations") or {}).get("edges") or []
            if not member or not edges:
                print("  No users or organizations found to test permissions")
                result.errors["advanced"] = "no member with an organization"
                return False

            user_login = member.get("login")
            org_login = (edges[0].get("node") or {}).get("login")
            detail = self.client.execute_graphql(
                ORGANIZATION_MEMBER_DETAILS_QUERY, {"login": user_login, "orgLogin": org_login}
            )
        except TransportError as e:
            self._fail(result, "advanced", e)
            print("  This is expected if you don't have org owner permissions")
            print("  The basic export will still work without these permissions")
            return False

        organization = detail.get("organization") or {}
        member_edges = (organization.get("membersWithRole") or {}).get("edges") or []
        if member_edges and member_edges[0]:
            two_factor = member_edges[0].get("hasTwoFactorEnabled")
            print(f"  2FA Status Available: {'Yes' if two_factor is not None else 'No'}")

        provider = organization.get("samlIdentityProvider")
        if provider:
            print("  SAML Provider: Available")
        else:
            print("  SAML Provider: Not configured")
        return True

    def _fail(self, result: PreflightResult, check: str, error: Exception) -> bool:
        result.errors[check] = str(error)
        print(f"  FAILED: {error}")
        return False


def print_preflight_summary(result: PreflightResult):
    """Print the PASS/FAIL table and next steps."""
    print(f"\n{'='*60}")
    print("TEST RESULTS SUMMARY")
    print("="*60)
    print(f"Token:                {'PASS' if result.token else 'FAIL'}")
    print(f"Enterprise Access:    {'PASS' if result.enterprise else 'FAIL'}")
    print(f"User Data Retrieval:  {'PASS' if result.users else 'FAIL'}")
    print(f"Rate Limit Check:     {'PASS' if result.rate_limit else 'FAIL'}")
    print(f"Advanced Permissions: {'PASS' if result.advanced else 'LIMITED'}")

    if result.ready:
        print("\nReady to run the export!")
        print("  Use: python run.py basic   (basic export)")
        if result.advanced:
            print("  Use: python run.py full    (full export with 2FA/SAML data)")
        else:
            print("  Use: python run.py full    (2FA/SAML columns will be empty)")
    else:
        print("\nTests failed. Please check your configuration:")
        print("  1. Verify GITHUB_TOKEN is correct and has required scopes")
        print("  2. Verify ENTERPRISE_SLUG matches your enterprise")
        print("  3. Ensure you have enterprise read permissions")


def summarize(result: PreflightResult) -> Dict[str, Any]:
    return {
        "token": result.token,
        "enterprise": result.enterprise,
        "users": result.users,
        "rate_limit": result.rate_limit,
        "advanced": result.advanced,
        "ready": result.ready,
        "errors": dict(result.errors),
    }
