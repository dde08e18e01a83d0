"""
Settings — Default configuration values for the GitHub Enterprise users exporter.

This module provides the DEFAULT_SETTINGS dict that the orchestrator uses as
fallback values when environment variables are not set. The actual configuration
is loaded from .env at runtime; these defaults ensure the exporter works out of
the box against github.com.

Configuration precedence (highest to lowest):
  1. CLI flags (--debug)
  2. Environment variables (from .env file)
  3. DEFAULT_SETTINGS (this file)

Required environment variables (no defaults):
  GITHUB_TOKEN            Personal access token (scopes: read:enterprise, read:org, read:user)
  ENTERPRISE_SLUG         The enterprise slug as it appears in github.com/enterprises/<slug>

Settings reference:
  PROVIDER_NAME           Label used in output folder naming
  GITHUB_GRAPHQL_URL      GraphQL endpoint (override for GitHub Enterprise Server hosts)
  OUTPUT_DIR              Where to write export output (default: ./output)
  OUTPUT_RETENTION_DAYS   How many days to keep old output folders (0 = keep forever)
  PAGE_SIZE               Members requested per page (GitHub caps this at 100)
  PAGE_DELAY_SECONDS      Courtesy delay between page requests
  REQUEST_TIMEOUT         Per-request timeout in seconds
  MAX_RETRIES             Retries per page for rate limits and transient failures
  MAX_PAGES               Stop after this many pages (0 = no cap)
  ENRICH_WORKERS          Parallel 2FA/SAML lookups in the full export (1 = sequential)
  SAVE_RESULTS_JSON       Whether to write export_results.json next to the CSV
  DEBUG                   Whether to print verbose output (default: False)
"""

PROVIDER_NAME = "GitHub_Enterprise_Users"

GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"

# GitHub's GraphQL connections accept at most 100 nodes per page
MAX_PAGE_SIZE = 100

DEFAULT_SETTINGS = {
    "PROVIDER_NAME": PROVIDER_NAME,
    "GITHUB_GRAPHQL_URL": GITHUB_GRAPHQL_URL,
    "OUTPUT_DIR": "./output",
    "OUTPUT_RETENTION_DAYS": 30,
    "PAGE_SIZE": MAX_PAGE_SIZE,
    "PAGE_DELAY_SECONDS": 0.2,
    "REQUEST_TIMEOUT": 30,
    "MAX_RETRIES": 3,
    "MAX_PAGES": 0,
    "ENRICH_WORKERS": 1,
    "SAVE_RESULTS_JSON": True,
    "DEBUG": False,
}

BASIC_OUTPUT_FILE = "enterprise-users-export-basic.csv"
FULL_OUTPUT_FILE = "enterprise-users-export.csv"

# (row key, CSV header title) in column order
BASIC_COLUMNS = [
    ("login", "Username"),
    ("name", "Display Name"),
    ("email", "Email"),
    ("company", "Company"),
    ("location", "Location"),
    ("website_url", "Website"),
    ("twitter_username", "Twitter"),
    ("is_site_admin", "Site Admin"),
    ("organizations_count", "Organizations Count"),
    ("organizations", "Organizations"),
    ("organization_roles", "Organization Roles"),
    ("created_at", "Created At"),
    ("updated_at", "Updated At"),
]

FULL_COLUMNS = [
    ("login", "Username"),
    ("name", "Display Name"),
    ("email", "Email"),
    ("role", "Enterprise Role"),
    ("two_factor_enabled", "2FA Enabled"),
    ("two_factor_method_security", "2FA Method Security"),
    ("organizations", "Organizations"),
    ("organization_roles", "Organization Roles"),
    ("saml_name_id", "SAML NameID"),
    ("verified_domain_emails", "Verified Domain Emails"),
    ("enterprise_server_user_ids", "Enterprise Server User IDs"),
    ("created_at", "Created At"),
    ("updated_at", "Updated At"),
]
