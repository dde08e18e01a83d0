"""
Core package — The export pipeline modules.

This package contains all the modules that implement the export pipeline.
Each module handles one concern:

  orchestrator.py       Pipeline coordination, error guidance, summaries
  github_client.py      HTTP communication with the GitHub GraphQL API
  graphql_queries.py    GraphQL query definitions
  member_fetcher.py     Cursor pagination over enterprise members
  enricher.py           Best-effort 2FA/SAML lookups per member
  row_mapper.py         Flatten member nodes into CSV rows
  output_manager.py     Timestamped output folders and CSV writing
  preflight_checker.py  Connection and permission test
  errors.py             Exception hierarchy and operator guidance
"""

from .orchestrator import ExportOrchestrator
from .github_client import GitHubGraphQLClient
from .member_fetcher import MemberFetcher
from .enricher import MemberEnricher, Enrichment
from .row_mapper import RowMapper
from .output_manager import OutputManager
from .preflight_checker import PreflightChecker, PreflightResult
