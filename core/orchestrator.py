"""
Export Orchestrator — Pipeline coordination for GitHub Enterprise user exports.

This module is the core of the exporter. It ties together all other modules
(GitHubGraphQLClient, MemberFetcher, MemberEnricher, RowMapper, OutputManager)
into a sequential workflow:

  Step 1: MEMBER COUNT
      One members query with batchSize=1 to learn totalCount and the
      enterprise display name, used for progress reporting.

  Step 2: FETCH MEMBERS
      MemberFetcher walks enterprise.members 100 at a time, following the
      endCursor until hasNextPage is false. Full export only: each page is
      passed to MemberEnricher for 2FA status and SAML NameID. RowMapper
      then flattens every member node of the page into one CSV row.

  Step 3: SAVE OUTPUT
      OutputManager writes the CSV (and export_results.json) into a
      timestamped output directory.

Two export variants share the pipeline:
    basic   profile columns (company, location, website, twitter, site admin)
    full    security columns (2FA enabled, 2FA method security, SAML NameID)

Any error that escapes a step aborts the run before Step 3, so a failed run
never writes a CSV. The error is mapped to operator guidance (bad token,
missing scopes, unknown enterprise, rate limit, write failure).

Configuration:
    All settings are loaded from environment variables (typically via .env file).
    Required: GITHUB_TOKEN, ENTERPRISE_SLUG.
    See config/settings.py for defaults.

Typical usage:
    orchestrator = ExportOrchestrator(env_file="./.env")
    if orchestrator.validate_config():
        results = orchestrator.run_export("full")
        orchestrator.print_summary(results)
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

from .errors import ExporterError, ConfigurationError, guidance_for, error_kind
from .github_client import GitHubGraphQLClient
from .graphql_queries import BASIC_MEMBERS_QUERY, FULL_MEMBERS_QUERY
from .member_fetcher import MemberFetcher
from .enricher import MemberEnricher
from .row_mapper import RowMapper
from .output_manager import OutputManager
from .preflight_checker import PreflightChecker, print_preflight_summary, summarize

from config import (
    DEFAULT_SETTINGS,
    BASIC_COLUMNS,
    FULL_COLUMNS,
    BASIC_OUTPUT_FILE,
    FULL_OUTPUT_FILE,
)

VARIANTS = {
    "basic": {
        "query": BASIC_MEMBERS_QUERY,
        "columns": BASIC_COLUMNS,
        "filename": BASIC_OUTPUT_FILE,
        "enrich": False,
    },
    "full": {
        "query": FULL_MEMBERS_QUERY,
        "columns": FULL_COLUMNS,
        "filename": FULL_OUTPUT_FILE,
        "enrich": True,
    },
}


def _env_bool(name: str) -> bool:
    return os.getenv(name, str(DEFAULT_SETTINGS[name])).lower() == "true"


def _env_int(name: str) -> int:
    return int(os.getenv(name, str(DEFAULT_SETTINGS[name])))


def _env_float(name: str) -> float:
    return float(os.getenv(name, str(DEFAULT_SETTINGS[name])))


class ExportOrchestrator:
    """Orchestrates the GitHub Enterprise member export pipeline.

    Attributes:
        token: GitHub access token (GITHUB_TOKEN).
        enterprise_slug: Enterprise slug (ENTERPRISE_SLUG).
        graphql_url: GraphQL endpoint (GITHUB_GRAPHQL_URL).
        page_size, page_delay, request_timeout, max_retries, max_pages:
            Pagination and request tuning, see config/settings.py.
        enrich_workers: Thread pool size for 2FA/SAML lookups.
        save_results_json: Whether to write export_results.json.
        debug: Whether to enable verbose output.
        output_manager: Handles timestamped output directories and retention cleanup.
        processed_users: Members fetched so far in the current run.
    """

    def __init__(self, env_file: str = "./.env"):
        """Read settings from the environment, after loading env_file if present.

        Values already set in the process environment win over the .env file.
        """
        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path)
            print(f"Loaded configuration from: {env_file}")
        else:
            print(f"Warning: {env_file} not found, reading settings from the environment")

        # GitHub credentials (required)
        self.token = os.getenv("GITHUB_TOKEN", "")
        self.enterprise_slug = os.getenv("ENTERPRISE_SLUG", "")
        self.graphql_url = os.getenv("GITHUB_GRAPHQL_URL", DEFAULT_SETTINGS["GITHUB_GRAPHQL_URL"])

        self.provider_name = os.getenv("PROVIDER_NAME", DEFAULT_SETTINGS["PROVIDER_NAME"])

        # Output directory and how many days to keep old runs
        output_dir = os.getenv("OUTPUT_DIR", DEFAULT_SETTINGS["OUTPUT_DIR"])
        retention_days = _env_int("OUTPUT_RETENTION_DAYS")

        # Pagination and request tuning
        self.page_size = _env_int("PAGE_SIZE")
        self.page_delay = _env_float("PAGE_DELAY_SECONDS")
        self.request_timeout = _env_float("REQUEST_TIMEOUT")
        self.max_retries = _env_int("MAX_RETRIES")
        self.max_pages = _env_int("MAX_PAGES")
        self.enrich_workers = _env_int("ENRICH_WORKERS")

        # Processing options
        self.save_results_json = _env_bool("SAVE_RESULTS_JSON")
        self.debug = _env_bool("DEBUG")

        self.output_manager = OutputManager(output_dir, self.provider_name, retention_days)
        self.processed_users = 0

    def validate_config(self) -> bool:
        """Check settings before any network call; print each problem found."""
        errors = []
        if not self.token:
            errors.append("GITHUB_TOKEN is required")
        if not self.enterprise_slug:
            errors.append("ENTERPRISE_SLUG is required")
        if self.page_size < 1:
            errors.append("PAGE_SIZE must be at least 1")
        if self.enrich_workers < 1:
            errors.append("ENRICH_WORKERS must be at least 1")

        if errors:
            print("\nConfiguration Errors:")
            for err in errors:
                print(f"  - {err}")
            print("Please set GITHUB_TOKEN and ENTERPRISE_SLUG in your .env file")
            return False
        return True

    def create_client(self) -> GitHubGraphQLClient:
        return GitHubGraphQLClient(
            self.token, self.graphql_url, timeout=self.request_timeout, debug=self.debug
        )

    def run_export(self, variant: str = "full", client=None) -> Dict[str, Any]:
        """Execute the export pipeline for one variant ("basic" or "full").

        Args:
            variant: Which column layout to export.
            client: Optional pre-built GraphQL client (defaults to create_client()).

        Returns:
            A dict containing:
                - started_at/completed_at: ISO timestamps
                - variant, enterprise: what was exported
                - success: True if the CSV was written
                - summary: user count, enrichment failures, request count
                - csv_path: Path to the written CSV (if success)
                - error, error_kind, guidance: Failure details (if success=False)
                - interrupted: True if stopped with Ctrl+C
        """
        if variant not in VARIANTS:
            raise ValueError(f"Unknown export variant: {variant}")
        spec = VARIANTS[variant]

        results = {
            "started_at": datetime.now(timezone.utc).isoformat(),
            "variant": variant,
            "enterprise": self.enterprise_slug,
            "success": False,
        }
        self.processed_users = 0
        csv_path = None

        try:
            if not self.token or not self.enterprise_slug:
                raise ConfigurationError("GITHUB_TOKEN and ENTERPRISE_SLUG are required")

            client = client or self.create_client()
            fetcher = MemberFetcher(
                client,
                query=spec["query"],
                page_size=self.page_size,
                page_delay=self.page_delay,
                max_retries=self.max_retries,
                max_pages=self.max_pages,
                debug=self.debug,
                progress=self._track_progress,
            )
            enricher = MemberEnricher(client, workers=self.enrich_workers, debug=self.debug)
            mapper = RowMapper()

            # Step 1: Preliminary count
            print(f"\n{'='*60}")
            print("STEP 1: MEMBER COUNT")
            print("="*60)
            total, enterprise_name = fetcher.fetch_total(self.enterprise_slug)
            print(f"  Found {total} total users in enterprise \"{enterprise_name}\"")

            # Step 2: Fetch pages, enrich (full only), map rows
            print(f"\n{'='*60}")
            print("STEP 2: FETCH MEMBERS" + (" AND 2FA/SAML DETAILS" if spec["enrich"] else ""))
            print("="*60)
            rows: List[Dict[str, Any]] = []
            missing_details = 0
            for members in fetcher.iter_pages(self.enterprise_slug):
                if self.debug:
                    print(f"  Fetched {len(members)} users in this batch")
                if spec["enrich"]:
                    enrichments = enricher.enrich_all(members)
                    missing_details += sum(1 for e in enrichments if e.is_absent)
                    rows.extend(mapper.to_full_rows(members, enrichments))
                else:
                    rows.extend(mapper.to_basic_rows(members))

            if spec["enrich"] and missing_details:
                print(f"  2FA/SAML details unavailable for {missing_details} user(s) "
                      f"({enricher.failures} failed lookup(s))")

            if len(rows) != total and not self.max_pages:
                print(f"  Warning: exported {len(rows)} users but the enterprise reports {total}")

            # Step 3: Save output
            print(f"\n{'='*60}")
            print("STEP 3: SAVE OUTPUT")
            print("="*60)
            print(f"  Writing {len(rows)} users to {spec['filename']}...")
            self.output_manager.create_timestamped_dir()
            csv_path = self.output_manager.get_output_path(spec["filename"])
            self.output_manager.write_csv(rows, spec["filename"], spec["columns"])
            print(f"  Saved CSV: {os.path.abspath(csv_path)}")

            results["success"] = True
            results["csv_path"] = csv_path
            results["summary"] = {
                "enterprise_name": enterprise_name,
                "total_reported": total,
                "users": len(rows),
                "enrichment_failures": enricher.failures if spec["enrich"] else 0,
                "enrichment_missing": missing_details,
                "requests": getattr(client, "request_count", None),
            }
            results["sample"] = rows[0] if rows else None

        except KeyboardInterrupt:
            results["interrupted"] = True
            results["error"] = "Export interrupted by user"
            print("\n  Export interrupted by user")
            if self.processed_users > 0:
                print(f"  Processed {self.processed_users} users before interruption")

        except (ExporterError, OSError) as e:
            results["error"] = str(e)
            results["error_kind"] = error_kind(e)
            results["guidance"] = guidance_for(e, csv_path)
            print(f"\n  ERROR: {e}")
            print(f"  {results['guidance']}")
            if self.debug:
                import traceback
                traceback.print_exc()

        results["processed_users"] = self.processed_users
        results["completed_at"] = datetime.now(timezone.utc).isoformat()

        # Save run metadata alongside the CSV
        if results["success"] and self.save_results_json:
            try:
                results_path = self.output_manager.write_json(
                    {k: v for k, v in results.items() if k != "sample"}, "export_results.json"
                )
                print(f"\n  Results saved to: {results_path}")
            except OSError as e:
                print(f"  Warning: could not save export_results.json: {e}")

        return results

    def run_connection_test(self, client=None) -> Dict[str, Any]:
        """Run the preflight connection and permission checks."""
        checker = PreflightChecker(client or self.create_client(), self.enterprise_slug, self.debug)
        result = checker.run_all()
        print_preflight_summary(result)
        return summarize(result)

    def _track_progress(self, processed: int, total: int):
        self.processed_users = processed

    def print_summary(self, results: Dict):
        """Print a human-readable execution summary.

        Args:
            results: The dict returned by run_export().
        """
        print(f"\n{'='*60}")
        print("EXPORT COMPLETE" if results.get("success") else "EXPORT FAILED")
        print("="*60)
        print(f"Status: {'SUCCESS' if results.get('success') else 'FAILED'}")
        print(f"Variant: {results.get('variant')}")
        print(f"Enterprise: {results.get('enterprise')}")

        summary = results.get("summary", {})
        if summary:
            print(f"Users exported: {summary.get('users', 0)}")
            if results.get("variant") == "full":
                print(f"2FA/SAML unavailable: {summary.get('enrichment_missing', 0)} "
                      f"({summary.get('enrichment_failures', 0)} failed lookups)")

        csv_path = results.get("csv_path")
        if csv_path and os.path.exists(csv_path):
            size_mb = os.path.getsize(csv_path) / 1024 / 1024
            print(f"File: {os.path.abspath(csv_path)}")
            print(f"File size: {size_mb:.2f} MB")

        sample = results.get("sample")
        if sample and results.get("variant") == "basic":
            print("\nSample data (first user):")
            print(f"  Username: {sample.get('login')}")
            print(f"  Name: {sample.get('name')}")
            print(f"  Organizations: {sample.get('organizations_count')}")

        if results.get("error"):
            print(f"Error: {results['error']}")
        if results.get("guidance"):
            print(f"Next step: {results['guidance']}")
