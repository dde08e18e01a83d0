"""Tests for core.orchestrator.ExportOrchestrator and the run.py entry point."""

import csv
import os
from importlib.metadata import PackageNotFoundError
from unittest.mock import patch, MagicMock

import pytest

import run
from core.orchestrator import ExportOrchestrator
from core.errors import ForbiddenError, NotFoundError, RateLimitedError
from fakes import PagedEnterprise


_BASE_ENV = {
    "GITHUB_TOKEN": "ghp_test",
    "ENTERPRISE_SLUG": "acme",
    "PAGE_DELAY_SECONDS": "0",
    "OUTPUT_RETENTION_DAYS": "30",
    "SAVE_RESULTS_JSON": "true",
    "DEBUG": "false",
}


@pytest.fixture
def env(tmp_path):
    values = dict(_BASE_ENV, OUTPUT_DIR=str(tmp_path / "output"))
    with patch.dict(os.environ, values, clear=True):
        yield values


def _make_orchestrator(env_overrides=None):
    with patch.dict(os.environ, env_overrides or {}):
        return ExportOrchestrator(env_file="/nonexistent/.env")


def _csv_records(path):
    with open(path, encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def _output_files(output_dir):
    found = []
    for root, _, files in os.walk(output_dir):
        found.extend(files)
    return found


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def test_validate_config_valid(env):
    assert _make_orchestrator().validate_config() is True


def test_validate_config_missing_token(env):
    assert _make_orchestrator({"GITHUB_TOKEN": ""}).validate_config() is False


def test_validate_config_missing_enterprise(env):
    assert _make_orchestrator({"ENTERPRISE_SLUG": ""}).validate_config() is False


def test_defaults_when_unset(env):
    orch = _make_orchestrator()
    assert orch.page_size == 100
    assert orch.request_timeout == 30
    assert orch.max_retries == 3
    assert orch.enrich_workers == 1
    assert orch.graphql_url == "https://api.github.com/graphql"


def test_env_overrides(env):
    orch = _make_orchestrator({"PAGE_SIZE": "50", "ENRICH_WORKERS": "8", "DEBUG": "true"})
    assert orch.page_size == 50
    assert orch.enrich_workers == 8
    assert orch.debug is True


def test_unknown_variant_rejected(env):
    with pytest.raises(ValueError):
        _make_orchestrator().run_export("everything", client=MagicMock())


# ---------------------------------------------------------------------------
# Basic export
# ---------------------------------------------------------------------------

def test_basic_export_250_members(env):
    client = PagedEnterprise(250, orgs=(("acme", "ADMIN"), ("beta", "MEMBER")))
    orch = _make_orchestrator()

    results = orch.run_export("basic", client=client)

    assert results["success"] is True
    assert len(client.page_calls(batch_size=100)) == 3
    assert not any("membersWithRole" in q for q, _ in client.calls)
    records = _csv_records(results["csv_path"])
    assert len(records) == 250
    assert os.path.basename(results["csv_path"]) == "enterprise-users-export-basic.csv"
    assert records[0]["Username"] == "user0000"
    assert records[0]["Organizations"] == "acme; beta"
    assert records[0]["Organization Roles"] == "acme: ADMIN; beta: MEMBER"
    assert records[0]["Organizations Count"] == "2"
    assert results["summary"]["users"] == 250
    assert "export_results.json" in _output_files(env["OUTPUT_DIR"])


def test_basic_export_print_summary(env, capsys):
    orch = _make_orchestrator()
    results = orch.run_export("basic", client=PagedEnterprise(3))
    orch.print_summary(results)
    out = capsys.readouterr().out
    assert "Status: SUCCESS" in out
    assert "Users exported: 3" in out
    assert "Username: user0000" in out


# ---------------------------------------------------------------------------
# Full export
# ---------------------------------------------------------------------------

class PartiallyForbiddenEnterprise(PagedEnterprise):
    """Detail lookups fail for the logins in `denied`."""

    def __init__(self, total, denied):
        super().__init__(total)
        self.denied = set(denied)

    def execute_graphql(self, query, variables=None):
        if "membersWithRole" in query and variables["login"] in self.denied:
            self.calls.append((query, dict(variables)))
            raise ForbiddenError("must be an organization owner")
        if "membersWithRole" in query:
            self.calls.append((query, dict(variables)))
            return {"organization": {
                "membersWithRole": {"edges": [{"hasTwoFactorEnabled": True}]},
                "samlIdentityProvider": {"externalIdentities": {"nodes": [
                    {"samlIdentity": {"nameId": f"{variables['login']}@idp"}}
                ]}},
            }}
        return super().execute_graphql(query, variables)


def test_full_export_enrichment_failure_is_isolated(env):
    client = PartiallyForbiddenEnterprise(3, denied={"user0001"})
    orch = _make_orchestrator()

    results = orch.run_export("full", client=client)

    assert results["success"] is True
    assert results["summary"]["enrichment_failures"] == 1
    assert results["summary"]["enrichment_missing"] == 1
    records = _csv_records(results["csv_path"])
    assert [r["Username"] for r in records] == ["user0000", "user0001", "user0002"]

    assert records[0]["2FA Enabled"] == "true"
    assert records[0]["2FA Method Security"] == "SECURE"
    assert records[0]["SAML NameID"] == "user0000@idp"

    assert records[1]["2FA Enabled"] == "N/A"
    assert records[1]["2FA Method Security"] == "NOT_CONFIGURED"
    assert records[1]["SAML NameID"] == ""

    assert records[2]["SAML NameID"] == "user0002@idp"
    assert all(r["Enterprise Role"] == "MEMBER" for r in records)


def test_members_without_organizations_count_as_missing_not_failed(env, capsys):
    client = PagedEnterprise(4, orgs=())
    orch = _make_orchestrator()

    results = orch.run_export("full", client=client)

    assert results["summary"]["enrichment_missing"] == 4
    assert results["summary"]["enrichment_failures"] == 0
    assert not any("membersWithRole" in q for q, _ in client.calls)
    assert "2FA/SAML details unavailable for 4 user(s)" in capsys.readouterr().out


def test_full_export_with_thread_pool(env):
    client = PartiallyForbiddenEnterprise(120, denied={"user0005", "user0110"})
    orch = _make_orchestrator({"ENRICH_WORKERS": "4"})

    results = orch.run_export("full", client=client)

    records = _csv_records(results["csv_path"])
    assert len(records) == 120
    for i, record in enumerate(records):
        login = f"user{i:04d}"
        assert record["Username"] == login
        expected = "" if login in client.denied else f"{login}@idp"
        assert record["SAML NameID"] == expected


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_forbidden_first_call_writes_nothing(env):
    client = MagicMock()
    client.execute_graphql.side_effect = ForbiddenError("missing read:enterprise scope", 200)
    orch = _make_orchestrator()

    results = orch.run_export("basic", client=client)

    assert results["success"] is False
    assert results["error_kind"] == "forbidden"
    assert "scopes" in results["guidance"]
    assert client.execute_graphql.call_count == 1
    assert _output_files(env["OUTPUT_DIR"]) == []


def test_unknown_enterprise_guidance(env):
    client = MagicMock()
    client.execute_graphql.side_effect = NotFoundError("no enterprise")
    results = _make_orchestrator().run_export("full", client=client)
    assert results["error_kind"] == "not_found"
    assert "ENTERPRISE_SLUG" in results["guidance"]


def test_failure_mid_pagination_discards_partial_results(env):
    client = PagedEnterprise(250)
    original = client.execute_graphql

    def flaky(query, variables=None):
        if variables.get("cursor") == "c200":
            raise RateLimitedError("quota exhausted")
        return original(query, variables)

    client.execute_graphql = flaky
    orch = _make_orchestrator({"MAX_RETRIES": "0"})

    results = orch.run_export("basic", client=client)

    assert results["success"] is False
    assert results["error_kind"] == "rate_limited"
    assert results["processed_users"] == 200
    assert _output_files(env["OUTPUT_DIR"]) == []


def test_write_failure_reports_path(env):
    orch = _make_orchestrator()
    with patch.object(orch.output_manager, "write_csv", side_effect=PermissionError(13, "Permission denied")):
        results = orch.run_export("basic", client=PagedEnterprise(2))
    assert results["success"] is False
    assert results["error_kind"] == "io"
    assert "enterprise-users-export-basic.csv" in results["guidance"]


def test_keyboard_interrupt_writes_nothing(env):
    client = PagedEnterprise(250)
    original = client.execute_graphql

    def interrupted(query, variables=None):
        if variables.get("cursor") == "c100":
            raise KeyboardInterrupt
        return original(query, variables)

    client.execute_graphql = interrupted
    results = _make_orchestrator().run_export("basic", client=client)

    assert results["interrupted"] is True
    assert results["success"] is False
    assert results["processed_users"] == 100
    assert _output_files(env["OUTPUT_DIR"]) == []


# ---------------------------------------------------------------------------
# run.py entry point
# ---------------------------------------------------------------------------

def test_main_missing_config_exits_before_network(env):
    with patch.dict(os.environ, {"GITHUB_TOKEN": ""}), \
         patch("core.orchestrator.GitHubGraphQLClient") as client_cls:
        assert run.main(["basic", "--env", "/nonexistent/.env"]) == 1
    client_cls.assert_not_called()


def test_main_basic_export_succeeds(env):
    with patch("core.orchestrator.GitHubGraphQLClient", return_value=PagedEnterprise(5)):
        assert run.main(["basic", "--env", "/nonexistent/.env"]) == 0
    assert "enterprise-users-export-basic.csv" in _output_files(env["OUTPUT_DIR"])


def test_main_forbidden_exits_nonzero_without_csv(env):
    client = MagicMock()
    client.execute_graphql.side_effect = ForbiddenError("INSUFFICIENT_SCOPES")
    with patch("core.orchestrator.GitHubGraphQLClient", return_value=client):
        assert run.main(["full", "--env", "/nonexistent/.env"]) == 1
    assert _output_files(env["OUTPUT_DIR"]) == []


def test_main_connection_test(env):
    with patch("core.orchestrator.PreflightChecker") as checker_cls, \
         patch("core.orchestrator.GitHubGraphQLClient"), \
         patch("core.orchestrator.print_preflight_summary"):
        checker_cls.return_value.run_all.return_value = MagicMock(
            token=True, enterprise=True, users=True, rate_limit=True, advanced=False,
            ready=True, errors={},
        )
        assert run.main(["test", "--env", "/nonexistent/.env"]) == 0


def test_main_version(capsys):
    assert run.main(["--version"]) == 0
    assert "ghe-users-export" in capsys.readouterr().out


def test_main_requires_command():
    assert run.main([]) == 1


def test_version_comes_from_installed_distribution():
    with patch("run.version", return_value="9.9.9") as dist_version:
        assert run.get_version() == "9.9.9"
    dist_version.assert_called_once_with("ghe-users-export")


def test_version_falls_back_to_version_file():
    with patch("run.version", side_effect=PackageNotFoundError("ghe-users-export")):
        assert run.get_version() == run.VERSION_FILE.read_text().strip()
