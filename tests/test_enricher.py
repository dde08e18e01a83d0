"""Tests for core.enricher.MemberEnricher."""

import threading
import time
from concurrent.futures import as_completed
from unittest.mock import MagicMock, patch

import pytest

from core.enricher import MemberEnricher, Enrichment, member_login, first_organization_login
from core.errors import ForbiddenError, TransientError
from fakes import make_member


def _detail(two_factor=None, name_id=None, saml=True):
    return {
        "organization": {
            "login": "acme",
            "membersWithRole": {"edges": [{"hasTwoFactorEnabled": two_factor, "node": {"login": "x"}}]},
            "samlIdentityProvider": {
                "externalIdentities": {"nodes": [{"samlIdentity": {"nameId": name_id}}]}
            } if saml else None,
        }
    }


class FakeDetailClient:
    """Answers detail lookups from a {login: response-or-exception} table."""

    def __init__(self, answers, delay=0.0):
        self.answers = answers
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def execute_graphql(self, query, variables=None):
        with self._lock:
            self.calls.append(variables)
        if self.delay:
            time.sleep(self.delay)
        answer = self.answers[variables["login"]]
        if isinstance(answer, Exception):
            raise answer
        return answer


def test_enrichment_absent_defaults():
    absent = Enrichment.absent()
    assert absent.two_factor_enabled is None
    assert absent.saml_name_id is None
    assert absent.verified_domain_emails == []
    assert absent.is_absent


def test_member_login_prefers_profile_login():
    assert member_login(make_member("mona")) == "mona"
    assert member_login(make_member("mona", user=False)) == "mona_ent"
    assert member_login({}) == ""


def test_first_organization_login():
    assert first_organization_login(make_member("m", [("acme", "ADMIN"), ("beta", "MEMBER")])) == "acme"
    assert first_organization_login(make_member("m")) is None
    assert first_organization_login({"organizations": None}) is None


def test_first_organization_skips_null_edges():
    member = make_member("m", [("acme", "ADMIN")])
    member["organizations"]["edges"].insert(0, None)
    assert first_organization_login(member) == "acme"


def test_enrich_queries_first_organization_only():
    client = MagicMock()
    client.execute_graphql.return_value = _detail(True, "mona@idp.example.com")
    enricher = MemberEnricher(client)

    result = enricher.enrich(make_member("mona", [("acme", "ADMIN"), ("beta", "MEMBER")]))

    assert result == Enrichment(two_factor_enabled=True, saml_name_id="mona@idp.example.com")
    client.execute_graphql.assert_called_once()
    assert client.execute_graphql.call_args[0][1] == {"login": "mona", "orgLogin": "acme"}


def test_enrich_without_organizations_makes_no_call():
    client = MagicMock()
    enricher = MemberEnricher(client)
    assert enricher.enrich(make_member("solo")).is_absent
    client.execute_graphql.assert_not_called()


def test_enrich_without_saml_provider():
    client = MagicMock()
    client.execute_graphql.return_value = _detail(False, saml=False)
    result = MemberEnricher(client).enrich(make_member("m", [("acme", "MEMBER")]))
    assert result.two_factor_enabled is False
    assert result.saml_name_id is None


def test_enrich_with_empty_member_edges():
    client = MagicMock()
    client.execute_graphql.return_value = {"organization": {"membersWithRole": {"edges": []},
                                                            "samlIdentityProvider": None}}
    result = MemberEnricher(client).enrich(make_member("m", [("acme", "MEMBER")]))
    assert result.is_absent


@pytest.mark.parametrize("error", [ForbiddenError("not an owner"), TransientError("timeout")])
def test_enrich_swallows_transport_errors(error):
    client = MagicMock()
    client.execute_graphql.side_effect = error
    enricher = MemberEnricher(client, debug=True)

    result = enricher.enrich(make_member("m", [("acme", "MEMBER")]))

    assert result.is_absent
    assert enricher.failures == 1


def test_failure_between_successes_only_affects_that_member():
    members = [
        make_member("alice", [("acme", "MEMBER")]),
        make_member("bob", [("acme", "MEMBER")]),
        make_member("carol", [("acme", "MEMBER")]),
    ]
    client = FakeDetailClient({
        "alice": _detail(True, "alice@idp"),
        "bob": ForbiddenError("denied"),
        "carol": _detail(False, "carol@idp"),
    })

    results = MemberEnricher(client).enrich_all(members)

    assert results == [
        Enrichment(True, "alice@idp"),
        Enrichment.absent(),
        Enrichment(False, "carol@idp"),
    ]


def test_thread_pool_keeps_results_in_input_order():
    logins = [f"user{i:02d}" for i in range(20)]
    members = [make_member(login, [("acme", "MEMBER")]) for login in logins]
    answers = {login: _detail(i % 2 == 0, f"{login}@idp") for i, login in enumerate(logins)}
    answers["user07"] = TransientError("reset by peer")
    client = FakeDetailClient(answers, delay=0.01)
    enricher = MemberEnricher(client, workers=4)

    results = enricher.enrich_all(members)

    assert len(results) == 20
    assert len(client.calls) == 20
    for i, (login, result) in enumerate(zip(logins, results)):
        if login == "user07":
            assert result.is_absent
        else:
            assert result.saml_name_id == f"{login}@idp"
            assert result.two_factor_enabled is (i % 2 == 0)
    assert enricher.failures == 1


def test_interrupt_cancels_queued_lookups():
    members = [make_member(f"user{i:03d}", [("acme", "MEMBER")]) for i in range(100)]
    client = FakeDetailClient({f"user{i:03d}": _detail(True) for i in range(100)}, delay=0.05)
    enricher = MemberEnricher(client, workers=4)

    def interrupted_after_first(futures):
        completed = as_completed(futures)
        yield next(completed)
        raise KeyboardInterrupt

    with patch("core.enricher.as_completed", interrupted_after_first):
        with pytest.raises(KeyboardInterrupt):
            enricher.enrich_all(members)

    time.sleep(0.2)
    assert len(client.calls) < 20
