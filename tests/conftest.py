"""Shared fixtures: member pages loaded from tests/fixtures/."""

import json
import os

import pytest

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def load_fixture(filename):
    with open(os.path.join(FIXTURES_DIR, filename), encoding="utf-8") as fh:
        return json.load(fh)


@pytest.fixture
def members_page():
    return load_fixture("members_page.json")["data"]


@pytest.fixture
def members(members_page):
    return members_page["enterprise"]["members"]["nodes"]
