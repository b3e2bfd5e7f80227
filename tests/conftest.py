from __future__ import annotations

from typing import Iterator

import pytest

from snappoller.github.client import GitHubClient
from tests._fixtures.fake_github import FakeGitHub

API_URL = "https://api.github.com"


@pytest.fixture
def github() -> Iterator[FakeGitHub]:
    """Provide a fake GitHub API; fails the test if canned replies go unused."""
    fake = FakeGitHub()
    yield fake
    fake.done()


@pytest.fixture
def client(github: FakeGitHub) -> GitHubClient:
    return GitHubClient(API_URL, token="secret-token", transport=github)
