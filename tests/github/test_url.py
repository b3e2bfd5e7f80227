"""Tests for repository URL helpers."""

from __future__ import annotations

import pytest

from snappoller.errors import InvalidRepositoryUrl
from snappoller.github.url import is_hosted, parse_repo_url, repo_url


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/anowner/aname",
        "https://github.com/anowner/aname.git",
        "https://github.com/anowner/aname/",
    ],
)
def test_parse_repo_url_accepts_common_forms(url: str) -> None:
    assert parse_repo_url(url) == ("anowner", "aname")


@pytest.mark.parametrize(
    "url",
    [
        "",
        "https://gitlab.com/anowner/aname",
        "git://github.com/anowner/aname",
        "https://github.com/anowner",
        "https://github.com/anowner/aname/tree/master",
        "https://github.com//aname",
    ],
)
def test_parse_repo_url_rejects_foreign_or_malformed_urls(url: str) -> None:
    with pytest.raises(InvalidRepositoryUrl):
        parse_repo_url(url)


def test_custom_prefix_is_honoured() -> None:
    prefix = "https://git.example.com"

    assert repo_url("team", "tool", prefix) == "https://git.example.com/team/tool"
    assert parse_repo_url("https://git.example.com/team/tool.git", prefix) == ("team", "tool")
    assert is_hosted("https://git.example.com/team/tool", prefix)
    assert not is_hosted("https://github.com/team/tool", prefix)


def test_is_hosted_requires_exact_prefix() -> None:
    assert is_hosted("https://github.com/some/part")
    assert not is_hosted("https://github.company.com/some/part")
    assert not is_hosted(None)
