from __future__ import annotations

import pytest

from pyhomemind.share import build_share_url, new_share_token, share_token_from_url


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://home.example/?share=abc123", "abc123"),
        ("https://home.example/app?lang=en&share=tok", "tok"),
        ("https://home.example/?share=", None),
        ("https://home.example/?share=%20%20", None),
        ("https://home.example/", None),
    ],
)
def test_share_token_from_url(url: str, expected: str | None) -> None:
    assert share_token_from_url(url) == expected


def test_build_share_url_replaces_existing_token() -> None:
    url = build_share_url("https://home.example/app?lang=en&share=old", "new")

    assert url == "https://home.example/app?lang=en&share=new"
    assert share_token_from_url(url) == "new"


def test_new_share_tokens_are_url_safe_and_unique() -> None:
    tokens = {new_share_token() for _ in range(20)}

    assert len(tokens) == 20
    assert all("/" not in token and "=" not in token for token in tokens)
