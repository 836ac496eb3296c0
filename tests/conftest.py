import asyncio

import pytest

from services.spotify_auth import TokenResponse


def run(coro):
    """Run an async scenario from a sync test function."""
    return asyncio.run(coro)


class FakeOAuth:
    """Stands in for SpotifyOAuthClient; replays queued token responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def refresh_token(self, refresh_token):
        self.calls.append(refresh_token)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def token(access_token="abc", expires_in=3600, refresh_token="refresh"):
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
        scope="",
    )


@pytest.fixture
def fake_oauth():
    return FakeOAuth(token())
