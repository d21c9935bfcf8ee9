import pytest

from dharma_cli.infrastructure.auth.token_store import AuthTokenStore


@pytest.mark.asyncio
async def test_missing_token(tmp_path):
    store = AuthTokenStore(tmp_path / "auth.json")

    assert await store.get_token() is None
    status = await store.get_status()
    assert status.has_token is False


@pytest.mark.asyncio
async def test_set_token_masks_status(tmp_path):
    store = AuthTokenStore(tmp_path / "nested" / "auth.json")

    status = await store.set_token("  abcdef123456  ")

    assert await store.get_token() == "abcdef123456"
    assert status.masked_token == "abcd...3456"
    assert status.last_updated is not None
    assert (store.path.stat().st_mode & 0o777) == 0o600


@pytest.mark.asyncio
async def test_empty_token_rejected(tmp_path):
    with pytest.raises(ValueError):
        await AuthTokenStore(tmp_path / "auth.json").set_token("   ")
