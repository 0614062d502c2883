"""Tests for GET /api/v1/models."""

import pytest
from httpx import AsyncClient

from open_gamma.providers.llm.registry import AVAILABLE_MODELS, DEFAULT_MODEL

_MODELS_URL = "/api/v1/models"


class TestListModels:
    @pytest.mark.asyncio
    async def test_requires_session(self, client: AsyncClient):
        response = await client.get(_MODELS_URL)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_lists_catalogue_in_order(self, auth_client: AsyncClient):
        response = await auth_client.get(_MODELS_URL)

        assert response.status_code == 200
        ids = [m["id"] for m in response.json()["data"]]
        assert ids == [m.id for m in AVAILABLE_MODELS]

    @pytest.mark.asyncio
    async def test_availability_follows_configured_providers(
        self, auth_client: AsyncClient
    ):
        """The test app configures only the openai provider."""
        data = (await auth_client.get(_MODELS_URL)).json()["data"]

        for model in data:
            assert model["available"] is (model["provider"] == "openai")

    @pytest.mark.asyncio
    async def test_marks_single_default(self, auth_client: AsyncClient):
        data = (await auth_client.get(_MODELS_URL)).json()["data"]

        defaults = [m["id"] for m in data if m["is_default"]]
        assert defaults == [DEFAULT_MODEL]
