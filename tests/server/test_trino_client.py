"""Tests for the Trino REST statement client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from trino_oauth.query.errors import (
    QueryAuthenticationError,
    QueryAuthorizationError,
    QueryError,
)
from trino_oauth.server.trino import TrinoClient


def trino_response(status_code: int, json_data=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if json_data is None:
        response.json.side_effect = ValueError("Not valid JSON")
    else:
        response.json.return_value = json_data
    response.text = text
    return response


class TestTrinoClient:
    def setup_method(self):
        self.client = TrinoClient("http://trino:8080/", catalog="tpch", schema="tiny")
        self.client._http_client = AsyncMock()

    async def test_follows_next_uri_until_done(self):
        # Arrange
        self.client._http_client.request.side_effect = [
            trino_response(200, {"id": "q1", "nextUri": "http://trino:8080/v1/q1/1"}),
            trino_response(
                200, {"data": [[1], [2]], "nextUri": "http://trino:8080/v1/q1/2"}
            ),
            trino_response(200, {"data": [[3]]}),
        ]

        # Act
        rows = await self.client.execute("SELECT 1", "access-token", "a@b.com")

        # Assert
        assert rows == [[1], [2], [3]]
        calls = self.client._http_client.request.call_args_list
        assert [call[0] for call in calls] == [
            ("POST", "http://trino:8080/v1/statement"),
            ("GET", "http://trino:8080/v1/q1/1"),
            ("GET", "http://trino:8080/v1/q1/2"),
        ]
        assert calls[0][1]["content"] == "SELECT 1"
        assert calls[0][1]["headers"] == {
            "Authorization": "Bearer access-token",
            "X-Trino-User": "a@b.com",
            "X-Trino-Catalog": "tpch",
            "X-Trino-Schema": "tiny",
            "X-Trino-Source": "trino-oauth-demo",
        }

    @pytest.mark.parametrize(
        "status_code, error_cls",
        [
            (401, QueryAuthenticationError),
            (403, QueryAuthorizationError),
            (503, QueryError),
        ],
    )
    async def test_http_errors_are_classified(self, status_code, error_cls):
        self.client._http_client.request.return_value = trino_response(
            status_code, text="denied"
        )

        with pytest.raises(error_cls) as exc_info:
            await self.client.execute("SELECT 1", "token", "user")

        assert exc_info.value.status_code == status_code
        assert exc_info.value.details == "denied"

    async def test_failed_query_payload_raises(self):
        # Arrange
        self.client._http_client.request.side_effect = [
            trino_response(200, {"nextUri": "http://trino:8080/v1/q1/1"}),
            trino_response(
                200,
                {
                    "error": {
                        "message": "line 1:1: mismatched input 'SELEC'",
                        "errorName": "SYNTAX_ERROR",
                    }
                },
            ),
        ]

        # Act & Assert
        with pytest.raises(QueryError) as exc_info:
            await self.client.execute("SELEC 1", "token", "user")

        assert "mismatched input" in str(exc_info.value)
        assert exc_info.value.details == "SYNTAX_ERROR"

    @pytest.mark.parametrize("payload", [None, [1, 2], "ok"])
    async def test_non_object_payload_raises_query_error(self, payload):
        response = trino_response(200, text="unexpected")
        response.json.side_effect = None
        response.json.return_value = payload
        self.client._http_client.request.return_value = response

        with pytest.raises(QueryError) as exc_info:
            await self.client.execute("SELECT 1", "token", "user")

        assert "expected a JSON object" in str(exc_info.value)
        assert exc_info.value.details == "unexpected"

    async def test_string_error_payload_raises_query_error(self):
        self.client._http_client.request.return_value = trino_response(
            200, {"error": "catalog tpch does not exist"}
        )

        with pytest.raises(QueryError) as exc_info:
            await self.client.execute("SELECT 1", "token", "user")

        assert str(exc_info.value) == "catalog tpch does not exist"

    async def test_transport_error_raises_query_error(self):
        self.client._http_client.request.side_effect = httpx.ConnectError("refused")

        with pytest.raises(QueryError):
            await self.client.execute("SELECT 1", "token", "user")
