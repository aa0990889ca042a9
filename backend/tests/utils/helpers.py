import json
from unittest.mock import AsyncMock

from ptcoach.core.security import create_access_token
from ptcoach.db.models import User

TEST_PASSWORD = "Sifre12345"
TEST_MERCHANT_KEY = "merchant-key-123"
TEST_MERCHANT_SALT = "merchant-salt-456"


def get_auth_headers_for(user: User) -> dict[str, str]:
    access_token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {access_token}"}


def mock_paytr_response(mocker, body: dict | str, status: int = 200):
    """Подменяет aiohttp.ClientSession.post ответом PayTR."""
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.text.return_value = body if isinstance(body, str) else json.dumps(body)

    mock_post_context = AsyncMock()
    mock_post_context.__aenter__.return_value = mock_response

    return mocker.patch("aiohttp.ClientSession.post", return_value=mock_post_context)
