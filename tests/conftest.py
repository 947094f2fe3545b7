"""
GPT Compiler - Test Configuration and Fixtures
"""
import json
from typing import Callable

import httpx
import pytest

from gpt_compiler.config import CompilerConfig

CONFIG_ENV_VARS = [
    "OPENROUTER_API_KEY",
    "AI_MODEL",
    "DEFAULT_OUTPUT_LANG",
    "GPT_COMPILER_API_URL",
    "GPT_COMPILER_TIMEOUT",
    "GPT_COMPILER_MAX_CONCURRENT",
    "GPT_COMPILER_LOG_LEVEL",
    "GPT_COMPILER_LOG_FILE",
    "GPT_COMPILER_JSON_LOGS",
    "GPT_COMPILER_VERBOSE",
]

TEST_API_URL = "https://generation.test/api/v1/chat/completions"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's real environment out of tests"""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> CompilerConfig:
    """Config with a fake key and no initial scan"""
    return CompilerConfig(
        api_key="test-api-key",
        api_url=TEST_API_URL,
        model="test/model",
        default_language="javascript",
        initial_scan=False,
    )


@pytest.fixture
def chat_payload() -> Callable[[str], dict]:
    """Build an OpenAI-style response body"""
    def build(content: str) -> dict:
        return {
            "id": "gen-1",
            "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        }
    return build


@pytest.fixture
def mock_service() -> Callable[..., httpx.AsyncClient]:
    """Factory for an httpx.AsyncClient answered by a handler function"""
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return factory


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def read_request() -> Callable[[httpx.Request], dict]:
    """Decode the JSON body of a captured request"""
    return request_json
