"""
Compilation Client - talks to the chat-completions generation service

Sends one request per document and normalizes the response. Different
providers behind the same endpoint answer in different shapes; the known
ones are tried in order:

    1. {"choices": [{"message": {"content": "..."}}]}   (OpenAI style)
    2. {"output": {"content": "..."}}
    3. {"content": "..."}

No retries: one failed attempt is a failed compilation.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List, Dict, Any

import httpx

from gpt_compiler.config import CompilerConfig
from gpt_compiler.exceptions import ServiceError, ResponseShapeError, EmptyArtifactError
from gpt_compiler.logging_config import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are an expert programmer specializing in {language}.
Your task is to convert English instructions into well-structured, efficient,
and commented {language} code.
Only respond with the code - no explanations, no markdown formatting."""

# Characters of an error body kept for diagnostics
MAX_BODY_EXCERPT = 2000


class ResponseShape(str, Enum):
    """Known response payload shapes, in match priority order"""
    CHOICES = "choices"
    OUTPUT_CONTENT = "output.content"
    CONTENT = "content"


@dataclass(frozen=True)
class ExtractedResponse:
    """Raw text pulled out of a matched payload"""
    shape: ResponseShape
    text: str


@dataclass(frozen=True)
class CompilationRequest:
    """One instruction body bound to a target language"""
    instructions: str
    target_language: str
    model: str

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT.format(language=self.target_language)

    def to_messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.instructions},
        ]

    def to_payload(self) -> Dict[str, Any]:
        return {"model": self.model, "messages": self.to_messages()}


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def match_response_shape(payload: Any) -> ExtractedResponse:
    """Return the text of the first matching shape or raise ResponseShapeError"""
    if not isinstance(payload, dict):
        raise ResponseShapeError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return ExtractedResponse(
            ResponseShape.CHOICES, content if isinstance(content, str) else ""
        )

    # An empty output.content or content does not match; fall through
    output = payload.get("output")
    if isinstance(output, dict) and _is_text(output.get("content")):
        return ExtractedResponse(ResponseShape.OUTPUT_CONTENT, output["content"])

    if _is_text(payload.get("content")):
        return ExtractedResponse(ResponseShape.CONTENT, payload["content"])

    raise ResponseShapeError(keys=sorted(payload.keys()))


def extract_code(payload: Any, language: Optional[str] = None) -> str:
    """Normalize a response payload into trimmed, non-empty code"""
    extracted = match_response_shape(payload)
    logger.debug(f"Found {extracted.shape.value} response format")

    code = extracted.text.strip()
    if not code:
        raise EmptyArtifactError(language)
    return code


class CompilationClient:
    """
    Compiles instructions to code through the generation service.

    Usage:
        client = CompilationClient(config)
        code = await client.compile("Print hello world", "python")

    Pass `http_client` to share a connection pool (or a mock transport in
    tests); otherwise a client is opened per request.
    """

    def __init__(self, config: CompilerConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._http_client = http_client

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "HTTP-Referer": self.config.referer,
            "X-Title": self.config.app_title,
        }
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def build_request(self, instructions: str, language: str) -> CompilationRequest:
        return CompilationRequest(
            instructions=instructions,
            target_language=language,
            model=self.config.model,
        )

    async def compile(self, instructions: str, language: str) -> str:
        """Send one compilation request and return the generated code"""
        request = self.build_request(instructions, language)
        logger.info(f"Compiling to {language} using model {request.model}")

        if self._http_client is not None:
            response = await self._post(self._http_client, request)
        else:
            async with httpx.AsyncClient(timeout=self.config.request_timeout) as client:
                response = await self._post(client, request)

        if not response.is_success:
            body = response.text[:MAX_BODY_EXCERPT]
            raise ServiceError(
                f"Generation service error ({response.status_code}): {body}",
                status_code=response.status_code,
                body=body,
            )

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResponseShapeError("Generation service returned invalid JSON") from e

        code = extract_code(payload, language)
        logger.info(f"Generated code length: {len(code)} characters")
        return code

    async def _post(self, client: httpx.AsyncClient, request: CompilationRequest) -> httpx.Response:
        try:
            return await client.post(
                self.config.api_url,
                headers=self._get_headers(),
                json=request.to_payload(),
            )
        except httpx.RequestError as e:
            raise ServiceError(
                f"Generation service unreachable: {type(e).__name__}: {e}",
                body=str(e),
            ) from e
