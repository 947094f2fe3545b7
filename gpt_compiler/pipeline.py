"""
Pipeline Orchestrator - one document in, one artifact (or one failure) out

    read -> parse -> resolve -> compile -> write

Every step funnels into a PipelineOutcome. Nothing raised by a step escapes
process_document(); callers always get an outcome back.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any, Union

import aiofiles
import aiofiles.os

from gpt_compiler.client import CompilationClient
from gpt_compiler.config import CompilerConfig
from gpt_compiler.exceptions import GptCompilerError, DocumentReadError, ArtifactWriteError
from gpt_compiler.logging_config import get_logger, set_document
from gpt_compiler.parser import DocumentParser
from gpt_compiler.resolver import OutputResolver

logger = get_logger(__name__)


@dataclass(frozen=True)
class OutputArtifact:
    """Generated code bound to its destination"""
    path: Path
    content: str


@dataclass(frozen=True)
class PipelineOutcome:
    """Terminal result for one document. Build with succeeded()/failed()."""
    success: bool
    output_path: Optional[str] = None
    language: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    def __post_init__(self):
        if self.success:
            if self.output_path is None or self.language is None:
                raise ValueError("A successful outcome needs output_path and language")
            if self.error is not None or self.error_code is not None:
                raise ValueError("A successful outcome cannot carry an error")
        else:
            if self.error is None:
                raise ValueError("A failed outcome needs an error message")
            if self.output_path is not None or self.language is not None:
                raise ValueError("A failed outcome cannot carry an output path or language")

    @classmethod
    def succeeded(cls, output_path: Union[str, Path], language: str) -> "PipelineOutcome":
        return cls(success=True, output_path=str(output_path), language=language)

    @classmethod
    def failed(cls, error: str, error_code: str = "INTERNAL_ERROR") -> "PipelineOutcome":
        return cls(success=False, error=error, error_code=error_code)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {
                "success": True,
                "outputPath": self.output_path,
                "language": self.language,
            }
        return {"success": False, "error": self.error}


class PipelineOrchestrator:
    """
    Composes parser, resolver and client for a single document.

    Usage:
        orchestrator = PipelineOrchestrator(config, CompilationClient(config))
        outcome = await orchestrator.process_document("hello.gpt")
        if outcome.success:
            print(outcome.output_path)
    """

    def __init__(
        self,
        config: CompilerConfig,
        client: CompilationClient,
        parser: Optional[DocumentParser] = None,
        resolver: Optional[OutputResolver] = None
    ):
        self.config = config
        self.client = client
        self.parser = parser or DocumentParser()
        self.resolver = resolver or OutputResolver()

    async def process_document(self, path: Union[str, Path]) -> PipelineOutcome:
        """Run the full pipeline for one document"""
        document_path = Path(path)
        set_document(str(document_path))
        logger.info(f"Processing file: {document_path}")
        start = time.monotonic()

        try:
            outcome = await self._run(document_path)
        except GptCompilerError as e:
            logger.error(f"Error processing {document_path}: {e.message}")
            return PipelineOutcome.failed(e.message, e.code)
        except Exception as e:
            logger.exception(f"Unexpected error processing {document_path}")
            return PipelineOutcome.failed(f"{type(e).__name__}: {e}")

        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            f"Code generated successfully: {outcome.output_path} ({duration_ms:.0f}ms)",
            extra={"language": outcome.language, "duration_ms": duration_ms}
        )
        return outcome

    async def _run(self, document_path: Path) -> PipelineOutcome:
        raw_text = await self._read_document(document_path)
        document = self.parser.parse(raw_text)
        resolved = self.resolver.resolve(document, document_path, self.config.default_language)
        logger.debug(
            f"Resolved language={resolved.language} output={resolved.output_path}"
        )

        code = await self.client.compile(document.instructions, resolved.language)

        await self._write_artifact(OutputArtifact(path=resolved.output_path, content=code))
        return PipelineOutcome.succeeded(resolved.output_path, resolved.language)

    async def _read_document(self, path: Path) -> str:
        try:
            async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentReadError(str(path), str(e)) from e

    async def _write_artifact(self, artifact: OutputArtifact) -> None:
        try:
            await aiofiles.os.makedirs(artifact.path.parent, exist_ok=True)
            async with aiofiles.open(artifact.path, mode="w", encoding="utf-8") as f:
                await f.write(artifact.content)
        except OSError as e:
            raise ArtifactWriteError(str(artifact.path), str(e)) from e
