"""
Output Resolver - picks the target language and artifact path for a document
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

from gpt_compiler.parser import SourceDocument


FALLBACK_EXTENSION = "txt"

LANGUAGE_EXTENSIONS: Dict[str, str] = {
    "javascript": "js",
    "typescript": "ts",
    "python": "py",
    "java": "java",
    "c#": "cs",
    "csharp": "cs",
    "c++": "cpp",
    "cpp": "cpp",
    "c": "c",
    "go": "go",
    "rust": "rs",
    "ruby": "rb",
    "php": "php",
    "swift": "swift",
    "kotlin": "kt",
    "html": "html",
    "css": "css",
}


def extension_for(language: str) -> str:
    """Map a language name to a file extension (case-insensitive, total)"""
    return LANGUAGE_EXTENSIONS.get(language.strip().lower(), FALLBACK_EXTENSION)


@dataclass(frozen=True)
class ResolvedOutput:
    """Where and in which language a document compiles to"""
    language: str
    output_path: Path


class OutputResolver:
    """Derives language and output path from document metadata. Never raises."""

    def resolve(
        self,
        document: SourceDocument,
        document_path: Union[str, Path],
        default_language: str
    ) -> ResolvedOutput:
        doc_path = Path(document_path).resolve()
        language = (document.language or default_language).strip().lower()

        if document.output:
            # Relative to the document's directory; absolute values win on join
            output_path = (doc_path.parent / document.output).resolve()
        else:
            output_path = doc_path.with_suffix(f".{extension_for(language)}")

        return ResolvedOutput(language=language, output_path=output_path)
