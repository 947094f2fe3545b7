"""
Document Parser - splits a .gpt document into metadata and instructions

Format:
    @language: python
    @output: hello.py

    Print hello world

The metadata block is optional. It must start on the first line and ends
with a blank line; everything after the blank line is the instruction body.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


METADATA_PATTERN = re.compile(r"^@([a-zA-Z0-9_]+):\s*(.*)$")


@dataclass(frozen=True)
class SourceDocument:
    """Parsed .gpt document"""
    raw_text: str
    metadata: Mapping[str, str] = field(default_factory=dict)
    instructions: str = ""

    @property
    def language(self) -> Optional[str]:
        return self.metadata.get("language") or None

    @property
    def output(self) -> Optional[str]:
        return self.metadata.get("output") or None


class DocumentParser:
    """Parses raw document text. Never raises."""

    def parse(self, raw_text: str) -> SourceDocument:
        lines = raw_text.split("\n")
        metadata = {}
        instructions_start = 0

        for index, raw_line in enumerate(lines):
            line = raw_line.strip()
            if line.startswith("@"):
                match = METADATA_PATTERN.match(line)
                if match:
                    # Later duplicates win
                    metadata[match.group(1)] = match.group(2).strip()
            elif line == "" and metadata:
                instructions_start = index + 1
                break
            else:
                break

        instructions = "\n".join(lines[instructions_start:])
        return SourceDocument(
            raw_text=raw_text,
            metadata=MappingProxyType(metadata),
            instructions=instructions,
        )


def parse_document(raw_text: str) -> SourceDocument:
    """Shortcut for DocumentParser().parse()"""
    return DocumentParser().parse(raw_text)
