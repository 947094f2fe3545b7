"""
Document templates for `gpt-compiler new`
"""

from pathlib import Path
from typing import Union

from gpt_compiler.exceptions import DocumentExistsError
from gpt_compiler.resolver import extension_for

DOCUMENT_TEMPLATE = """@language: {language}
@output: {stem}.{extension}

Create a simple program that does the following:
1.
2.
3.

"""


def render_template(stem: str, language: str) -> str:
    return DOCUMENT_TEMPLATE.format(
        language=language,
        stem=stem,
        extension=extension_for(language),
    )


def create_document(
    path: Union[str, Path],
    language: str = "python",
    document_extension: str = ".gpt"
) -> Path:
    """Write a new template document; the extension is appended when missing"""
    target = Path(path)
    if not target.name.endswith(document_extension):
        target = target.with_name(target.name + document_extension)
    target = target.resolve()

    if target.exists():
        raise DocumentExistsError(str(target))

    stem = target.name[: -len(document_extension)]
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_template(stem, language), encoding="utf-8")
    return target
