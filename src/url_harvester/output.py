"""Plain-text and JSON-lines result writers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TextIO

from .models import Result

TXT_EXTENSION = ".txt"
JSONL_EXTENSION = ".json"


class ResultWriter:
    """Serialize URL results as one line each, plain or JSON."""

    def __init__(self, *, json_output: bool = False) -> None:
        self.json_output = json_output

    @property
    def extension(self) -> str:
        return JSONL_EXTENSION if self.json_output else TXT_EXTENSION

    def create_file(self, path: str) -> TextIO:
        """Open ``path`` for appending, adding the format's extension and parent directories."""
        output_path = Path(path)
        if output_path.suffix != self.extension:
            output_path = output_path.with_name(output_path.name + self.extension)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path.open("a", encoding="utf-8")

    def format(self, domain: str, result: Result) -> str:
        if self.json_output:
            return json.dumps({"domain": domain, "url": result.value, "source": result.source})
        return result.value

    def write(self, stream: TextIO, domain: str, result: Result) -> None:
        stream.write(self.format(domain, result) + "\n")
        stream.flush()
