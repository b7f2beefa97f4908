"""Rendering of command results for humans and for scripts."""

import json
from collections.abc import Mapping, Sequence
from typing import Protocol


class Output(Protocol):
    """Renders tag lists."""

    def file_tags(self, tags: Sequence[str]) -> str:
        """Render the tags of one file."""
        ...

    def files_tags(self, tag_map: Mapping[str, Sequence[str]]) -> str:
        """Render the tags of several files, keyed by file name."""
        ...


class JsonOutput:
    """A JSON array for one file, a JSON object of arrays for several."""

    def file_tags(self, tags: Sequence[str]) -> str:
        return json.dumps(list(tags))

    def files_tags(self, tag_map: Mapping[str, Sequence[str]]) -> str:
        return json.dumps({file: list(tags) for file, tags in tag_map.items()})


class HumanOutput:
    """One tag per line, with a `file:` header line per file when there are several."""

    def file_tags(self, tags: Sequence[str]) -> str:
        return "\n".join(tags)

    def files_tags(self, tag_map: Mapping[str, Sequence[str]]) -> str:
        lines: list[str] = []
        for file, tags in tag_map.items():
            lines.append(f"{file}:")
            lines.extend(tags)
        return "\n".join(lines)


def get_output(json_output: bool) -> Output:
    """Return the renderer selected by the `--json` flag."""
    return JsonOutput() if json_output else HumanOutput()
