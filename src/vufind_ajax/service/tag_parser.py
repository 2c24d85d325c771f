"""Split user tag input into individual tags."""

import re
from typing import List

_TOKEN = re.compile(r'"([^"]*)"|(\S+)')


class TagParser:
    """Parse space-separated tags; double-quoted phrases stay together.

    Tags are truncated to max_length and duplicates dropped, keeping input order.
    """

    def __init__(self, max_length: int = 64):
        self.max_length = max_length

    def parse(self, text: str) -> List[str]:
        tags: List[str] = []
        for quoted, bare in _TOKEN.findall(text or ""):
            tag = (quoted or bare).strip()[: self.max_length]
            if tag and tag not in tags:
                tags.append(tag)
        return tags
