"""Translator backed by INI language files.

Language files live in the configured languages directory as {lang}.ini with
one `"key" = "value"` pair per line (quotes optional). Values may carry
%%token%% placeholders that are replaced from the params passed to
translate().
"""

import configparser
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class Translator:
    """Translate message keys into the active language.

    Attributes:
        languages_dir: Directory holding {lang}.ini files
        language: Active language code
    """

    def __init__(self, languages_dir: Path, language: str = "en"):
        self.languages_dir = Path(languages_dir)
        self.language = language
        self._strings: Dict[str, Dict[str, str]] = {}

    def _load(self, language: str) -> Dict[str, str]:
        if language in self._strings:
            return self._strings[language]

        path = self.languages_dir / f"{language}.ini"
        strings: Dict[str, str] = {}
        if path.exists():
            parser = configparser.ConfigParser(
                delimiters=("=",),
                comment_prefixes=(";", "#"),
                interpolation=None,
                strict=False,
            )
            parser.optionxform = str
            parser.read_string("[strings]\n" + path.read_text(encoding="utf-8"))
            for key, value in parser.items("strings"):
                strings[key.strip().strip('"')] = value.strip().strip('"')
            logger.debug(f"Loaded {len(strings)} strings for language {language}")
        else:
            logger.warning(f"Language file not found: {path}")

        self._strings[language] = strings
        return strings

    def translate(
        self,
        key: Any,
        params: Optional[Mapping[str, Any]] = None,
        default: Optional[str] = None,
    ) -> str:
        """Translate a message key.

        Args:
            key: Message key; non-string keys are converted with str()
            params: Values for %%token%% placeholders
            default: Text used when the key is unknown (the key itself otherwise)

        Returns:
            Translated string
        """
        key = "" if key is None else str(key)
        strings = self._load(self.language)
        text = strings.get(key)
        if text is None:
            text = default if default is not None else key

        for token, value in (params or {}).items():
            name = token.strip("%")
            text = text.replace(f"%%{name}%%", str(value))
        return text

    def translate_with_prefix(self, prefix: str, key: Any) -> str:
        """Translate prefix+key, falling back to the bare key."""
        key = "" if key is None else str(key)
        return self.translate(
            prefix + key, default=self.translate(key) if key else key
        )

    def with_language(self, language: str) -> "Translator":
        """Translator sharing this one's cache for another language."""
        other = Translator(self.languages_dir, language)
        other._strings = self._strings
        return other
