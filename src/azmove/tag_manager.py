"""Tag sanitization module.

Tags captured from the original VM are reapplied to the recreated VM with
`az vm create --tags key=value ...`. Characters Azure rejects in that form
are stripped first.

Sanitization is idempotent: sanitizing an already sanitized tag set returns
it unchanged.
"""

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)


class TagManager:
    """Clean VM tags for reuse on a recreated VM."""

    # Characters rejected in tag names and values passed on the command line
    INVALID_CHARS_PATTERN = re.compile(r"[<>%&\\?/{},]")

    # JSON key/value separator, normalized to key=value form
    JSON_SEPARATOR = '": "'
    TAG_SEPARATOR = '"="'

    @classmethod
    def clean_tag_text(cls, text: str) -> str:
        """Strip invalid characters and normalize JSON separators.

        Args:
            text: Tag key, tag value, or a JSON rendering of a tag set

        Returns:
            Cleaned text

        Example:
            >>> TagManager.clean_tag_text('{"env": "prod"}')
            '"env"="prod"'
        """
        cleaned = cls.INVALID_CHARS_PATTERN.sub("", text)
        # Replacing can expose a new separator ('": ": "'), so repeat until stable
        while cls.JSON_SEPARATOR in cleaned:
            cleaned = cleaned.replace(cls.JSON_SEPARATOR, cls.TAG_SEPARATOR)
        return cleaned

    @classmethod
    def sanitize_tags(cls, tags: dict[str, Any] | None) -> dict[str, str]:
        """Clean every key and value of a tag set.

        Keys that are empty after cleaning are dropped. None values become
        empty strings.

        Args:
            tags: Tags as returned by `az vm show` (may be None)

        Returns:
            New dictionary of cleaned tags, in original order
        """
        if not tags:
            return {}

        sanitized: dict[str, str] = {}
        for key, value in tags.items():
            clean_key = cls.clean_tag_text(str(key)).strip()
            clean_value = cls.clean_tag_text("" if value is None else str(value))

            if not clean_key:
                logger.warning(f"Dropping tag with no valid characters in its name: {key!r}")
                continue
            if clean_key != key or clean_value != value:
                logger.debug(f"Sanitized tag {key!r} -> {clean_key!r}")

            sanitized[clean_key] = clean_value

        return sanitized

    @classmethod
    def format_tag_arguments(cls, tags: dict[str, Any] | None) -> list[str]:
        """Render tags as key=value arguments for `az vm create --tags`.

        Args:
            tags: Tag set (sanitized here if it is not already)

        Returns:
            List like ["env=prod", "owner=ops"]
        """
        return [f"{key}={value}" for key, value in cls.sanitize_tags(tags).items()]


__all__ = ["TagManager"]
