"""Extraction of JSON objects from free-text model answers."""

import json
import logging
import re
from typing import Dict, Any, Optional

from .errors import ParseError

logger = logging.getLogger(__name__)

_FENCE_PATTERNS = [
    re.compile(r'```json\s*\n?(.*?)\n?```', re.DOTALL | re.IGNORECASE),
    re.compile(r'```\s*\n?(.*?)\n?```', re.DOTALL),
]


class ResponseFormatter:
    """
    Utility class for pulling a JSON object out of prose.

    Model answers arrive as free text. The object is looked for in order:
    1. Markdown code blocks (```json ... ``` then plain ``` ... ```)
    2. The first balanced ``{...}`` span in the text
    """

    @staticmethod
    def extract_json(response_text: str) -> Dict[str, Any]:
        """
        Extract a JSON object from response text.

        Args:
            response_text: Raw response text that may contain JSON

        Returns:
            Parsed JSON dictionary

        Raises:
            ParseError: If no JSON object can be recovered
        """
        if not response_text or not response_text.strip():
            raise ParseError.no_json_object(response_text or "")

        text = response_text.strip()

        json_data = ResponseFormatter._extract_fenced_json(text)
        if json_data is not None:
            logger.debug("Extracted JSON from fenced code block")
            return json_data

        json_data = ResponseFormatter._extract_embedded_json(text)
        if json_data is not None:
            logger.debug("Extracted embedded JSON object")
            return json_data

        logger.warning(f"Failed to extract JSON from response: {text[:200]}...")
        raise ParseError.no_json_object(text)

    @staticmethod
    def _extract_fenced_json(text: str) -> Optional[Dict[str, Any]]:
        for pattern in _FENCE_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            try:
                data = json.loads(match.group(1).strip())
            except json.JSONDecodeError as e:
                logger.debug(f"Fenced block is not valid JSON: {str(e)}")
                continue
            if isinstance(data, dict):
                return data
        return None

    @staticmethod
    def _extract_embedded_json(text: str) -> Optional[Dict[str, Any]]:
        """
        Find and extract the first JSON object embedded in text using brace counting.

        Braces inside string literals are ignored. When a balanced span fails
        to parse, scanning continues after it.
        """
        start_idx = text.find('{')
        while start_idx != -1:
            brace_count = 0
            in_string = False
            escape_next = False
            end_idx = -1

            for i in range(start_idx, len(text)):
                char = text[i]
                if escape_next:
                    escape_next = False
                    continue
                if char == '\\' and in_string:
                    escape_next = True
                    continue
                if char == '"':
                    in_string = not in_string
                    continue
                if in_string:
                    continue
                if char == '{':
                    brace_count += 1
                elif char == '}':
                    brace_count -= 1
                    if brace_count == 0:
                        end_idx = i
                        break

            if end_idx == -1:
                return None

            try:
                data = json.loads(text[start_idx:end_idx + 1])
                if isinstance(data, dict):
                    return data
            except json.JSONDecodeError:
                pass

            start_idx = text.find('{', start_idx + 1)

        return None


def extract_json(response_text: str) -> Dict[str, Any]:
    return ResponseFormatter.extract_json(response_text)
