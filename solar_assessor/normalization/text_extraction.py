"""Rule-based extraction of recommendation fields from prose answers."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..models.result import ConfidenceTier, ExtractedValue

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT = re.compile(r'(?<=[.!?])\s+|\n+')


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text or "") if s and s.strip()]


@dataclass(frozen=True)
class ExtractionRule:
    """
    How to find one field in free text.

    A rule finds candidate values either with ``pattern`` (group 1 passed to
    ``convert``) or with ``choices`` (canonical value -> keywords). A
    candidate in a sentence that also mentions one of ``topic_words`` is
    high confidence; any other candidate is medium; nothing found yields
    ``default`` at low confidence.

    With ``collect`` set, the rule gathers every matching sentence (up to
    ``limit``) instead of stopping at the first value.
    """
    name: str
    default: Any
    topic_words: Tuple[str, ...] = ()
    pattern: Optional[re.Pattern] = None
    convert: Callable[[re.Match], Any] = field(default=lambda m: m.group(1))
    choices: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    collect: bool = False
    limit: int = 5

    def find(self, sentence: str) -> List[Any]:
        if self.pattern is not None:
            values = []
            for match in self.pattern.finditer(sentence):
                try:
                    values.append(self.convert(match))
                except ValueError:
                    continue
            return values
        lowered = sentence.lower()
        for value, keywords in self.choices:
            for keyword in keywords:
                if re.search(rf'\b{re.escape(keyword)}\b', lowered):
                    return [value]
        return []

    def is_topical(self, sentence: str) -> bool:
        lowered = sentence.lower()
        return any(word in lowered for word in self.topic_words)


def extract_field(text: str, rule: ExtractionRule) -> ExtractedValue:
    """
    Apply one rule to a prose answer.

    Args:
        text: Model answer
        rule: Extraction rule for the field

    Returns:
        ExtractedValue with the value and the tier it was found at
    """
    sentences = split_sentences(text)

    if rule.collect:
        topical = [s for s in sentences if rule.find(s) and rule.is_topical(s)]
        if topical:
            return ExtractedValue(_tidy(topical[:rule.limit]), ConfidenceTier.HIGH)
        mentioned = [s for s in sentences if rule.find(s)]
        if mentioned:
            return ExtractedValue(_tidy(mentioned[:rule.limit]), ConfidenceTier.MEDIUM)
        return ExtractedValue(list(rule.default), ConfidenceTier.LOW)

    first_seen: List[Any] = []
    for sentence in sentences:
        found = rule.find(sentence)
        if not found:
            continue
        if rule.is_topical(sentence):
            return ExtractedValue(found[0], ConfidenceTier.HIGH)
        if not first_seen:
            first_seen.append(found[0])

    if first_seen:
        return ExtractedValue(first_seen[0], ConfidenceTier.MEDIUM)

    logger.debug(f"No match for '{rule.name}', using default {rule.default!r}")
    return ExtractedValue(rule.default, ConfidenceTier.LOW)


def extract_fields(text: str, rules: Tuple[ExtractionRule, ...]) -> Dict[str, ExtractedValue]:
    return {rule.name: extract_field(text, rule) for rule in rules}


def _tidy(sentences: List[str]) -> List[str]:
    tidied = []
    for sentence in sentences:
        sentence = sentence.strip(" -*\t")
        if not sentence:
            continue
        sentence = sentence[0].upper() + sentence[1:]
        if sentence[-1] not in ".!?":
            sentence += "."
        tidied.append(sentence)
    return tidied


_MULTIPLIERS = {"k": 1_000, "thousand": 1_000, "m": 1_000_000, "million": 1_000_000}


def _dollars(match: re.Match) -> float:
    amount = float(match.group(1).replace(",", ""))
    suffix = (match.group(2) or "").lower()
    return amount * _MULTIPLIERS.get(suffix, 1)


DEFAULT_CONSIDERATIONS = (
    "Have a licensed installer confirm the roof can carry the array.",
    "Check local permit and HOA requirements before installation.",
    "Review available incentives before signing a contract.",
)

RECOMMENDATION_RULES: Tuple[ExtractionRule, ...] = (
    ExtractionRule(
        name="panel_material",
        default="Monocrystalline",
        topic_words=("recommend", "suggest", "best", "ideal", "panel"),
        choices=(
            ("Monocrystalline", ("monocrystalline", "mono-crystalline", "mono crystalline", "mono-si")),
            ("Polycrystalline", ("polycrystalline", "poly-crystalline", "multi-crystalline", "poly-si")),
            ("Thin-film", ("thin-film", "thin film", "amorphous silicon", "cdte", "cigs")),
            ("Bifacial", ("bifacial", "bi-facial", "double-sided")),
        ),
    ),
    ExtractionRule(
        name="orientation",
        default="South",
        topic_words=("orient", "direction", "facing", "position", "face"),
        choices=(
            ("Southeast", ("southeast", "south-east", "southeastern")),
            ("Southwest", ("southwest", "south-west", "southwestern")),
            ("South", ("south", "southern")),
            ("East", ("east", "eastern")),
            ("West", ("west", "western")),
            ("North", ("north", "northern")),
        ),
    ),
    ExtractionRule(
        name="tilt_angle_deg",
        default=30,
        topic_words=("tilt", "angle", "inclin", "pitch"),
        pattern=re.compile(r'(?<![\d.])(\d{1,2})[\s-]*(?:°|degrees?\b)', re.IGNORECASE),
        convert=lambda m: int(m.group(1)),
    ),
    ExtractionRule(
        name="cost_estimate_usd",
        default=15000.0,
        topic_words=("cost", "price", "investment", "install", "system"),
        pattern=re.compile(
            r'\$\s*(\d[\d,]*(?:\.\d+)?)\s*(k|thousand|million|m)?\b', re.IGNORECASE
        ),
        convert=_dollars,
    ),
    ExtractionRule(
        name="roi_percent",
        default=10.0,
        topic_words=("roi", "return", "investment", "profit"),
        pattern=re.compile(r'(\d+(?:\.\d+)?)\s*(?:%|percent\b)', re.IGNORECASE),
        convert=lambda m: float(m.group(1)),
    ),
    ExtractionRule(
        name="special_considerations",
        default=DEFAULT_CONSIDERATIONS,
        topic_words=("consider", "note", "keep in mind", "important", "caution", "warning"),
        choices=(
            ("shading", ("shade", "shading", "shadow", "tree", "trees", "obstruction")),
            ("weather", ("weather", "storm", "wind", "snow", "hail", "hurricane")),
            ("maintenance", ("maintenance", "clean", "cleaning", "debris", "inspect")),
            ("permits", ("permit", "permits", "approval", "hoa", "regulation")),
            ("incentives", ("incentive", "incentives", "rebate", "tax credit", "subsidy")),
        ),
        collect=True,
    ),
)
