"""
Participant stake parsing.

Accepted forms:
  "Sam: 50, Alex: 30, Jordan: 20"      comma separated, colon or trailing amount
  "Greg 50 Shyam 100"                   no delimiters at all
  "Sam, Alex and Jordan split equally"  equal split of the bet risk

Every problem found is collected into ParseResult.errors; nothing raises.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

STAKE_TOLERANCE = Decimal("0.01")

EQUAL_SPLIT_PHRASES = (
    "split this equally",
    "split this evenly",
    "split equally",
    "split evenly",
    "equal split",
    "even split",
)
FILLER_WORDS = ("and", "with", "for")

_PAIR_RE = re.compile(r"([A-Za-z]+(?:\s+[A-Za-z]+)*):?\s+(\$?\d+(?:\.\d{1,2})?)")
_FILLER_RE = re.compile(r"\b(?:%s)\b" % "|".join(FILLER_WORDS), re.IGNORECASE)
_PHRASE_RE = re.compile("|".join(re.escape(p) for p in EQUAL_SPLIT_PHRASES), re.IGNORECASE)


@dataclass
class ParsedParticipant:
    name: str
    stake: Decimal


@dataclass
class ParseResult:
    participants: List[ParsedParticipant] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    is_equal_split: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def total(self) -> Decimal:
        return sum((p.stake for p in self.participants), Decimal("0"))


def extract_amount(text: str) -> Optional[Decimal]:
    cleaned = text.strip().replace("$", "").replace(",", "")
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def is_equal_split(text: str) -> bool:
    lowered = text.lower()
    return any(p in lowered for p in EQUAL_SPLIT_PHRASES)


def _clean_name(text: str) -> str:
    name = _FILLER_RE.sub(" ", text)
    return " ".join(name.split())


def parse_equal_split(text: str) -> List[ParsedParticipant]:
    cleaned = _PHRASE_RE.sub("", text)
    out: List[ParsedParticipant] = []
    for chunk in cleaned.split(","):
        for part in chunk.strip().split(" and "):
            name = _clean_name(part)
            if name:
                out.append(ParsedParticipant(name=name, stake=Decimal("0")))
    return out


def parse_name_amount(segment: str) -> Optional[ParsedParticipant]:
    segment = segment.strip()

    # "Name: 50" / "Name: $50"
    if ":" in segment:
        name, _, amount_text = segment.partition(":")
        amount = extract_amount(amount_text)
        if amount is not None:
            return ParsedParticipant(name=name.strip(), stake=amount)

    # "Name 50" / "First Last $50": take the right-most token that parses
    tokens = segment.split()
    for i in range(len(tokens) - 1, 0, -1):
        amount = extract_amount(tokens[i])
        if amount is not None:
            return ParsedParticipant(name=" ".join(tokens[:i]), stake=amount)
    return None


def parse_words(text: str) -> List[ParsedParticipant]:
    """Word by word: collect name tokens until a numeric token shows up."""
    words = text.split()
    out: List[ParsedParticipant] = []
    i = 0
    while i < len(words):
        name_parts: List[str] = []
        while i < len(words) and extract_amount(words[i]) is None:
            name_parts.append(words[i])
            i += 1
        if name_parts and i < len(words):
            name = " ".join(name_parts).rstrip(":").strip()
            if name:
                out.append(ParsedParticipant(name=name, stake=extract_amount(words[i])))
        i += 1
    return out


def parse_undelimited(text: str) -> List[ParsedParticipant]:
    """
    "Greg 50 Shyam 100". Amounts carry at most two decimals; extra digits are
    cut off, so "Greg 50.555" reads as 50.55.
    """
    out: List[ParsedParticipant] = []
    for m in _PAIR_RE.finditer(text.strip()):
        amount = extract_amount(m.group(2))
        if amount is not None:
            out.append(ParsedParticipant(name=m.group(1).strip(), stake=amount))
    return out or parse_words(text)


def parse_custom_amounts(text: str) -> List[ParsedParticipant]:
    if "," not in text:
        return parse_undelimited(text)
    out: List[ParsedParticipant] = []
    for segment in text.split(","):
        p = parse_name_amount(segment)
        if p is not None:
            out.append(p)
    return out


def parse(text: str, total_risk: Optional[Decimal] = None) -> ParseResult:
    trimmed = (text or "").strip()
    if not trimmed:
        return ParseResult(errors=["Input is empty"])

    if total_risk is not None:
        total_risk = Decimal(str(total_risk))

    result = ParseResult(is_equal_split=is_equal_split(trimmed))
    if result.is_equal_split:
        result.participants = parse_equal_split(trimmed)
        if total_risk is not None and result.participants:
            # remainder cents are not redistributed
            each = total_risk / len(result.participants)
            for p in result.participants:
                p.stake = each
    else:
        result.participants = parse_custom_amounts(trimmed)

    if not result.participants:
        result.errors.append("No valid participants found")

    seen, dupes = set(), []
    for p in result.participants:
        if p.name in seen and p.name not in dupes:
            dupes.append(p.name)
        seen.add(p.name)
    if dupes:
        result.errors.append(f"Duplicate participant names found: {', '.join(dupes)}")

    if total_risk is not None and result.participants and not result.is_equal_split:
        if abs(result.total - total_risk) > STAKE_TOLERANCE:
            result.errors.append(
                f"Stakes total ${result.total:.2f} but should equal ${total_risk:.2f}"
            )
    return result
