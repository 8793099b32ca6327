"""Drift detection and correction for regenerated copy.

Given freshly generated text and the facts locked from the previous
generation, each check re-extracts its fact from the text and, when the
text restates it differently, rewrites the offending substrings to the
locked value. Checks run in a fixed order (numeric, date, restriction,
CTA) and each sees the output of the one before it.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Tuple

from regenlock.facts.extractor import (
    contains_cta,
    extract_date,
    extract_numeric,
    extract_restriction,
    numeric_matches,
    remove_restriction,
    render_numeric,
    replace_dates,
    replace_numeric,
)
from regenlock.models.generator import GeneratedItem, GeneratorOutput
from regenlock.models.locked_facts import LockedFacts
from regenlock.utils.logging import get_logger


logger = get_logger(__name__)

FactName = Literal["numeric", "date", "restriction", "cta"]

CTA_VERBS = (
    "book", "call", "shop", "visit", "claim", "order", "sign up", "get", "reserve",
    "schedule", "redeem", "learn more", "save", "stop by", "buy", "apply", "contact",
    "text", "join", "try", "grab", "use code", "come in", "register", "download",
    "start", "request", "tap", "click", "email", "message", "dm",
)

_CTA_SENTENCE = re.compile(
    r"^(?:" + "|".join(re.escape(v) for v in CTA_VERBS) + r")\b",
    re.IGNORECASE,
)

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

# Attribute keys that hold machine data rather than customer-facing copy
NON_COPY_ATTRIBUTES = frozenset({
    "image_url", "imageUrl", "url", "prompt", "palette", "colorPalette",
    "source_concept_id", "sourceConceptId", "platform", "label",
})


@dataclass(frozen=True)
class DriftCorrection:
    """One detected disagreement with a locked fact."""

    fact: FactName
    action: Literal["replaced", "removed", "detected"]
    before: str = ""
    after: str = ""


@dataclass(frozen=True)
class DriftResult:
    """Outcome of running every check over one text field."""

    text: str
    corrections: Tuple[DriftCorrection, ...] = ()

    @property
    def drift_detected(self) -> bool:
        return bool(self.corrections)

    @property
    def corrected(self) -> bool:
        """True when at least one correction actually rewrote the text."""
        return any(c.action != "detected" for c in self.corrections)

    @property
    def unresolved(self) -> Tuple[FactName, ...]:
        return tuple(c.fact for c in self.corrections if c.action == "detected")


def _check_numeric(text: str, locked: LockedFacts) -> Tuple[str, Optional[DriftCorrection]]:
    if locked.numeric is None:
        return text, None
    found = extract_numeric(text)
    if found is None or numeric_matches(found, locked.numeric):
        return text, None
    replacement = render_numeric(locked.numeric)
    return replace_numeric(text, replacement), DriftCorrection(
        fact="numeric", action="replaced", before=render_numeric(found), after=replacement
    )


def _check_date(text: str, locked: LockedFacts) -> Tuple[str, Optional[DriftCorrection]]:
    if locked.expiration is None:
        return text, None
    found = extract_date(text)
    if found is None or found.same_day(locked.expiration):
        return text, None
    corrected = replace_dates(text, locked.expiration)
    return corrected, DriftCorrection(
        fact="date", action="replaced", before=found.text, after=extract_date(corrected).text
    )


def _check_restriction(text: str, locked: LockedFacts) -> Tuple[str, Optional[DriftCorrection]]:
    # A missing restriction is judged across the whole output, not per field
    if locked.restriction is not False or not extract_restriction(text):
        return text, None
    corrected = remove_restriction(text)
    return corrected, DriftCorrection(fact="restriction", action="removed", before=text, after=corrected)


def _check_cta(text: str, locked: LockedFacts, short_cta_words: int) -> Tuple[str, Optional[DriftCorrection]]:
    if locked.cta is None or contains_cta(text, locked.cta):
        return text, None

    stripped = text.strip()
    if len(stripped.split()) <= short_cta_words:
        return locked.cta, DriftCorrection(fact="cta", action="replaced", before=stripped, after=locked.cta)

    sentences = _SENTENCE_SPLIT.split(stripped)
    last = sentences[-1]
    if len(sentences) > 1 and _CTA_SENTENCE.match(last):
        replacement = locked.cta
        if last[-1:] in ".!?" and replacement[-1:] not in ".!?":
            replacement += last[-1]
        corrected = " ".join(sentences[:-1] + [replacement])
        return corrected, DriftCorrection(fact="cta", action="replaced", before=last, after=replacement)

    return text, DriftCorrection(fact="cta", action="detected", before=stripped)


def correct_text(
    text: str,
    locked: LockedFacts,
    *,
    check_cta: bool = False,
    short_cta_words: int = 6,
) -> DriftResult:
    """
    Run every drift check over one text field.

    Args:
        text: Freshly generated text
        locked: Facts locked from the previous generation
        check_cta: Also enforce the locked CTA (CTA-bearing fields only)
        short_cta_words: Fields this short are replaced whole on CTA drift

    Returns:
        DriftResult with the possibly rewritten text

    Example:
        >>> locked = LockedFacts(numeric=NumericFact(value=20, kind="percent"))
        >>> correct_text("Enjoy 15% off today", locked).text
        'Enjoy 20% off today'
    """
    checks: List[Callable[[str, LockedFacts], Tuple[str, Optional[DriftCorrection]]]] = [
        _check_numeric,
        _check_date,
        _check_restriction,
    ]
    if check_cta:
        checks.append(lambda t, lf: _check_cta(t, lf, short_cta_words))

    corrections: List[DriftCorrection] = []
    for check in checks:
        text, correction = check(text, locked)
        if correction is not None:
            corrections.append(correction)

    return DriftResult(text=text, corrections=tuple(corrections))


@dataclass
class OutputDriftReport:
    """Drift results for a whole generator output."""

    output: GeneratorOutput
    fields: Dict[str, DriftResult] = field(default_factory=dict)
    unresolved: Tuple[FactName, ...] = ()

    @property
    def any_drift_corrected(self) -> bool:
        return any(result.corrected for result in self.fields.values())

    @property
    def drift_detected(self) -> bool:
        return bool(self.fields) or bool(self.unresolved)

    @property
    def corrected_fields(self) -> List[str]:
        return [path for path, result in self.fields.items() if result.corrected]


def _correct_attributes(
    value: Any,
    path: str,
    locked: LockedFacts,
    check_cta: bool,
    short_cta_words: int,
    cta_keys: frozenset,
    fields: Dict[str, DriftResult],
    texts: List[str],
) -> Any:
    if isinstance(value, str):
        if value.startswith(("http://", "https://")):
            return value
        result = correct_text(value, locked, check_cta=check_cta, short_cta_words=short_cta_words)
        texts.append(result.text)
        if result.drift_detected:
            fields[path] = result
        return result.text
    if isinstance(value, dict):
        return {
            k: v if k in NON_COPY_ATTRIBUTES else _correct_attributes(
                v, f"{path}{k}" if path.endswith("@") else f"{path}.{k}", locked, k in cta_keys, short_cta_words, cta_keys, fields, texts
            )
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [
            _correct_attributes(v, f"{path}.{i}", locked, check_cta, short_cta_words, cta_keys, fields, texts)
            for i, v in enumerate(value)
        ]
    return value


def correct_output(
    output: GeneratorOutput,
    locked: LockedFacts,
    *,
    cta_keys: Iterable[str] = ("callToAction", "buttonText", "suggestedCTA", "cta", "primaryCTA"),
    short_cta_words: int = 6,
) -> OutputDriftReport:
    """
    Correct every customer-facing text field of a generator output.

    Item texts and copy-bearing attributes get the general checks; fields
    whose slot key is CTA-bearing also get the CTA check. A locked
    restriction that no field restates is reported as unresolved rather
    than written into the copy.

    Args:
        output: Fresh generator output
        locked: Facts locked from the previous generation
        cta_keys: Slot keys that carry a call-to-action
        short_cta_words: Word limit for whole-field CTA replacement

    Returns:
        OutputDriftReport holding the corrected output
    """
    if locked.is_empty():
        return OutputDriftReport(output=output)

    cta_keys = frozenset(cta_keys)
    fields: Dict[str, DriftResult] = {}
    texts: List[str] = []
    items: List[GeneratedItem] = []

    for item in output.items:
        slot = item.key.rsplit(".", 1)[-1]
        result = correct_text(
            item.text, locked, check_cta=slot in cta_keys, short_cta_words=short_cta_words
        )
        texts.append(result.text)
        if result.drift_detected:
            fields[item.key] = result
        attributes = _correct_attributes(
            item.attributes, f"{item.key}@", locked, False, short_cta_words, cta_keys, fields, texts
        )
        items.append(item.model_copy(update={"text": result.text, "attributes": attributes}))

    unresolved: Tuple[FactName, ...] = ()
    if locked.restriction is True and not any(extract_restriction(t) for t in texts):
        unresolved = ("restriction",)

    report = OutputDriftReport(
        output=output.model_copy(update={"items": items}),
        fields=fields,
        unresolved=unresolved,
    )

    if report.drift_detected:
        logger.warning(
            "drift_detected",
            corrected_fields=report.corrected_fields,
            unresolved=list(unresolved) + [
                f"{path}:{fact}" for path, r in fields.items() for fact in r.unresolved
            ],
        )
    else:
        logger.info("drift_check_clean", field_count=len(texts))

    return report


def drift_message(report: OutputDriftReport) -> str:
    """User-facing summary of a regeneration's drift outcome."""
    if report.any_drift_corrected:
        return "Details drifted from your locked facts and were corrected."
    if report.drift_detected:
        return "Some locked details are missing from the new wording. Please review before using it."
    return "Kept your details unchanged, wording improved."
