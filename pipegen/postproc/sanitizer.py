"""Recovery of workflow artifacts from free-text model output."""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..failsafe import build_fallback
from ..logging import get_logger
from ..models import FallbackResult, GenerationResult, StructuredResult, YamlResult
from .security import SecretPolicy

_OPENING_FENCE = re.compile(r"^\s*```[\w.+-]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```\s*$")
_KEY, _VALUE, _ELEMENT, _TOP_LEVEL = "key", "value", "element", "top"
_CLOSERS = {
    _KEY: ":",
    _VALUE: ",}",
    _ELEMENT: ",]",
    _TOP_LEVEL: ",}]:",
}

ENVELOPE_KEYS = ("templateContent", "workflowContent", "workflowFileName", "parameters")
REQUIRED_ENVELOPE_KEYS = ("templateContent", "workflowContent", "workflowFileName")

FallbackFactory = Callable[[str], FallbackResult]


class MalformedEnvelopeError(ValueError):
    """Raised when a JSON envelope lacks one of its required fields."""


def _default_fallback(reason: str) -> FallbackResult:
    return build_fallback(
        None,
        "generated-template",
        "Generated Template",
        None,
        "infrastructure",
        "",
        reason=reason,
    )


def strip_code_fences(text: str) -> str:
    """Remove a leading and trailing markdown fence, with or without a language tag."""
    cleaned = text.strip()
    cleaned = _OPENING_FENCE.sub("", cleaned, count=1)
    cleaned = _CLOSING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def extract_json_candidate(text: str) -> Optional[str]:
    """Return the substring between the first ``{`` and the last ``}``."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1]


def repair_string_literals(text: str) -> str:
    """Escape bare control characters and stray quotes inside JSON strings.

    The scan tracks the enclosing containers so a quote only closes the
    string when the next significant character can follow it there: ``:``
    after an object key, ``,`` or ``}`` after an object value, ``,`` or ``]``
    after an array element. End of input always closes. Any other quote is
    escaped.
    """
    out: List[str] = []
    containers: List[str] = []
    expecting_key = False
    role: Optional[str] = None
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if role is None:
            out.append(char)
            if char == '"':
                role = _string_role(containers, expecting_key)
            elif char in "{[":
                containers.append(char)
                expecting_key = char == "{"
            elif char in "}]":
                if containers:
                    containers.pop()
                expecting_key = False
            elif char == ":":
                expecting_key = False
            elif char == ",":
                expecting_key = bool(containers) and containers[-1] == "{"
            index += 1
            continue

        if char == "\\" and index + 1 < length:
            out.append(text[index : index + 2])
            index += 2
            continue
        if char == '"':
            if _closes_string(text, index + 1, role):
                role = None
                out.append(char)
            else:
                out.append('\\"')
            index += 1
            continue
        if char == "\n":
            out.append("\\n")
        elif char == "\r":
            out.append("\\r")
        elif char == "\t":
            out.append("\\t")
        else:
            out.append(char)
        index += 1
    return "".join(out)


def _string_role(containers: List[str], expecting_key: bool) -> str:
    if not containers:
        return _TOP_LEVEL
    if containers[-1] == "[":
        return _ELEMENT
    return _KEY if expecting_key else _VALUE


def _closes_string(text: str, position: int, role: str) -> bool:
    for char in text[position:]:
        if char in " \t\r\n":
            continue
        return char in _CLOSERS[role]
    return True


def strip_trailing_commas(text: str) -> str:
    """Drop commas that directly precede ``}`` or ``]`` outside string literals."""
    out: List[str] = []
    in_string = False
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if in_string:
            out.append(char)
            if char == "\\" and index + 1 < length:
                out.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
        elif char == ",":
            lookahead = index + 1
            while lookahead < length and text[lookahead] in " \t\r\n":
                lookahead += 1
            if lookahead < length and text[lookahead] in "}]":
                index += 1
                continue
        out.append(char)
        index += 1
    return "".join(out)


_REPAIRS: Tuple[Callable[[str], str], ...] = (repair_string_literals, strip_trailing_commas)


def _unescape_literals(value: str) -> str:
    return value.replace("\\n", "\n").replace("\\t", "\t")


class ResponseSanitizer:
    """Turns raw model text into a tagged generation result; never raises."""

    def __init__(
        self,
        *,
        policy: SecretPolicy | None = None,
        fallback_factory: FallbackFactory | None = None,
    ) -> None:
        self.policy = policy or SecretPolicy()
        self.fallback_factory = fallback_factory or _default_fallback
        self.logger = get_logger("sanitizer")

    def sanitize(self, raw_text: str) -> GenerationResult:
        """Return a yaml, structured or fallback result for ``raw_text``."""
        cleaned = strip_code_fences(raw_text or "")
        if not cleaned:
            return self._fallback("Model response was empty after cleanup")

        envelope = self._parse_envelope(cleaned)
        if envelope is not None:
            try:
                result = self._structured_from(envelope)
            except MalformedEnvelopeError as exc:
                return self._fallback(str(exc))
            return self._secure(result)

        return self._secure(YamlResult(content=cleaned + ("" if cleaned.endswith("\n") else "\n")))

    def _parse_envelope(self, text: str) -> Optional[Dict[str, Any]]:
        candidate = extract_json_candidate(text)
        if candidate is None:
            return None

        parsed = self._loads(candidate)
        if parsed is None:
            repaired = candidate
            for repair in _REPAIRS:
                repaired = repair(repaired)
            parsed = self._loads(repaired)
            if parsed is None:
                self.logger.debug("JSON candidate could not be repaired; treating response as YAML")
                return None
            self.logger.debug("JSON envelope parsed after repair")

        if not isinstance(parsed, dict):
            return None
        if not any(key in parsed for key in ENVELOPE_KEYS):
            return None
        return parsed

    @staticmethod
    def _loads(text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return None

    @staticmethod
    def _structured_from(envelope: Dict[str, Any]) -> StructuredResult:
        missing = [
            key
            for key in REQUIRED_ENVELOPE_KEYS
            if not isinstance(envelope.get(key), str) or not envelope[key].strip()
        ]
        if missing:
            raise MalformedEnvelopeError(
                f"Generated response missing required fields: {', '.join(missing)}"
            )
        raw_parameters = envelope.get("parameters") or []
        parameters = tuple(str(item) for item in raw_parameters) if isinstance(raw_parameters, list) else ()
        return StructuredResult(
            template_content=_unescape_literals(envelope["templateContent"]),
            workflow_content=_unescape_literals(envelope["workflowContent"]),
            workflow_file_name=envelope["workflowFileName"].strip(),
            parameters=parameters,
        )

    def _fallback(self, reason: str) -> FallbackResult:
        self.logger.warning("Using fallback output: %s", reason)
        return self._secure(self.fallback_factory(reason))

    def _secure(self, result: GenerationResult) -> GenerationResult:
        if isinstance(result, YamlResult):
            return YamlResult(content=self.policy.apply(result.content))
        if isinstance(result, StructuredResult):
            return StructuredResult(
                template_content=self.policy.apply(result.template_content),
                workflow_content=self.policy.apply(result.workflow_content),
                workflow_file_name=result.workflow_file_name,
                parameters=result.parameters,
            )
        if isinstance(result, FallbackResult):
            return FallbackResult(
                template_content=self.policy.apply(result.template_content),
                workflow_content=self.policy.apply(result.workflow_content),
                workflow_file_name=result.workflow_file_name,
                parameters=result.parameters,
                reason=result.reason,
            )
        raise TypeError(f"Unsupported generation result: {result!r}")


__all__ = [
    "MalformedEnvelopeError",
    "ResponseSanitizer",
    "extract_json_candidate",
    "repair_string_literals",
    "strip_code_fences",
    "strip_trailing_commas",
]
