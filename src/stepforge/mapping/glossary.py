"""
Glossary normalizer - canonical vocabulary for step text.

Step authors write "taps the btn", "hits Enter", "visits /home". The
glossary folds synonyms onto canonical terms so that the grammar's
fallback pass and the learned pattern store see one spelling per
concept. Quoted spans are user data and are never touched.

Glossaries are YAML documents::

    version: 1
    entries:
      - canonical: click
        synonyms: [tap, hit]
    module_methods:
      - phrase: sign in
        module: auth
        method: login
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.errors import ErrorContext, GlossaryError

logger = logging.getLogger(__name__)

# A quoted span opens wherever the quote does not follow a letter or digit,
# so "name='Bob'" splits into "name=" and "'Bob'" while "user's" stays whole.
TOKEN_PATTERN = re.compile(
    r"""(?P<quoted>(?<!\w)(['"])(?:(?!\2).)+\2)"""
    r"""|(?P<space>\s+)"""
    r"""|(?P<word>(?:[^\s'"]|(?<=\w)['"])+)"""
    r"""|['"]""",
    re.DOTALL,
)
TRAILING_PUNCTUATION = ".,;:!?"


class GlossaryEntry(BaseModel):
    """A canonical term and the words that mean the same thing."""

    canonical: str = Field(..., min_length=1)
    synonyms: list[str] = Field(default_factory=list)
    description: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("canonical")
    @classmethod
    def canonical_is_single_token(cls, v: str) -> str:
        if re.search(r"""[\s'"]""", v):
            raise ValueError(f"canonical term must be a single unquoted word: {v!r}")
        return v.lower()


class ModuleMethod(BaseModel):
    """A phrase that stands for a call into a hand-written page module."""

    phrase: str = Field(..., min_length=1)
    module: str
    method: str
    params: dict[str, str] | None = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Glossary(BaseModel):
    version: int = 1
    entries: list[GlossaryEntry] = Field(default_factory=list)
    module_methods: list[ModuleMethod] = Field(default_factory=list, alias="moduleMethods")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# Synonyms are chosen so that folding never turns a phrasing the grammar
# accepts into one it rejects; the grammar sees the raw text first anyway.
DEFAULT_GLOSSARY = Glossary(
    version=1,
    entries=[
        GlossaryEntry(canonical="click", synonyms=["tap", "tapped", "clicked", "clicking"]),
        GlossaryEntry(canonical="enter", synonyms=["write", "writes", "entered", "typed"]),
        GlossaryEntry(
            canonical="navigate", synonyms=["visit", "visits", "browse", "browses", "navigated"]
        ),
        GlossaryEntry(canonical="see", synonyms=["observe", "observes", "notice", "notices"]),
        GlossaryEntry(canonical="press", synonyms=["pressed", "pressing"]),
        GlossaryEntry(canonical="hover", synonyms=["hovered", "hovering"]),
        GlossaryEntry(canonical="wait", synonyms=["waited", "waiting", "await", "awaits"]),
        GlossaryEntry(canonical="verify", synonyms=["verifies", "verified", "validate"]),
        GlossaryEntry(canonical="button", synonyms=["btn", "cta"]),
        GlossaryEntry(canonical="field", synonyms=["textbox", "textfield", "inputbox"]),
        GlossaryEntry(canonical="dropdown", synonyms=["combobox", "combo", "picker"]),
        GlossaryEntry(canonical="checkbox", synonyms=["tickbox", "chkbox"]),
        GlossaryEntry(canonical="login", synonyms=["signin"]),
        GlossaryEntry(canonical="logout", synonyms=["signout"]),
        GlossaryEntry(canonical="modal", synonyms=["popup", "lightbox", "overlay"]),
        GlossaryEntry(canonical="toast", synonyms=["snackbar"]),
        GlossaryEntry(canonical="error", synonyms=["err"]),
        GlossaryEntry(canonical="message", synonyms=["msg"]),
        GlossaryEntry(canonical="password", synonyms=["pwd", "passwd"]),
    ],
    module_methods=[
        ModuleMethod(phrase="log in", module="auth", method="login"),
        ModuleMethod(phrase="login", module="auth", method="login"),
        ModuleMethod(phrase="sign in", module="auth", method="login"),
        ModuleMethod(phrase="log out", module="auth", method="logout"),
        ModuleMethod(phrase="logout", module="auth", method="logout"),
        ModuleMethod(phrase="sign out", module="auth", method="logout"),
        ModuleMethod(phrase="fill form", module="forms", method="fillForm"),
        ModuleMethod(phrase="submit form", module="forms", method="submitForm"),
        ModuleMethod(phrase="wait for", module="waits", method="waitForSignal"),
    ],
)


@dataclass(frozen=True)
class ModuleMethodMatch:
    module: str
    method: str
    phrase: str
    params: dict[str, str] | None = None


class GlossaryNormalizer:
    """
    Token-level synonym folding over one glossary.

    The synonym map is built on first use and kept for the lifetime of
    the instance; build a new normalizer to pick up a changed glossary.
    """

    def __init__(self, glossary: Glossary | None = None):
        self.glossary = glossary if glossary is not None else DEFAULT_GLOSSARY
        self._synonym_map: dict[str, str] | None = None

    @property
    def synonym_map(self) -> dict[str, str]:
        if self._synonym_map is None:
            self._synonym_map = self._build_synonym_map()
        return self._synonym_map

    def _build_synonym_map(self) -> dict[str, str]:
        mapping: dict[str, str] = {}
        for entry in self.glossary.entries:
            for synonym in entry.synonyms:
                key = synonym.lower()
                if re.search(r"""[\s'"]""", key):
                    logger.warning(
                        f"Skipping synonym {synonym!r} of {entry.canonical!r}: "
                        "synonyms must be single unquoted words"
                    )
                    continue
                mapping[key] = entry.canonical
        # Canonical terms always map to themselves, even if listed as another's synonym
        for entry in self.glossary.entries:
            mapping[entry.canonical] = entry.canonical
        logger.debug(f"Built synonym map with {len(mapping)} terms")
        return mapping

    def normalize(self, text: str) -> str:
        """Fold unquoted words onto canonical terms and lower-case them.

        Quoted spans pass through verbatim wherever they occur, and stay
        attached to the text around them. Whitespace runs collapse to a
        single space, which makes the operation idempotent.
        """
        parts: list[str] = []
        for match in TOKEN_PATTERN.finditer(text):
            if match.group("space"):
                parts.append(" ")
            elif word := match.group("word"):
                parts.append(self._fold(word))
            else:
                parts.append(match.group(0))
        return "".join(parts).strip(" ")

    def _fold(self, token: str) -> str:
        word = token.lower()
        stripped = word.rstrip(TRAILING_PUNCTUATION)
        if not stripped:
            return word
        return self.synonym_map.get(stripped, stripped) + word[len(stripped) :]

    def resolve_canonical(self, term: str) -> str:
        return self.synonym_map.get(term.lower(), term)

    def synonyms_of(self, term: str) -> list[str]:
        canonical = self.resolve_canonical(term).lower()
        for entry in self.glossary.entries:
            if entry.canonical == canonical:
                return list(entry.synonyms)
        return []

    def is_synonym_of(self, a: str, b: str) -> bool:
        return self.resolve_canonical(a).lower() == self.resolve_canonical(b).lower()

    def find_module_method(self, text: str) -> ModuleMethodMatch | None:
        """Module method whose phrase occurs in the text; longest phrase wins."""
        lower = text.lower()
        best: ModuleMethod | None = None
        for mapping in self.glossary.module_methods:
            phrase = mapping.phrase.lower()
            if re.search(rf"\b{re.escape(phrase)}\b", lower):
                if best is None or len(phrase) > len(best.phrase):
                    best = mapping
        return _to_match(best) if best else None

    def match_module_method(self, text: str) -> ModuleMethodMatch | None:
        """Module method whose phrase is the whole text (case-insensitive)."""
        key = " ".join(text.lower().split()).rstrip(TRAILING_PUNCTUATION)
        for mapping in self.glossary.module_methods:
            if mapping.phrase.lower() == key:
                return _to_match(mapping)
        return None


def _to_match(mapping: ModuleMethod) -> ModuleMethodMatch:
    return ModuleMethodMatch(
        module=mapping.module,
        method=mapping.method,
        phrase=mapping.phrase,
        params=dict(mapping.params) if mapping.params else None,
    )


def merge_glossaries(base: Glossary, extension: Glossary) -> Glossary:
    """Combine two glossaries.

    Entries sharing a canonical term get the union of their synonyms;
    module methods from ``extension`` replace base methods with the same
    phrase.
    """
    entries: dict[str, GlossaryEntry] = {e.canonical: e for e in base.entries}
    for ext in extension.entries:
        existing = entries.get(ext.canonical)
        if existing is None:
            entries[ext.canonical] = ext
            continue
        synonyms = list(dict.fromkeys([*existing.synonyms, *ext.synonyms]))
        entries[ext.canonical] = existing.model_copy(
            update={"synonyms": synonyms, "description": ext.description or existing.description}
        )

    methods: dict[str, ModuleMethod] = {m.phrase.lower(): m for m in base.module_methods}
    for method in extension.module_methods:
        methods[method.phrase.lower()] = method

    return Glossary(
        version=max(base.version, extension.version),
        entries=list(entries.values()),
        module_methods=list(methods.values()),
    )


def load_glossary(path: Path, *, merge_defaults: bool = True) -> Glossary:
    """Load a glossary YAML file.

    Args:
        path: Glossary file.
        merge_defaults: Merge the file over DEFAULT_GLOSSARY (default) rather
            than replacing it.

    Returns:
        The loaded glossary, or DEFAULT_GLOSSARY when the file is missing.

    Raises:
        GlossaryError: If the file is not valid YAML or fails validation.
    """
    if not path.exists():
        logger.info(f"Glossary file not found at {path}, using defaults")
        return DEFAULT_GLOSSARY

    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise GlossaryError(f"Invalid YAML in glossary: {e}", ErrorContext(file=path)) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise GlossaryError("Glossary must be a mapping", ErrorContext(file=path))

    try:
        glossary = Glossary.model_validate(data)
    except ValidationError as e:
        raise GlossaryError(f"Invalid glossary: {e}", ErrorContext(file=path)) from e

    return merge_glossaries(DEFAULT_GLOSSARY, glossary) if merge_defaults else glossary
