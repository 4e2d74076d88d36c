"""
Name Normalization
==================
Pure functions that turn a raw company name into a canonical slug and a
set of plausible alternate slugs used for matching.

    >>> slugify("Microsoft Corporation")
    'microsoft'
    >>> slug_variations("Amazon.com")
    ['amazoncom', 'amazon']

No fuzzy matching happens here: every rule is a deterministic string
rewrite, so the same name always produces the same slugs.
"""

import re

# ── Rewrite tables ────────────────────────────────────────────────────
_PUNCTUATION_RE = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")

LEGAL_FORMS = (
    "inc", "corp", "corporation", "ltd", "llc", "co", "company",
    "technologies", "technology", "software", "systems", "holdings",
    "group", "plc", "nv", "sa",
)
DOMAIN_SUFFIXES = ("com", "net", "io", "ai")
DESCRIPTORS = ("platforms", "holdings", "international", "worldwide", "global")

_LEGAL_FORMS_RE = re.compile(r"\b(%s)\b" % "|".join(LEGAL_FORMS), re.IGNORECASE)
# ──────────────────────────────────────────────────────────────────────


def _word_and_tail_re(words: tuple[str, ...]) -> tuple[re.Pattern, re.Pattern]:
    alternation = "|".join(words)
    return re.compile(r"\b(%s)\b" % alternation), re.compile(r"(%s)$" % alternation)


_DOMAIN_WORD_RE, _DOMAIN_TAIL_RE = _word_and_tail_re(DOMAIN_SUFFIXES)
_DESCRIPTOR_WORD_RE, _DESCRIPTOR_TAIL_RE = _word_and_tail_re(DESCRIPTORS)


def normalize(name: str | None) -> str:
    """Lowercase, drop punctuation and legal-form words, trim."""
    if not name:
        return ""
    text = name.lower()
    text = _PUNCTUATION_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    text = _LEGAL_FORMS_RE.sub("", text)
    return text.strip()


def _hyphenate(text: str) -> str:
    return _HYPHENS_RE.sub("-", _WHITESPACE_RE.sub("-", text))


def slugify(name: str | None) -> str:
    """Normalized name with whitespace runs turned into single hyphens."""
    return _hyphenate(normalize(name))


def _strip_words(text: str, word_re: re.Pattern, tail_re: re.Pattern) -> str:
    # Whole words first, then a bare suffix glued onto the last word
    stripped = tail_re.sub("", word_re.sub("", text))
    return _hyphenate(stripped.strip())


def slug_variations(name: str | None) -> list[str]:
    """
    Return the base slug followed by alternate slugs for ``name``.

    The result is de-duplicated and never contains an empty string.  The
    order is fixed (base slug first) so callers that stop at the first
    index hit behave the same on every run.
    """
    base = normalize(name)
    base_slug = _hyphenate(base)

    candidates = [
        base_slug,
        _strip_words(base, _DOMAIN_WORD_RE, _DOMAIN_TAIL_RE),
    ]

    first_word = base.split()[0] if base else ""
    if len(first_word) > 3:
        candidates.append(first_word)

    candidates.append(_strip_words(base, _DESCRIPTOR_WORD_RE, _DESCRIPTOR_TAIL_RE))

    # amazoncom -> amazon
    if base_slug.endswith("com"):
        candidates.append(base_slug[:-3])

    return [v for v in dict.fromkeys(candidates) if v]
