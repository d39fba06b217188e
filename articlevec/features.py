"""
Feature algorithms plugged into the two-pass extraction run.

Every feature set follows the same life cycle:

  pass 1   initialize_feature_determination(feature_config)
           update_candidate_features(doc, begin, end)      per labeled document
           determine_features(feature_config, norm_config) -> ordered names
  pass 2   initialize_feature_computation(names, feature_config, norm_config)
           compute_normalized_feature_values(doc, begin, end) -> values

Names are namespaced by group (``style.char_len``, ``word1.election``,
``char3.ion``). The value list returned in pass 2 is aligned by position to
the name list handed to ``initialize_feature_computation``.

Normalization table, per group:

  {"style": {"default": "minmax",
             "style.exclamations": {"method": "clip", "max": 50}}}

Methods: ``none``, ``minmax`` (scale to [0, 1] with the range observed in
pass 1, or an explicit ``min``/``max``), ``clip`` (cap to [``min``, ``max``]).
"""
from __future__ import annotations

import math
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .config import section
from .document import LINK, PARAGRAPH, QUOTE, TITLE
from .engine import SENTENCE, AnalyzedDocument
from .errors import ConfigError, PipelineError

RE_URL = re.compile(r"https?://[^\s'\"]+", re.IGNORECASE)
RE_WORD = re.compile(r"^\w[\w'’]*$", re.UNICODE)


class FeatureType(Protocol):
    def initialize_feature_determination(self, feature_config: Dict[str, Any]) -> None:
        ...

    def update_candidate_features(self, doc: AnalyzedDocument, begin: int, end: int) -> None:
        ...

    def determine_features(self, feature_config: Dict[str, Any], norm_config: Dict[str, Any]) -> List[str]:
        ...

    def initialize_feature_computation(
        self, names: Sequence[str], feature_config: Dict[str, Any], norm_config: Dict[str, Any]
    ) -> None:
        ...

    def compute_normalized_feature_values(self, doc: AnalyzedDocument, begin: int, end: int) -> List[float]:
        ...


# ------------------------------
# Safe scalar counters
# ------------------------------

def clip(v: float, lo: float, hi: float) -> float:
    return float(max(lo, min(hi, v)))


def upper_ratio(s: str) -> float:
    if not s:
        return 0.0
    upp = sum(1 for ch in s if ch.isupper())
    return upp / max(1, len(s))


def digit_ratio(s: str) -> float:
    if not s:
        return 0.0
    dig = sum(1 for ch in s if ch.isdigit())
    return dig / max(1, len(s))


def char_entropy(s: str) -> float:
    """Shannon entropy over characters."""
    if not s:
        return 0.0
    counts = Counter(s)
    total = len(s)
    ent = 0.0
    for c in counts.values():
        p = c / total
        ent -= p * math.log2(p)
    return clip(ent, 0.0, 8.0)


def char_ngrams(s: str, n: int) -> List[str]:
    s = re.sub(r"\s+", " ", s.lower())
    if len(s) < n:
        return []
    return [s[i : i + n] for i in range(len(s) - n + 1)]


def word_ngrams(tokens: Sequence[str], n: int) -> List[str]:
    words = [t.lower() for t in tokens if RE_WORD.match(t)]
    return [" ".join(words[i : i + n]) for i in range(len(words) - n + 1)]


# ------------------------------
# Normalization
# ------------------------------

class Normalizer:
    """Per-feature scaling, fixed once the feature list is final."""

    METHODS = ("none", "minmax", "clip")

    def __init__(self, rules: Dict[str, Tuple[str, float, float]]):
        self.rules = rules

    @classmethod
    def build(
        cls,
        names: Sequence[str],
        table: Dict[str, Any],
        observed: Optional[Dict[str, Tuple[float, float]]] = None,
    ) -> "Normalizer":
        observed = observed or {}
        default = table.get("default", "none")
        rules: Dict[str, Tuple[str, float, float]] = {}
        for name in names:
            rule = table.get(name, default)
            if isinstance(rule, str):
                rule = {"method": rule}
            method = rule.get("method", "none")
            if method not in cls.METHODS:
                raise ConfigError(f"Unknown normalization {method!r} for {name}")
            lo, hi = observed.get(name, (None, None))
            lo = float(rule.get("min", 0.0 if lo is None else lo))
            hi = rule.get("max", hi)
            if hi is None:
                if method != "none":
                    raise ConfigError(f"No range for {name}: give 'max' or determine features first")
                hi = math.inf
            rules[name] = (method, lo, float(hi))
        return cls(rules)

    def apply(self, name: str, value: float) -> float:
        method, lo, hi = self.rules[name]
        if method == "minmax":
            if hi <= lo:
                return 0.0
            return clip((value - lo) / (hi - lo), 0.0, 1.0)
        if method == "clip":
            return clip(value, lo, hi)
        return float(value)


# ------------------------------
# Feature groups
# ------------------------------

class FeatureGroup:
    """
    Base for one namespaced group. Subclasses provide ``raw_values`` (name ->
    value, missing names count as 0.0) and ``select`` (pass-1 inclusion).
    """

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.enabled = True
        self._config: Dict[str, Any] = {}
        self._observed: Dict[str, Tuple[float, float]] = {}
        self._df: Counter = Counter()
        self._n_docs = 0
        self._names: Optional[List[str]] = None
        self._normalizer: Optional[Normalizer] = None
        self._determining = False

    def name(self, key: str) -> str:
        return f"{self.prefix}.{key}"

    def owns(self, name: str) -> bool:
        return name.startswith(self.prefix + ".")

    # pass 1

    def initialize_feature_determination(self, feature_config: Dict[str, Any]) -> None:
        self._config = section(feature_config, self.prefix)
        self.enabled = bool(self._config.get("enabled", True))
        self._observed = {}
        self._df = Counter()
        self._n_docs = 0
        self._determining = True

    def update_candidate_features(self, doc: AnalyzedDocument, begin: int, end: int) -> None:
        if not self._determining:
            raise PipelineError(f"{self.prefix}: feature determination not initialized")
        if not self.enabled:
            return
        self._n_docs += 1
        values = self.raw_values(doc, begin, end)
        for name, v in values.items():
            self._df[name] += 1
            lo, hi = self._observed.get(name, (v, v))
            self._observed[name] = (min(lo, v), max(hi, v))

    def determine_features(self, feature_config: Dict[str, Any], norm_config: Dict[str, Any]) -> List[str]:
        if not self._determining:
            raise PipelineError(f"{self.prefix}: feature determination not initialized")
        if not self.enabled:
            return []
        return self.select(section(feature_config, self.prefix))

    def observed_range(self, name: str) -> Optional[Tuple[float, float]]:
        if name not in self._observed:
            return None
        lo, hi = self._observed[name]
        # documents without the feature contribute 0.0
        if self._df[name] < self._n_docs:
            lo, hi = min(lo, 0.0), max(hi, 0.0)
        return lo, hi

    # pass 2

    def initialize_feature_computation(
        self, names: Sequence[str], feature_config: Dict[str, Any], norm_config: Dict[str, Any]
    ) -> None:
        foreign = [n for n in names if not self.owns(n)]
        if foreign:
            raise ConfigError(f"{self.prefix}: features not in this group: {foreign[:5]}")
        self._config = section(feature_config, self.prefix)
        self._names = list(names)
        observed = {}
        for n in self._names:
            r = self.observed_range(n)
            if r is not None:
                observed[n] = r
        self._normalizer = Normalizer.build(self._names, section(norm_config, self.prefix), observed)

    def compute_normalized_feature_values(self, doc: AnalyzedDocument, begin: int, end: int) -> List[float]:
        if self._names is None or self._normalizer is None:
            raise PipelineError(f"{self.prefix}: feature computation not initialized")
        if not self._names:
            return []
        raw = self.raw_values(doc, begin, end)
        return [self._normalizer.apply(n, raw.get(n, 0.0)) for n in self._names]

    # subclass hooks

    def raw_values(self, doc: AnalyzedDocument, begin: int, end: int) -> Dict[str, float]:
        raise NotImplementedError

    def select(self, config: Dict[str, Any]) -> List[str]:
        raise NotImplementedError


class StyleFeatures(FeatureGroup):
    """Shallow stylometry of the region: lengths, ratios, layout counts."""

    KEYS = [
        "char_len",
        "token_count",
        "avg_token_len",
        "sentence_count",
        "avg_sentence_len",
        "title_token_count",
        "upper_ratio",
        "digit_ratio",
        "char_entropy",
        "exclamations",
        "questions",
        "paragraph_count",
        "quote_count",
        "quote_ratio",
        "link_count",
        "url_count",
    ]

    def __init__(self, prefix: str = "style"):
        super().__init__(prefix)

    def raw_values(self, doc: AnalyzedDocument, begin: int, end: int) -> Dict[str, float]:
        s = doc.text[begin:end]
        toks = doc.tokens(begin, end)
        words = [t for t in toks if RE_WORD.match(t)]
        sentences = doc.layer(SENTENCE, begin, end)
        quotes = doc.layer(QUOTE, begin, end)
        titles = doc.layer(TITLE, begin, end)
        title_tokens = sum(len(doc.tokens(t.begin, t.end)) for t in titles)
        quoted = sum(q.end - q.begin for q in quotes)

        vals = [
            len(s),
            len(toks),
            (sum(len(w) for w in words) / len(words)) if words else 0.0,
            len(sentences),
            (len(toks) / len(sentences)) if sentences else 0.0,
            title_tokens,
            upper_ratio(s),
            digit_ratio(s),
            char_entropy(s),
            s.count("!"),
            s.count("?"),
            len(doc.layer(PARAGRAPH, begin, end)),
            len(quotes),
            clip(quoted / max(1, len(s)), 0.0, 1.0),
            len(doc.layer(LINK, begin, end)),
            len(RE_URL.findall(s)),
        ]
        return {self.name(k): float(v) for k, v in zip(self.KEYS, vals)}

    def select(self, config: Dict[str, Any]) -> List[str]:
        exclude = set(config.get("exclude", []))
        return [self.name(k) for k in self.KEYS if self.name(k) not in exclude]


class NgramFeatures(FeatureGroup):
    """
    Relative n-gram frequencies over a vocabulary fixed in pass 1: grams with
    document frequency >= ``min_df``, the ``max_features`` most frequent,
    ties broken alphabetically.
    """

    def __init__(self, prefix: str, n: int = 1):
        super().__init__(prefix)
        self.n = n

    def grams(self, doc: AnalyzedDocument, begin: int, end: int) -> List[str]:
        raise NotImplementedError

    def raw_values(self, doc: AnalyzedDocument, begin: int, end: int) -> Dict[str, float]:
        grams = self.grams(doc, begin, end)
        if not grams:
            return {}
        total = len(grams)
        return {self.name(g): c / total for g, c in Counter(grams).items()}

    def select(self, config: Dict[str, Any]) -> List[str]:
        min_df = int(config.get("min_df", 1))
        max_features = config.get("max_features")
        ranked = sorted(
            (name for name, df in self._df.items() if df >= min_df),
            key=lambda name: (-self._df[name], name),
        )
        if max_features is not None:
            ranked = ranked[: int(max_features)]
        return ranked

    def initialize_feature_determination(self, feature_config: Dict[str, Any]) -> None:
        super().initialize_feature_determination(feature_config)
        self.n = int(self._config.get("n", self.n))

    def initialize_feature_computation(
        self, names: Sequence[str], feature_config: Dict[str, Any], norm_config: Dict[str, Any]
    ) -> None:
        super().initialize_feature_computation(names, feature_config, norm_config)
        self.n = int(self._config.get("n", self.n))


class TokenNgramFeatures(NgramFeatures):
    def grams(self, doc: AnalyzedDocument, begin: int, end: int) -> List[str]:
        return word_ngrams(doc.tokens(begin, end), self.n)


class CharNgramFeatures(NgramFeatures):
    def grams(self, doc: AnalyzedDocument, begin: int, end: int) -> List[str]:
        return char_ngrams(doc.text[begin:end], self.n)


# ------------------------------
# Aggregates
# ------------------------------

GROUP_KINDS = {
    "style": StyleFeatures,
    "word": TokenNgramFeatures,
    "char": CharNgramFeatures,
}


class AggregateFeatures:
    """Concatenation of feature groups, in group order."""

    def __init__(self, parts: Optional[Sequence[FeatureGroup]] = None):
        self.parts: List[FeatureGroup] = list(parts or [])

    def _ensure_parts(self, feature_config: Dict[str, Any]) -> None:
        pass

    def initialize_feature_determination(self, feature_config: Dict[str, Any]) -> None:
        self._ensure_parts(feature_config)
        for part in self.parts:
            part.initialize_feature_determination(feature_config)

    def update_candidate_features(self, doc: AnalyzedDocument, begin: int, end: int) -> None:
        for part in self.parts:
            part.update_candidate_features(doc, begin, end)

    def determine_features(self, feature_config: Dict[str, Any], norm_config: Dict[str, Any]) -> List[str]:
        names: List[str] = []
        for part in self.parts:
            names.extend(part.determine_features(feature_config, norm_config))
        return names

    def initialize_feature_computation(
        self, names: Sequence[str], feature_config: Dict[str, Any], norm_config: Dict[str, Any]
    ) -> None:
        self._ensure_parts(feature_config)
        claimed = 0
        for part in self.parts:
            own = [n for n in names if part.owns(n)]
            claimed += len(own)
            part.initialize_feature_computation(own, feature_config, norm_config)
        if claimed != len(names):
            unknown = [n for n in names if not any(p.owns(n) for p in self.parts)]
            raise ConfigError(f"Features without a group: {unknown[:5]}")
        # values are concatenated per group, so names must already be grouped
        order = [n for part in self.parts for n in names if part.owns(n)]
        if order != list(names):
            raise ConfigError("Feature names are not grouped in group order")

    def compute_normalized_feature_values(self, doc: AnalyzedDocument, begin: int, end: int) -> List[float]:
        values: List[float] = []
        for part in self.parts:
            values.extend(part.compute_normalized_feature_values(doc, begin, end))
        return values


class TopicAndStyleFeatures(AggregateFeatures):
    """Groups built from the feature config: one per section, by its ``kind``."""

    def _ensure_parts(self, feature_config: Dict[str, Any]) -> None:
        if self.parts:
            return
        for prefix in feature_config:
            cfg = section(feature_config, prefix)
            kind = cfg.get("kind")
            if kind not in GROUP_KINDS:
                raise ConfigError(f"Feature group {prefix!r}: unknown kind {kind!r}")
            cls = GROUP_KINDS[kind]
            if issubclass(cls, NgramFeatures):
                self.parts.append(cls(prefix, n=int(cfg.get("n", 1))))
            else:
                self.parts.append(cls(prefix))
