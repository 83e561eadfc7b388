"""
urinorm.rules — Normalization rules, ordered rule tables and rule file loading.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

import yaml

from urinorm.errors import ConfigurationError, MalformedRule, NoRuleMatch

# \1 .. \99 and \g<name> / \g<1> back-references in replacement templates
_BACKREF = re.compile(r"\\(?:g<([^>]*)>|(\d{1,2}))")


def _check_template(pattern: re.Pattern, template: str, label: str) -> None:
    """Reject templates referencing groups the pattern does not define."""
    for named, numbered in _BACKREF.findall(template):
        ref = named or numbered
        if numbered.startswith("0"):
            # \0 is an octal escape in re templates, not the whole match
            raise MalformedRule(
                f"Wrong normalization rule: {label} {template} uses \\{numbered}; "
                f"write \\g<0> to insert the whole match"
            )
        if ref.isdigit():
            if int(ref) > pattern.groups:
                raise MalformedRule(
                    f"Wrong normalization rule: {label} {template} references group "
                    f"{ref} but match {pattern.pattern} has {pattern.groups}"
                )
        elif ref not in pattern.groupindex:
            raise MalformedRule(
                f"Wrong normalization rule: {label} {template} references unknown "
                f"group {ref!r} of match {pattern.pattern}"
            )


@dataclass(frozen=True)
class NormalizationRule:
    """One row of the rule table.

    ``match`` is searched in the candidate URI and substituted at most once.
    ``replace`` yields the canonical URI, ``resolve`` (optional) the URL
    serving RDF metadata in ``format``.
    """

    match: str
    replace: str
    resolve: str = ""
    format: str = ""
    head_fallback: bool = True
    alt_subject: bool = True
    pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            compiled = re.compile(self.match)
        except re.error as e:
            raise MalformedRule(f"Wrong normalization rule: match {self.match} ({e})") from e
        object.__setattr__(self, "pattern", compiled)
        _check_template(compiled, self.replace, "replace")
        if self.resolve:
            _check_template(compiled, self.resolve, "resolve")

    @classmethod
    def from_dict(cls, data: dict) -> "NormalizationRule":
        if "match" not in data or "replace" not in data:
            raise ConfigurationError(f"Rule needs 'match' and 'replace' keys: {data!r}")
        return cls(
            match=data["match"],
            replace=data["replace"],
            resolve=data.get("resolve") or "",
            format=data.get("format") or "",
            head_fallback=bool(data.get("head_fallback", True)),
            alt_subject=bool(data.get("alt_subject", True)),
        )

    def matches(self, uri: str) -> bool:
        return self.pattern.search(uri) is not None

    def apply(self, template: str, uri: str) -> Optional[str]:
        """Substitute ``template`` into ``uri``; None when the pattern does not match."""
        try:
            result, count = self.pattern.subn(template, uri, count=1)
        except (re.error, IndexError) as e:
            raise MalformedRule(
                f"Wrong normalization rule: match {self.match} replace {template} ({e})"
            ) from e
        if count == 0:
            return None
        if not result:
            raise MalformedRule(
                f"Wrong normalization rule: match {self.match} replace {template}"
            )
        return result

    def canonical(self, uri: str) -> Optional[str]:
        return self.apply(self.replace, uri)

    def target_url(self, uri: str) -> Optional[str]:
        """URL to fetch metadata from, or None if the rule is not resolvable for ``uri``."""
        if not self.resolve:
            return None
        return self.apply(self.resolve, uri)


RuleLike = Union[NormalizationRule, dict]


def coerce_rule(rule: RuleLike) -> NormalizationRule:
    if isinstance(rule, NormalizationRule):
        return rule
    if isinstance(rule, dict):
        return NormalizationRule.from_dict(rule)
    raise ConfigurationError(f"Unsupported rule definition: {rule!r}")


class RuleSet:
    """Ordered rule table. The first matching rule wins."""

    def __init__(self, rules: Iterable[RuleLike] = ()):
        self.rules = [coerce_rule(r) for r in rules]

    def __iter__(self) -> Iterator[NormalizationRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def match(self, uri: str) -> Optional[NormalizationRule]:
        for rule in self.rules:
            if rule.matches(uri):
                return rule
        return None

    def normalize(self, uri: str, require_match: bool = True) -> str:
        """Return the canonical form of ``uri`` according to the first matching rule."""
        rule = self.match(uri)
        if rule is None:
            if require_match:
                raise NoRuleMatch(uri)
            return uri
        return rule.canonical(uri)

    def match_resolvable(self, uri: str) -> Optional[tuple[NormalizationRule, str]]:
        """
        First rule that both matches ``uri`` and defines a resolve template,
        together with the URL built from it.  Matching rules without a
        resolve template are skipped, not treated as a failure.
        """
        for rule in self.rules:
            url = rule.target_url(uri)
            if url is not None:
                return rule, url
        return None


def load_rules(path: Union[str, Path]) -> RuleSet:
    """Load a rule table from a YAML (or JSON) file.

    The file holds either a list of rule records or a mapping with a
    ``rules`` key containing that list.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if isinstance(data, dict):
        data = data.get("rules")
    if not isinstance(data, list):
        raise ConfigurationError(f"Rule table {path} must contain a list of rules")
    return RuleSet(data)
