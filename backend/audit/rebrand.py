"""
Rebranding pass: ordered, case-insensitive substitutions over serialized
markup. Not DOM-aware; it rewrites attribute values and text alike.

Rules run in list order, so a later rule sees the output of earlier ones.
A replacement spliced next to surrounding text can form a fresh match
(company "Ninja Works" after a stray "Flow "), so the rule list is re-run
until the markup stops changing. The returned markup is a fixed point:
applying the pass to it again changes nothing.
"""

import re

MAX_PASSES = 8


class Rebrander:
    def __init__(self, rules, max_passes: int = MAX_PASSES):
        self.rules = [
            (re.compile(pattern, re.IGNORECASE), replacement)
            for pattern, replacement in rules
        ]
        self.max_passes = max_passes
        for _, replacement in self.rules:
            for pattern, _ in self.rules:
                if pattern.search(replacement):
                    raise ValueError(
                        f"Replacement {replacement!r} is matched by rule {pattern.pattern!r}"
                    )

    @classmethod
    def from_settings(cls, settings) -> "Rebrander":
        return cls([
            (pattern, replacement.format(company=settings.company_name))
            for pattern, replacement in settings.rebrand_rules
        ])

    def _pass(self, html: str) -> str:
        for pattern, replacement in self.rules:
            # Lambda keeps backslashes in the replacement literal
            html = pattern.sub(lambda _m, r=replacement: r, html)
        return html

    def apply(self, html: str) -> str:
        for _ in range(self.max_passes):
            rewritten = self._pass(html)
            if rewritten == html:
                return html
            html = rewritten
        raise ValueError(f"Rebrand rules still rewriting markup after {self.max_passes} passes")
