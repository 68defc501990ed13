"""Identifier normalization in the style of 'go lint'.

lint_name rewrites underscore_separated and mis-cased initialisms into
camelCase with common initialisms kept in their canonical casing:

    person_id  -> personID
    IpAddress  -> IPAddress
    APIProxy   -> APIProxy
"""

import keyword
from typing import Callable, List

COMMON_INITIALISMS = frozenset(
    {
        "API",
        "ASCII",
        "CPU",
        "CSS",
        "DNS",
        "EOF",
        "GUID",
        "HTML",
        "HTTP",
        "HTTPS",
        "ID",
        "IP",
        "JSON",
        "LHS",
        "QPS",
        "RAM",
        "RHS",
        "RPC",
        "SLA",
        "SMTP",
        "SQL",
        "SSH",
        "TCP",
        "TLS",
        "TTL",
        "UDP",
        "UI",
        "UID",
        "UUID",
        "URI",
        "URL",
        "UTF8",
        "VM",
        "XML",
        "XSRF",
        "XSS",
    }
)


def is_dunder(name: str) -> bool:
    """Check if a name is a special name such as __init__ or __name__"""
    return len(name) > 4 and name.startswith("__") and name.endswith("__")


def _upper_char(ch: str) -> str:
    # Keep the character count stable: 'ß'.upper() is 'SS'.
    upper = ch.upper()
    return upper if len(upper) == 1 else ch


def lint_name(name: str) -> str:
    """Return the normalized form of NAME, or NAME itself if it is fine."""
    # Fast path for simple cases: "_", dunders and all lowercase.
    if name == "_" or is_dunder(name):
        return name
    if all(ch.islower() for ch in name):
        return name

    # Split at every lower->non-lower transition and on underscores, then
    # check each word against the common initialisms.
    chars: List[str] = list(name)
    start = 0
    i = 0
    while i + 1 <= len(chars):
        end_of_word = False
        if i + 1 == len(chars):
            end_of_word = True
        elif chars[i + 1] == "_":
            # Drop the whole run of underscores
            end_of_word = True
            run = 1
            while i + run + 1 < len(chars) and chars[i + run + 1] == "_":
                run += 1

            # ...but keep one if it sits between two digits (v1_2)
            if (
                i + run + 1 < len(chars)
                and chars[i].isdecimal()
                and chars[i + run + 1].isdecimal()
            ):
                run -= 1

            del chars[i + 1 : i + 1 + run]
        elif chars[i].islower() and not chars[i + 1].islower():
            end_of_word = True
        i += 1
        if not end_of_word:
            continue

        word = "".join(chars[start:i])
        upper = word.upper()
        if upper in COMMON_INITIALISMS and len(upper) == len(word):
            # Lowercase only when it starts a lowerCamelCase name
            if start == 0 and chars[start].islower():
                upper = upper.lower()
            chars[start:i] = list(upper)
        elif start > 0 and word.lower() == word:
            chars[start] = _upper_char(chars[start])
        start = i

    should = "".join(chars)
    # class_ and friends exist to dodge a keyword; never turn them back into one
    if keyword.iskeyword(should):
        return name
    return should


def exact_match(from_name: str, to_name: str) -> Callable[[str], str]:
    """Build a transform that renames FROM_NAME to TO_NAME and nothing else."""

    def transform(name: str) -> str:
        return to_name if name == from_name else name

    return transform
