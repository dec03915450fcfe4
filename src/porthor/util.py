"""General utility functions."""

from __future__ import annotations

from bonsai.utils import escape_filter_exp

__all__ = [
    "parse_key_value_map",
    "render_filter",
]


def parse_key_value_map(value: str) -> dict[str, str]:
    """Parse a comma-separated list of ``key:value`` pairs.

    This is the compact syntax for the attribute and claim maps. Empty items
    are ignored. Only the first colon separates the key from the value, so
    values may themselves contain colons.

    Parameters
    ----------
    value
        String to parse, such as ``cn:name,mail:email``.

    Returns
    -------
    dict of str
        The parsed mapping.

    Raises
    ------
    ValueError
        Raised if one of the items has no colon.
    """
    result = {}
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, val = item.partition(":")
        if not sep:
            raise ValueError(f"invalid key:val format in: {item}")
        result[key.strip()] = val.strip()
    return result


def render_filter(
    template: str, placeholder: str, value: str, *, escape: bool = True
) -> str:
    """Substitute a value into an LDAP search filter template.

    Every occurrence of ``placeholder`` is replaced in a single pass, so text
    introduced by the substitution is never scanned again. Any other text in
    the template, including unrecognized placeholders, is left verbatim.

    Parameters
    ----------
    template
        Search filter template, such as ``(uid={login})``.
    placeholder
        Placeholder to replace, including the braces.
    value
        Value to substitute.
    escape
        Whether to escape the filter metacharacters of :rfc:`4515` in
        ``value`` first. Only disable this for values that are already
        escaped.

    Returns
    -------
    str
        The rendered search filter.
    """
    if escape:
        # bonsai escapes NUL as \0 rather than \00, so split on it instead.
        parts = value.split("\0")
        value = r"\00".join(escape_filter_exp(p) for p in parts)
    return template.replace(placeholder, value)
