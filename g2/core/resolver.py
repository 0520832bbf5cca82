"""
Shell-style variable substitution for ebuild values.

Expands ``${NAME}`` and bare ``$NAME`` references using a plain mapping.
This is a bounded iterative rewrite, not a shell: names that are not in the
mapping are left untouched so that values supplied by the package manager at
build time (``${WORKDIR}``, ``${FILESDIR}``...) survive verbatim.
"""

from __future__ import annotations

from collections.abc import Mapping

# Maximum number of rewrite passes over the text.
MAX_PASSES = 5


def resolve_variables(text: str, variables: Mapping[str, str]) -> str:
    """
    Replace ``${NAME}`` and ``$NAME`` for every NAME in ``variables``.

    Runs up to ``MAX_PASSES`` passes so values that reference other
    variables get expanded too, stopping as soon as a pass changes nothing.
    A self-referential chain simply stops at the pass cap.

    Args:
        text: Text to expand.
        variables: Variable values by name.

    Returns:
        Expanded text.

    Example:
        >>> resolve_variables("${PN}-$PV", {"PN": "foo", "PV": "1.0"})
        'foo-1.0'
    """
    # Longest names first so "$PV" is not eaten by "$P".
    keys = sorted(variables, key=lambda k: (-len(k), k))

    for _ in range(MAX_PASSES):
        original = text
        for key in keys:
            value = variables[key]
            text = text.replace("${" + key + "}", value)
            text = text.replace("$" + key, value)
        if text == original:
            break

    return text
