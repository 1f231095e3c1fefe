from __future__ import annotations

import re
import unicodedata


def slugify(value: str) -> str:
    """Lowercase ``value`` and join its alphanumeric runs with single dashes.

    Accents are stripped first so that ``"Gestão"`` becomes ``"gestao"``.
    The result is capped at 200 characters.
    """
    text = unicodedata.normalize("NFKD", value or "")
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = text.strip().lower()
    out = []
    prev_dash = False
    for ch in text:
        if ch.isascii() and ch.isalnum():
            out.append(ch)
            prev_dash = False
        else:
            if not prev_dash:
                out.append("-")
            prev_dash = True
    slug = "".join(out).strip("-")
    return slug[:200]


def resolve_conflict(candidate_slug: str, attempt: int) -> str:
    """Return the slug to try after ``candidate_slug`` was rejected.

    ``attempt`` is the number of the create that just failed.  The first
    rejection appends ``-2``; later ones replace the suffix added by the
    previous call, so the sequence is ``foo``, ``foo-2``, ``foo-3``...
    A numeric ending that was already part of the original slug is left
    alone (``covid-19`` becomes ``covid-19-2``).
    """
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    base = candidate_slug
    if attempt > 1:
        base = re.sub(rf"-{attempt}$", "", candidate_slug)
    return f"{base}-{attempt + 1}"
