"""
L1 Domain — Version constraint validation (pure).

Validates a requested extension version against the registry's
supported-version rule. No I/O, no subprocess.
"""

from __future__ import annotations


def parse_version(version: str) -> tuple[int, int, int]:
    """``"2.7.0"`` → ``(2, 7, 0)``; missing parts count as zero.

    Raises:
        ValueError: A component is not a non-negative integer.
    """
    parts = version.strip().lstrip("v").split(".")
    if not parts or len(parts) > 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Not a MAJOR.MINOR.PATCH version: {version!r}")
    numbers = [int(p) for p in parts] + [0] * (3 - len(parts))
    return numbers[0], numbers[1], numbers[2]


def check_version_constraint(
    selected_version: str,
    constraint: dict,
) -> dict:
    """Validate a selected version against a constraint rule.

    Constraint types:
        - ``gte``: >= a minimum version
        - ``exact``: must match exactly
        - ``semver_compat``: ~= compatibility (same major, >= reference)
        - ``range``: >= ``reference`` and < ``upper``

    Args:
        selected_version: The version string requested, e.g. ``"2.5.5"``.
        constraint: Dict with ``type``, ``reference``, and type-specific fields.
            Examples::

                {"type": "gte", "reference": "2.7.0"}
                {"type": "exact", "reference": "3.1.4"}
                {"type": "range", "reference": "3.0.0", "upper": "4.0.0"}

    Returns:
        ``{"valid": True}`` or ``{"valid": False, "message": "..."}``
    """
    ctype = constraint.get("type", "gte")
    ref = constraint.get("reference", "")

    # Unlike a tool probe, an unparseable request must not slip through
    try:
        sel_parts = parse_version(selected_version)
    except ValueError:
        return {
            "valid": False,
            "message": f"Version {selected_version!r} is not MAJOR.MINOR.PATCH.",
        }
    ref_parts = parse_version(ref)

    if ctype == "gte":
        if sel_parts >= ref_parts:
            return {"valid": True}
        return {
            "valid": False,
            "message": f"Version {selected_version} < {ref}. Minimum required: {ref}.",
        }

    elif ctype == "exact":
        if sel_parts == ref_parts:
            return {"valid": True}
        return {
            "valid": False,
            "message": f"Version {selected_version} != {ref}. Exact match required.",
        }

    elif ctype == "semver_compat":
        # ~=: same major, selected >= reference
        if sel_parts[0] != ref_parts[0]:
            return {
                "valid": False,
                "message": f"Major version mismatch: {selected_version} vs {ref}.",
            }
        if sel_parts[1:] >= ref_parts[1:]:
            return {"valid": True}
        return {
            "valid": False,
            "message": f"Version {selected_version} not compatible with ~={ref}.",
        }

    elif ctype == "range":
        upper = constraint.get("upper", "")
        upper_parts = parse_version(upper)
        if ref_parts <= sel_parts < upper_parts:
            return {"valid": True}
        return {
            "valid": False,
            "message": f"Version {selected_version} outside [{ref}, {upper}).",
        }

    return {"valid": False, "message": f"Unknown constraint type '{ctype}'."}
