"""
Parsing utilities for timbersim.

Parses comma-separated ``name=value`` assignment strings used as a
shorthand for per-variable transforms (``"f=log, E=identity"``) and
anchor targets (``"f=35/9, E=11500/2400"``, i.e. ``mean/sd``).
"""

from typing import Any, Dict, List, Optional, Tuple

__all__ = []


class _AssignmentParser:
    """Parses comma-separated ``name=value`` assignment strings.

    Supports two parse types, ``"transform"`` and ``"target"``, each with a
    specialised value handler. A module-level singleton ``_parser`` is used
    throughout the codebase.
    """

    def __init__(self):
        self.handlers = {
            "transform": self._parse_transform_value,
            "target": self._parse_target_value,
        }

    def _parse(self, input_string: str, parse_type: str, available_items: Optional[List[str]]) -> Tuple[Dict, List[str]]:
        """Parse a comma-separated assignment string.

        Args:
            input_string: Raw user input (e.g. ``"f=log, E=identity"``).
            parse_type: ``"transform"`` or ``"target"``.
            available_items: Valid names for the left-hand side, or ``None``
                to accept any name.

        Returns:
            Tuple of ``(parsed_dict, error_list)`` keyed by variable name in
            input order.
        """
        if parse_type not in self.handlers:
            return {}, [f"Unknown parse type: {parse_type}"]

        parsed_items: Dict[str, Any] = {}
        errors = []

        for assignment in self._split_assignments(input_string):
            try:
                name, value = self._parse_assignment(assignment)
            except ValueError as e:
                errors.append(str(e))
                continue

            if available_items is not None and name not in available_items:
                errors.append(f"'{name}' not found. Available: {', '.join(available_items)}")
                continue
            if name in parsed_items:
                errors.append(f"'{name}' assigned more than once")
                continue

            parsed_value, error = self.handlers[parse_type](value)
            if error:
                errors.append(f"{name}: {error}")
                continue
            parsed_items[name] = parsed_value

        return parsed_items, errors

    def _split_assignments(self, input_string: str) -> List[str]:
        """Split on commas, dropping empty pieces."""
        return [part.strip() for part in input_string.split(",") if part.strip()]

    def _parse_assignment(self, assignment: str) -> Tuple[str, str]:
        """Parse single assignment into name and value parts."""
        if "=" not in assignment:
            raise ValueError(f"Invalid format: '{assignment}'. Expected 'name=value'")
        name, value = assignment.split("=", 1)
        name, value = name.strip(), value.strip()
        if not name:
            raise ValueError(f"Invalid format: '{assignment}'. Missing variable name")
        return name, value

    def _parse_transform_value(self, value: str) -> Tuple[Any, Optional[str]]:
        from ..stats.transforms import get_transform

        try:
            return get_transform(value), None
        except ValueError as e:
            return None, str(e)

    def _parse_target_value(self, value: str) -> Tuple[Any, Optional[str]]:
        parts = value.split("/")
        if len(parts) != 2:
            return None, f"Invalid target '{value}'. Expected 'mean/sd'"
        try:
            mean, sd = float(parts[0]), float(parts[1])
        except ValueError:
            return None, f"Invalid target '{value}'. Mean and sd must be numbers"
        return (mean, sd), None


_parser = _AssignmentParser()


def _parse_transforms(input_string: str, available: Optional[List[str]] = None) -> Dict[str, Any]:
    """Parse ``"f=log, E=identity"`` into a variable -> ``Transform`` mapping.

    Raises:
        ValueError: Listing every malformed assignment.
    """
    parsed, errors = _parser._parse(input_string, "transform", available)
    if errors:
        raise ValueError("Invalid transforms:\n" + "\n".join(f"• {err}" for err in errors))
    return parsed


def _parse_targets(input_string: str) -> Dict[str, Tuple[float, float]]:
    """Parse ``"f=35/9, E=11500/2400"`` into an anchor -> ``(mean, sd)`` mapping.

    Raises:
        ValueError: Listing every malformed assignment.
    """
    parsed, errors = _parser._parse(input_string, "target", None)
    if errors:
        raise ValueError("Invalid targets:\n" + "\n".join(f"• {err}" for err in errors))
    return parsed
