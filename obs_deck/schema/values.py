"""
schema/values.py — Typed stand-in for schema-less property maps.

Action properties and OBS input settings are free-form JSON objects. Instead
of an untyped dict they are validated as a mapping from str to PropertyValue,
a recursive union of the JSON primitive kinds.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter
from typing_extensions import TypeAliasType

PropertyValue = TypeAliasType(
    "PropertyValue",
    Optional[
        Union[
            StrictBool,
            StrictInt,
            StrictFloat,
            StrictStr,
            List["PropertyValue"],
            Dict[str, "PropertyValue"],
        ]
    ],
)

PropertyMap = Dict[str, PropertyValue]

_property_map = TypeAdapter(PropertyMap)


def validate_properties(value: Any) -> dict:
    """Validate a property mapping, raising pydantic's ValidationError on bad input."""
    return _property_map.validate_python(value)

