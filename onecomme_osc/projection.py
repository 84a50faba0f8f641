"""
Field projection: build a reduced copy of a message for selective delivery.
"""

from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .model import FieldSpec
from .paths import MISSING, get_path, set_path

FieldSelection = Sequence[Union[FieldSpec, Mapping[str, Any], str]]


def _as_spec(spec: Union[FieldSpec, Mapping[str, Any], str]) -> FieldSpec:
    if isinstance(spec, FieldSpec):
        return spec
    if isinstance(spec, str):
        return FieldSpec(path=spec)
    return FieldSpec.model_validate(spec)


def project(message: Mapping[str, Any], fields: Optional[FieldSelection]) -> Mapping[str, Any]:
    """
    Project a message onto the enabled field paths.

    With no field specs the message itself is returned (not a copy).
    Otherwise every enabled path that resolves is written at the same dotted
    path in a fresh dict; paths that do not resolve are left out entirely.
    """
    if not fields:
        return message

    projected: Dict[str, Any] = {}
    for spec in map(_as_spec, fields):
        if not spec.enabled:
            continue
        value = get_path(message, spec.path)
        if value is MISSING:
            continue
        set_path(projected, spec.path, value)
    return projected
