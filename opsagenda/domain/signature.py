"""Canonical filter signatures.

A FilterSignature is the single place where "did the user change filters?"
is decided. Pagination resets and change-detection reseeding both key off it,
so it is computed by exactly one function here rather than per call site.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from .models import FilterCriteria, FilterSignature

logger = logging.getLogger(__name__)

SIGNATURE_VERSION = "v1"


def canonical_form(criteria: FilterCriteria, scope: str = "") -> str:
    """Serialize criteria to a deterministic JSON string.

    Keys are sorted, multi-select facets are already sorted by the model, and
    dates serialize to ISO strings, so equal criteria always produce equal text.

    Args:
        criteria: Filter criteria to serialize
        scope: Optional view name mixed into the signature so that identical
            criteria on different views never share downstream state

    Returns:
        Canonical JSON text
    """
    payload: dict[str, Any] = criteria.model_dump(mode="json")
    if scope:
        payload["_scope"] = scope
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def compute_signature(criteria: FilterCriteria, scope: str = "") -> FilterSignature:
    """Compute the FilterSignature of a criteria value.

    Args:
        criteria: Filter criteria
        scope: Optional view name (see canonical_form)

    Returns:
        FilterSignature whose value is ``"<version>_<sha256 hex>"``
    """
    text = canonical_form(criteria, scope)
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    signature = FilterSignature(value=f"{SIGNATURE_VERSION}_{digest}")
    logger.debug("Filter signature %s for %s", signature.value[:15], text)
    return signature
