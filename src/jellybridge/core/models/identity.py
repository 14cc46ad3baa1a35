"""Verified identity claims as handed over by the upstream OIDC layer."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from src.jellybridge.core.exceptions import IdentityClaimsError


def _claim_value(claims: Mapping[str, Any], name: str) -> Any:
    """Look up a claim, walking nested objects for dotted names."""
    if name in claims:
        return claims[name]
    current: Any = claims
    for part in name.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def extract_groups(claims: Mapping[str, Any], claim_names: Sequence[str]) -> list[str]:
    """Return the raw groups from the first candidate claim that carries any.

    Claim values may be a list or a single string. Candidates are tried in
    order; when none is present the result is an empty list.
    """
    for name in claim_names:
        value = _claim_value(claims, name)
        if value is None:
            continue
        if isinstance(value, str):
            return [value] if value else []
        if isinstance(value, Sequence):
            groups = [str(item) for item in value if item is not None and str(item)]
            if groups:
                return groups
    return []


class ExternalIdentity(BaseModel):
    """Claims of a user already verified by the identity provider."""

    subject: str = Field(description="IdP subject identifier")
    email: str = Field(description="E-mail address, the local lookup key")
    preferred_name: str | None = Field(default=None, description="Preferred username")
    display_name: str | None = Field(default=None, description="Human readable name")
    raw_groups: list[str] = Field(default_factory=list, description="Group claim values as sent")

    @classmethod
    def from_claims(
        cls,
        claims: Mapping[str, Any],
        group_claims: Sequence[str] = ("groups", "roles"),
        name_claims: Sequence[str] = ("preferred_username", "name"),
    ) -> ExternalIdentity:
        subject = claims.get("sub")
        email = claims.get("email")
        if not subject:
            raise IdentityClaimsError("Claims are missing the 'sub' claim")
        if not email:
            raise IdentityClaimsError("Claims are missing the 'email' claim")

        preferred_name = None
        for name in name_claims:
            value = _claim_value(claims, name)
            if isinstance(value, str) and value.strip():
                preferred_name = value.strip()
                break

        return cls(
            subject=str(subject),
            email=str(email).strip(),
            preferred_name=preferred_name,
            display_name=claims.get("name") or preferred_name,
            raw_groups=extract_groups(claims, group_claims),
        )
