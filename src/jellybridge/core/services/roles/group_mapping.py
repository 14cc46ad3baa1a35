"""Map IdP group claims to a role, and a role to a downstream policy.

Supported group names, compared after normalisation (lower-case, whitespace,
``-`` and ``_`` removed):

- Administrator: "Administrator", "Administrators", "Admin", "Admins"
- Power user: "Power User", "Power-Users", "power_user", "PowerUsers", ...
- User: everything else, including no groups at all
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from loguru import logger

from src.jellybridge.core.models.policy import Role, UserPolicy

_SEPARATORS = re.compile(r"[\s\-_]+")

ADMIN_GROUPS = frozenset({"administrator", "administrators", "admin", "admins"})
POWER_USER_GROUPS = frozenset({"poweruser", "powerusers"})

_ROLE_POLICIES: dict[Role, UserPolicy] = {
    Role.USER: UserPolicy(),
    Role.POWER_USER: UserPolicy(
        enable_collection_management=True,
        enable_subtitle_management=True,
        enable_lyric_management=True,
        enable_content_deletion=True,
        enable_public_sharing=True,
        enable_sync_transcoding=True,
        enable_media_conversion=True,
        sync_play_access="JoinGroups",
    ),
    Role.ADMIN: UserPolicy(
        is_administrator=True,
        enable_collection_management=True,
        enable_subtitle_management=True,
        enable_lyric_management=True,
        enable_content_deletion=True,
        force_remote_source_transcoding=True,
        enable_live_tv_management=True,
        enable_remote_control_of_other_users=True,
        enable_shared_device_control=True,
        enable_public_sharing=True,
        enable_sync_transcoding=True,
        enable_media_conversion=True,
        sync_play_access="CreateAndJoinGroups",
    ),
}


def normalize_group(group: str) -> str:
    return _SEPARATORS.sub("", group.lower())


def map_groups_to_role(groups: Iterable[str] | str | None) -> Role:
    """Return the most privileged role matched by any of ``groups``."""
    if not groups:
        return Role.USER

    group_list = [groups] if isinstance(groups, str) else list(groups)
    normalized = {normalize_group(g) for g in group_list if isinstance(g, str)}

    if normalized & ADMIN_GROUPS:
        role = Role.ADMIN
    elif normalized & POWER_USER_GROUPS:
        role = Role.POWER_USER
    else:
        role = Role.USER

    logger.debug("Mapped groups {} to role {}", sorted(normalized), role)
    return role


def policy_for_role(role: Role) -> UserPolicy:
    """Return the fixed policy preset for ``role``.

    Presets are immutable, so repeated calls always return an equal policy.
    """
    return _ROLE_POLICIES[role]


def role_for_policy(policy: UserPolicy | Mapping[str, Any]) -> Role:
    """Reverse lookup: the role a downstream policy currently grants."""
    if isinstance(policy, UserPolicy):
        policy = policy.to_downstream()
    if policy.get("IsAdministrator"):
        return Role.ADMIN
    if policy.get("EnableContentDeletion") and policy.get("EnableAllFolders"):
        return Role.POWER_USER
    return Role.USER
