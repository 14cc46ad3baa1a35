"""Roles and the downstream policy record derived from them."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal


class Role(StrEnum):
    """Closed set of roles, most privileged first."""

    ADMIN = "admin"
    POWER_USER = "power_user"
    USER = "user"

    @property
    def privilege(self) -> int:
        """Higher value means more privilege."""
        return _PRIVILEGE[self]


_PRIVILEGE = {Role.ADMIN: 2, Role.POWER_USER: 1, Role.USER: 0}


class UserPolicy(BaseModel):
    """Permission record in the media server's native shape.

    Serialise with ``model_dump(by_alias=True)`` to get the server's field
    names (``IsAdministrator``, ``EnableContentDeletion``, ...).
    """

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True, frozen=True)

    is_administrator: bool = False
    is_hidden: bool = False
    is_disabled: bool = False
    enable_collection_management: bool = False
    enable_subtitle_management: bool = False
    enable_lyric_management: bool = False
    enable_content_deletion: bool = False
    enable_content_deletion_from_folders: tuple[str, ...] = ()
    enable_content_downloading: bool = True
    enable_media_playback: bool = True
    enable_audio_playback_transcoding: bool = True
    enable_video_playback_transcoding: bool = True
    enable_playback_remuxing: bool = True
    force_remote_source_transcoding: bool = False
    enable_all_folders: bool = True
    enable_all_channels: bool = True
    enable_all_devices: bool = True
    enable_remote_access: bool = True
    enable_live_tv_access: bool = True
    enable_live_tv_management: bool = False
    enable_remote_control_of_other_users: bool = False
    enable_shared_device_control: bool = False
    enable_public_sharing: bool = False
    enable_sync_transcoding: bool = False
    enable_media_conversion: bool = False
    max_parental_rating: int | None = None
    block_unrated_items: tuple[str, ...] = ()
    blocked_tags: tuple[str, ...] = ()
    allowed_tags: tuple[str, ...] = ()
    enable_user_preference_access: bool = True
    access_schedules: tuple[dict[str, Any], ...] = ()
    invalid_login_attempt_count: int = 0
    login_attempts_before_lockout: int = 0
    max_active_sessions: int = 0
    remote_client_bitrate_limit: int = 0
    sync_play_access: str = Field(default="None")

    def to_downstream(self) -> dict[str, Any]:
        """Return the policy as a JSON-ready dict with server field names."""
        return self.model_dump(by_alias=True, mode="json")
