"""Built-in engine argument presets"""
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_PROFILE_ID = "default"


class Profile(BaseModel):
    """A named, fixed set of extra engine arguments."""
    id: str
    name: str
    args: List[str] = Field(default_factory=list)


_BUILTIN_PROFILES = (
    Profile(id=DEFAULT_PROFILE_ID, name="Default", args=[]),
    Profile(id="audio-only", name="Audio Only", args=["-x", "--audio-format", "mp3"]),
    Profile(id="best-quality", name="Best Quality", args=["-f", "bv*+ba/b"]),
)


def builtin_profiles() -> List[Profile]:
    return [profile.model_copy(deep=True) for profile in _BUILTIN_PROFILES]


def find_profile(profile_id: str) -> Optional[Profile]:
    for profile in _BUILTIN_PROFILES:
        if profile.id == profile_id:
            return profile.model_copy(deep=True)
    return None
