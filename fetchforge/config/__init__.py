from .settings import (
    AppConfig,
    Settings,
    get_server_address,
    parse_extra_args,
)
from .profiles import (
    DEFAULT_PROFILE_ID,
    Profile,
    builtin_profiles,
    find_profile,
)

__all__ = [
    "AppConfig",
    "Settings",
    "get_server_address",
    "parse_extra_args",
    "DEFAULT_PROFILE_ID",
    "Profile",
    "builtin_profiles",
    "find_profile",
]
