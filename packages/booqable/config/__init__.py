from booqable.config.defaults import DEFAULTS, Defaults, default_options
from booqable.config.models import (
    MEDIA_TYPE,
    PRODUCTION_DOMAIN,
    SINGLE_USE_TOKEN_ALGORITHMS,
    SUPPORTED_API_VERSIONS,
    ClientOptions,
)

__all__ = [
    "DEFAULTS",
    "MEDIA_TYPE",
    "PRODUCTION_DOMAIN",
    "SINGLE_USE_TOKEN_ALGORITHMS",
    "SUPPORTED_API_VERSIONS",
    "ClientOptions",
    "Defaults",
    "default_options",
]
