from .config import EffectiveConfig, NoApiConfig, resolve_config
from .exceptions import (
    ConfigError,
    DocumentUnavailable,
    FetchError,
    NoApiError,
    SelectorNotFound,
    WriteFailure,
)
from .generator import (
    NoApiGenerator,
    generate_targets,
    refresh_document_cache,
    search_operations,
)
from .internal.types.models import GenerationResult, TargetSelector

__version__ = "0.1.0"
