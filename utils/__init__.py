# Content Refinery Utilities
from .exceptions import RefineryError
from .json_extraction import extract_json, extract_json_strict
from .settings import AppSettings, ProviderSettings, load_settings

__all__ = [
    'RefineryError',
    'extract_json',
    'extract_json_strict',
    'AppSettings',
    'ProviderSettings',
    'load_settings'
]
