"""
StackBuddy Forms - Forms-management tool set

Provides:
- FormsApiClient / FormsApiConfig / ApiResponse: httpx client for the forms API
- FormsService: form, field, logic stash, slug and overview operations
- build_forms_catalog: registers the operations as tools
- encode_logic_stash / decode_logic_stash: stash text codec
"""

from .client import ApiResponse, FormsApiClient, FormsApiConfig
from .service import FormsService, label_without_slug, unique_label_slug
from .stash import decode_logic_stash, encode_logic_stash, stash_from_fields
from .definitions import FormsToolNames, build_forms_catalog

__all__ = [
    "ApiResponse",
    "FormsApiClient",
    "FormsApiConfig",
    "FormsService",
    "label_without_slug",
    "unique_label_slug",
    "decode_logic_stash",
    "encode_logic_stash",
    "stash_from_fields",
    "FormsToolNames",
    "build_forms_catalog",
]
