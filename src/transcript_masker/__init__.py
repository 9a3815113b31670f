"""Transcript Masker — whitelist-based redaction of conversational transcripts."""

from .masker import MaskAccumulator, Masker, classify, mask_line
from .splitter import DELIMITERS, clean_word, split_on_char
from .urls import acceptable_url
from .patterns import apply_templates, compile_templates, normalize_mask
from .blacklist import BLACKLIST, MaskedWordCounter
from .tenants import TenantRegistry, load_tenant
from .service import mask_content, update_mask_templates
from .dialogs import BatchMasker, DialogMasker
from .config import create_batch, create_masker, load_config, load_from_yaml
from .errors import (
    EmptyMask,
    InvalidTemplate,
    MaskerError,
    MissingResource,
    PatternCompileError,
    TemplateError,
    UnknownTenant,
)
from .types import Counts, LookupTables, MaskCategory, MaskedLine, MaskTemplate, Token

__all__ = [
    "MaskAccumulator", "Masker", "classify", "mask_line",
    "DELIMITERS", "clean_word", "split_on_char",
    "acceptable_url",
    "apply_templates", "compile_templates", "normalize_mask",
    "BLACKLIST", "MaskedWordCounter",
    "TenantRegistry", "load_tenant",
    "mask_content", "update_mask_templates",
    "BatchMasker", "DialogMasker",
    "create_batch", "create_masker", "load_config", "load_from_yaml",
    "EmptyMask", "InvalidTemplate", "MaskerError", "MissingResource", "PatternCompileError",
    "TemplateError", "UnknownTenant",
    "Counts", "LookupTables", "MaskCategory", "MaskedLine", "MaskTemplate", "Token",
]
__version__ = "0.1.0"
