"""
Gemini models that support the File Search tool, and chunking presets.

To add a model, confirm it supports File Search, append it to
``GEMINI_MODELS`` and pick its tier. Clients read the list from
``GET /models``.
"""
from typing import Dict, List

GEMINI_MODELS: List[Dict[str, object]] = [
    {
        "value": "gemini-2.5-flash",
        "label": "Gemini 2.5 Flash",
        "description": "Fast, balanced quality",
        "tier": "stable",
        "pricing_tier": "free",
        "is_default": True,
    },
    {
        "value": "gemini-2.5-pro",
        "label": "Gemini 2.5 Pro",
        "description": "High quality, production-ready",
        "tier": "stable",
        "pricing_tier": "free",
        "is_default": False,
    },
    {
        "value": "gemini-2.5-flash-lite",
        "label": "Gemini 2.5 Flash Lite",
        "description": "Fastest, lightweight",
        "tier": "stable",
        "pricing_tier": "free",
        "is_default": False,
    },
    {
        "value": "gemini-3-pro-preview",
        "label": "Gemini 3 Pro Preview",
        "description": "Most capable (requires paid API)",
        "tier": "experimental",
        "pricing_tier": "paid",
        "is_default": False,
    },
    {
        "value": "gemini-2.0-flash-exp",
        "label": "Gemini 2.0 Flash Experimental",
        "description": "Experimental",
        "tier": "experimental",
        "pricing_tier": "experimental",
        "is_default": False,
    },
]

DEFAULT_MODEL: str = next(
    (str(m["value"]) for m in GEMINI_MODELS if m["is_default"]), "gemini-2.5-flash"
)

# UI presets stay inside [200, 512] even though the API accepts up to 800
CHUNKING_PRESETS: Dict[str, Dict[str, object]] = {
    "small": {
        "max_tokens_per_chunk": 200,
        "max_overlap_tokens": 20,
        "description": "Precise retrieval with smaller context windows",
    },
    "medium": {
        "max_tokens_per_chunk": 400,
        "max_overlap_tokens": 30,
        "description": "Balanced approach (recommended)",
    },
    "large": {
        "max_tokens_per_chunk": 512,
        "max_overlap_tokens": 50,
        "description": "Maximum context per chunk",
    },
}
