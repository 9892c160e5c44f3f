"""
Settings package: engine options, attribution rules and presets.
"""

from .options import AttributionRules, EngineOptions, list_presets, load_options, load_preset

__all__ = ["AttributionRules", "EngineOptions", "list_presets", "load_options", "load_preset"]
