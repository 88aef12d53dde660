"""
版本规则引擎
"""
from app.variants.engine import (
    generate_variants_for_card, generate_variants_for_set,
    apply_hard_rules, apply_era_rules, merge_rules, apply_custom_variants,
    extract_price_signals
)
from app.variants.eras import detect_era, has_reverse_holo_default, special_pattern_set
from app.variants.mapper import map_variant_from_source, map_db_variant_to_ui
from app.variants.types import (
    VARIANT_ORDER, UI_VARIANT_TYPES, STANDARD_VARIANT_NAMES, CUSTOM_VARIANT_TYPES,
    VariantEngineOutput, UIVariant, VariantFlag
)

__all__ = [
    'generate_variants_for_card', 'generate_variants_for_set',
    'apply_hard_rules', 'apply_era_rules', 'merge_rules', 'apply_custom_variants',
    'extract_price_signals', 'detect_era', 'has_reverse_holo_default', 'special_pattern_set',
    'map_variant_from_source', 'map_db_variant_to_ui',
    'VARIANT_ORDER', 'UI_VARIANT_TYPES', 'STANDARD_VARIANT_NAMES', 'CUSTOM_VARIANT_TYPES',
    'VariantEngineOutput', 'UIVariant', 'VariantFlag',
]
