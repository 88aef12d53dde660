"""
版本规则引擎 - 常量与数据结构
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional


# 时代
WOTC = 'WotC'
EX = 'EX'
DP = 'DP'
HGSS = 'HGSS'
BLACK_WHITE = 'Black & White'
XY = 'XY'
SUN_MOON = 'Sun & Moon'
SWORD_SHIELD = 'Sword & Shield'
SCARLET_VIOLET = 'Scarlet & Violet'

# 规则引擎内部版本键
INTERNAL_VARIANTS = [
    'normal',
    'holo',
    'reverse',
    'first_ed_normal',
    'first_ed_holo',
    'pokeball_pattern',
    'masterball_pattern',
]

# 界面版本类型 (同时也是显示顺序)
VARIANT_ORDER = [
    'normal',
    'holo',
    'reverse_holo_standard',
    'reverse_holo_pokeball',
    'reverse_holo_masterball',
    'first_edition',
    'custom',
]

UI_VARIANT_TYPES = set(VARIANT_ORDER)

# 可被自定义版本替换的标准版本
STANDARD_VARIANT_NAMES = VARIANT_ORDER[:-1]

INTERNAL_TO_UI_VARIANT = {
    'normal': 'normal',
    'holo': 'holo',
    'reverse': 'reverse_holo_standard',
    'first_ed_normal': 'first_edition',
    'first_ed_holo': 'first_edition',
    'pokeball_pattern': 'reverse_holo_pokeball',
    'masterball_pattern': 'reverse_holo_masterball',
}

CUSTOM_VARIANT_TYPES = {
    'reverse_holo_pokeball': 'Reverse Holo (Poké Ball)',
    'reverse_holo_masterball': 'Reverse Holo (Master Ball)',
    'special_edition': 'Special Edition',
    'promo': 'Promotional',
    'custom': 'Custom',
}

# 来源 / 可信度
SOURCE_API = 'api'
SOURCE_RULE = 'rule'
SOURCE_OVERRIDE = 'override'

HIGH = 'high'
MEDIUM = 'medium'
LOW = 'low'


@dataclass
class VariantFlag:
    """单个版本的推断结果"""
    exists: bool = False
    source: Optional[str] = None
    confidence: Optional[str] = None


@dataclass
class UIVariant:
    """返回给前端的版本按钮"""
    type: str
    userQuantity: int = 0

    def to_dict(self):
        return asdict(self)


@dataclass
class VariantEngineOutput:
    variants: List[UIVariant]
    source: str
    era: Optional[str] = None
    applied_exceptions: List[str] = field(default_factory=list)
    explanations: List[str] = field(default_factory=list)
    custom_variant_count: int = 0

    def to_dict(self) -> Dict:
        return {
            'variants': [v.to_dict() for v in self.variants],
            'metadata': {
                'source': self.source,
                'era': self.era,
                'appliedExceptions': list(self.applied_exceptions),
                'explanations': list(self.explanations),
                'customVariantCount': self.custom_variant_count,
            }
        }

    @property
    def variant_types(self) -> List[str]:
        return [v.type for v in self.variants]


def sort_variants_by_order(variants):
    """按 VARIANT_ORDER 排序"""
    return sorted(variants, key=lambda v: VARIANT_ORDER.index(v.type) if v.type in VARIANT_ORDER else len(VARIANT_ORDER))

