"""
版本名称映射 - TCGplayer / Cardmarket 的外部版本键 -> 价格表版本名 -> 界面版本类型
"""
import re

# 价格表中使用的版本名
PRICE_VARIANTS = [
    'normal',
    'holofoil',
    'reverse_holofoil',
    'first_edition_normal',
    'first_edition_holofoil',
    'unlimited',
]

TCGPLAYER_VARIANT_MAP = {
    'normal': 'normal',
    'holofoil': 'holofoil',
    'reverseholofoil': 'reverse_holofoil',
    '1stedition': 'first_edition_normal',
    '1steditionnormal': 'first_edition_normal',
    '1steditionholofoil': 'first_edition_holofoil',
    'firstedition': 'first_edition_normal',
    'firsteditionnormal': 'first_edition_normal',
    'firsteditionholofoil': 'first_edition_holofoil',
    'unlimited': 'unlimited',
    'unlimitedholofoil': 'holofoil',
}

# Cardmarket 基本不区分初版，按普通/闪卡处理
CARDMARKET_VARIANT_MAP = {
    'normal': 'normal',
    'holofoil': 'holofoil',
    'holo': 'holofoil',
    'reverseholofoil': 'reverse_holofoil',
    'reverse': 'reverse_holofoil',
    'unlimited': 'unlimited',
    'unlimitedholofoil': 'holofoil',
    '1stedition': 'normal',
    'firstedition': 'normal',
    '1steditionholo': 'holofoil',
    'firsteditionholo': 'holofoil',
}

SOURCE_MAPS = {
    'tcgplayer': TCGPLAYER_VARIANT_MAP,
    'cardmarket': CARDMARKET_VARIANT_MAP,
}

# 价格表版本名 / 旧版名称 -> 界面版本类型
DB_TO_UI_VARIANT = {
    'normal': 'normal',
    'unlimited': 'normal',
    'holofoil': 'holo',
    'holo': 'holo',
    'reverse_holofoil': 'reverse_holo_standard',
    'reverse_holo': 'reverse_holo_standard',
    'first_edition_normal': 'first_edition',
    'first_edition_holofoil': 'first_edition',
    'first_edition': 'first_edition',
    'reverse_holo_standard': 'reverse_holo_standard',
    'reverse_holo_pokeball': 'reverse_holo_pokeball',
    'reverse_holo_masterball': 'reverse_holo_masterball',
    'custom': 'custom',
}

PRICE_VARIANT_DISPLAY_NAMES = {
    'normal': 'Normal',
    'holofoil': 'Holofoil',
    'reverse_holofoil': 'Reverse Holofoil',
    'first_edition_normal': '1st Edition Normal',
    'first_edition_holofoil': '1st Edition Holofoil',
    'unlimited': 'Unlimited',
}


def normalize_variant_key(key):
    """小写并去掉空格、连字符、下划线及其他符号"""
    return re.sub(r'[^a-z0-9]', '', key.lower())


def map_variant_from_source(source, external_key):
    """
    外部版本键 -> 价格表版本名

    Args:
        source: 'tcgplayer' 或 'cardmarket'
        external_key: 外部版本键 (如 reverseHolofoil, 1st Edition Holofoil)

    Returns:
        版本名，无法识别返回 None
    """
    if not external_key or not isinstance(external_key, str):
        return None

    source_map = SOURCE_MAPS.get(source)
    if source_map is None:
        return None

    return source_map.get(normalize_variant_key(external_key))


def get_variant_mappings_for_source(source):
    """返回 (外部键, 版本名) 列表"""
    return list(SOURCE_MAPS.get(source, {}).items())


def is_valid_variant(variant):
    return variant in PRICE_VARIANTS


def get_price_variant_display_name(variant):
    return PRICE_VARIANT_DISPLAY_NAMES.get(variant, variant)


def map_variants_from_price_data(source, price_data):
    """
    批量映射价格数据

    Returns:
        [(版本名, 价格数据), ...]，跳过无法识别或为空的项
    """
    mapped = []
    for external_key, value in (price_data or {}).items():
        variant = map_variant_from_source(source, external_key)
        if variant and value is not None:
            mapped.append((variant, value))
    return mapped


def map_db_variant_to_ui(name):
    """价格表/旧版版本名 -> 界面版本类型，未知名称返回 None"""
    if not name:
        return None
    return DB_TO_UI_VARIANT.get(name.strip().lower())
