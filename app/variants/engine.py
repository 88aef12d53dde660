"""
版本规则引擎 - 推断一张卡牌有哪些印刷版本

规则优先级: 价格数据 (硬规则) > 时代规则 > 自定义版本/禁用
引擎本身不访问数据库，自定义版本、禁用版本和用户数量由调用方传入
"""
from loguru import logger

from app.variants.eras import (
    detect_era, has_reverse_holo_default, special_pattern_set
)
from app.variants.mapper import map_variant_from_source
from app.variants.types import (
    INTERNAL_VARIANTS, INTERNAL_TO_UI_VARIANT, SCARLET_VIOLET, WOTC,
    SOURCE_API, SOURCE_RULE, SOURCE_OVERRIDE, HIGH, MEDIUM,
    VariantFlag, UIVariant, VariantEngineOutput, sort_variants_by_order
)

# 价格表版本名 -> 内部版本键
PRICE_VARIANT_TO_INTERNAL = {
    'normal': 'normal',
    'unlimited': 'normal',
    'holofoil': 'holo',
    'reverse_holofoil': 'reverse',
    'first_edition_normal': 'first_ed_normal',
    'first_edition_holofoil': 'first_ed_holo',
}

HARD_RULE_EXPLANATIONS = {
    'normal': 'Normal variant detected from TCGplayer pricing',
    'holo': 'Holo variant detected from TCGplayer pricing',
    'reverse': 'Reverse holo variant detected from TCGplayer pricing',
    'first_ed_normal': '1st Edition Normal variant detected from TCGplayer pricing',
    'first_ed_holo': '1st Edition Holo variant detected from TCGplayer pricing',
}

ULTRA_RARE_PATTERNS = [
    'EX', 'GX', 'V', 'VMAX', 'VSTAR', 'ex',
    'Secret', 'Gold', 'Rainbow', 'Special Illustration',
    'Illustration Rare', 'Full Art', 'Alt Art', 'Ultra Rare',
    'Double Rare', 'LEGEND', 'Prime', 'LV.X', 'BREAK',
]

TRAINER_ENERGY_RARITIES = ['Trainer', 'Special Energy', 'Basic Energy']


def _rule(exists, confidence=HIGH):
    return VariantFlag(exists=exists, source=SOURCE_RULE, confidence=confidence)


def _card_number(card):
    """'12/102' -> 12，无法解析返回 0"""
    head = str(card.get('number') or '').split('/')[0]
    digits = ''.join(ch for ch in head if ch.isdigit())
    return int(digits) if digits else 0


def is_ultra_rare(rarity):
    return any(pattern in rarity for pattern in ULTRA_RARE_PATTERNS)


def is_pokemon_card(card):
    """优先看 supertype，没有时按稀有度判断"""
    supertype = (card.get('supertype') or '').lower()
    if supertype:
        return supertype.startswith('pok')

    rarity = card.get('rarity') or ''
    return not any(r in rarity for r in TRAINER_ENERGY_RARITIES)


def _is_energy(card):
    supertype = (card.get('supertype') or '').lower()
    rarity = card.get('rarity') or ''
    return supertype == 'energy' or 'Energy' in rarity


def _is_special_energy(card):
    rarity = card.get('rarity') or ''
    subtypes = card.get('subtypes') or []
    return 'Special Energy' in rarity or 'Special' in subtypes and _is_energy(card)


def _is_basic_energy(card):
    rarity = card.get('rarity') or ''
    subtypes = card.get('subtypes') or []
    return 'Basic Energy' in rarity or 'Basic' in subtypes and _is_energy(card)


# ===== 硬规则 =====

def extract_price_signals(prices):
    """返回有实际价格 (market/mid/low/high 任一 > 0) 的版本键"""
    signals = []
    for key, entry in (prices or {}).items():
        if not isinstance(entry, dict):
            continue
        if any((entry.get(field) or 0) > 0 for field in ('market', 'mid', 'low', 'high')):
            signals.append(key)
    return signals


def apply_hard_rules(card, explanations=None):
    """根据 TCGplayer 价格数据确定版本"""
    flags = {}
    for key in extract_price_signals(card.get('tcgplayer_prices')):
        internal = PRICE_VARIANT_TO_INTERNAL.get(map_variant_from_source('tcgplayer', key))
        if internal is None or internal in flags:
            continue
        flags[internal] = VariantFlag(exists=True, source=SOURCE_API, confidence=HIGH)
        if explanations is not None:
            explanations.append(HARD_RULE_EXPLANATIONS[internal])
    return flags


# ===== 时代规则 =====

def _special_pattern_rules(card, threshold, explanations):
    """精灵球/大师球图案反闪的特殊系列"""
    set_id = ((card.get('set') or {}).get('id') or '').lower()
    rarity = card.get('rarity') or ''
    pokemon = is_pokemon_card(card)

    if _card_number(card) > threshold:
        explanations.append(f'Holo only for secret rare above #{threshold}')
        return {
            'holo': _rule(True),
            'normal': _rule(False),
            'reverse': _rule(False),
            'pokeball_pattern': _rule(False),
            'masterball_pattern': _rule(False),
        }

    if set_id == 'sv8pt5':
        masterball = pokemon and 'ex' not in rarity and 'ACE SPEC' not in rarity
        if masterball:
            explanations.append('Pattern variants added for Prismatic Evolutions Pokémon')
        elif pokemon:
            explanations.append('Limited pattern variants added for Prismatic Evolutions ex/ACE SPEC')
        else:
            explanations.append('Pattern variants added for Prismatic Evolutions Trainer/Energy')
        return {
            'normal': _rule(True),
            'reverse': _rule(True),
            'holo': _rule(False),
            'pokeball_pattern': _rule(True),
            'masterball_pattern': _rule(masterball),
        }

    # Black Bolt / White Flare
    if pokemon and rarity in ('Common', 'Uncommon'):
        explanations.append(f'Pattern variants added for {rarity} Pokémon')
        return {
            'normal': _rule(True),
            'reverse': _rule(True),
            'holo': _rule(False),
            'pokeball_pattern': _rule(True),
            'masterball_pattern': _rule(True),
        }
    if pokemon and rarity in ('Rare', 'Rare Holo'):
        explanations.append(f'Holo and pattern variants added for {rarity} Pokémon')
        return {
            'normal': _rule(False),
            'reverse': _rule(True),
            'holo': _rule(True),
            'pokeball_pattern': _rule(True),
            'masterball_pattern': _rule(True),
        }
    if not pokemon and _is_basic_energy(card):
        explanations.append('Normal and reverse holo for Basic Energy')
        return {
            'normal': _rule(True),
            'reverse': _rule(True),
            'holo': _rule(False),
            'pokeball_pattern': _rule(False),
            'masterball_pattern': _rule(False),
        }
    if not pokemon and not _is_special_energy(card):
        explanations.append('Poké Ball pattern added for Trainer')
        return {
            'normal': _rule(True),
            'reverse': _rule(True),
            'holo': _rule(False),
            'pokeball_pattern': _rule(True),
            'masterball_pattern': _rule(False),
        }
    if is_ultra_rare(rarity):
        explanations.append(f'Holo only for {rarity}')
        return {
            'holo': _rule(True),
            'normal': _rule(False),
            'reverse': _rule(False),
            'pokeball_pattern': _rule(False),
            'masterball_pattern': _rule(False),
        }
    return {}


def _scarlet_violet_rules(card, explanations):
    set_id = (card.get('set') or {}).get('id')
    threshold = special_pattern_set(set_id)
    if threshold is not None:
        return _special_pattern_rules(card, threshold, explanations)

    rarity = card.get('rarity') or ''
    flags = {
        'pokeball_pattern': _rule(False),
        'masterball_pattern': _rule(False),
    }

    if rarity == 'Rare':
        # 单星稀有在 S&V 默认为闪卡
        flags.update(holo=_rule(True, MEDIUM), reverse=_rule(True, MEDIUM), normal=_rule(False))
        explanations.append('Holo variant added for S&V single-star rare')
    elif rarity == 'Rare Holo':
        flags.update(holo=_rule(True, MEDIUM), reverse=_rule(True, MEDIUM), normal=_rule(False))
        explanations.append(f'Holo variant added for S&V {rarity}')
    elif rarity in ('Common', 'Uncommon'):
        flags.update(normal=_rule(True, MEDIUM), reverse=_rule(True, MEDIUM), holo=_rule(False))
        explanations.append(f'Normal variant added for S&V {rarity}')
    elif is_ultra_rare(rarity):
        flags.update(holo=_rule(True, MEDIUM), normal=_rule(False), reverse=_rule(False, MEDIUM))
        explanations.append(f'Holo variant added for S&V {rarity}')
    return flags


def _wotc_rules(card, explanations):
    rarity = card.get('rarity') or ''
    flags = {
        'pokeball_pattern': _rule(False),
        'masterball_pattern': _rule(False),
        'first_ed_normal': _rule(True, MEDIUM),
        'first_ed_holo': _rule(True, MEDIUM),
    }
    explanations.append('1st Edition variant added for WotC era card')

    if rarity == 'Rare':
        flags.update(normal=_rule(True, MEDIUM), holo=_rule(False, MEDIUM))
        explanations.append(f'Normal variant added for WotC {rarity}')
    elif rarity == 'Rare Holo':
        flags.update(holo=_rule(True, MEDIUM), normal=_rule(False, MEDIUM))
        explanations.append(f'Holo variant added for WotC {rarity}')
    elif rarity in ('Common', 'Uncommon'):
        flags.update(normal=_rule(True, MEDIUM), holo=_rule(False))
        explanations.append(f'Normal variant added for WotC {rarity}')

    # 反闪从 Legendary Collection 开始
    release_date = (card.get('set') or {}).get('release_date')
    if has_reverse_holo_default(WOTC, release_date):
        flags['reverse'] = _rule(True, MEDIUM)
        explanations.append('Reverse holo added for WotC set released after Legendary Collection')
    else:
        flags['reverse'] = _rule(False)
    return flags


def _modern_rules(card, era, explanations):
    """Sword & Shield 规则，EX 到 Sword & Shield 的时代共用"""
    rarity = card.get('rarity') or ''
    flags = {
        'pokeball_pattern': _rule(False),
        'masterball_pattern': _rule(False),
    }

    if rarity == 'Rare':
        flags.update(normal=_rule(True, MEDIUM), reverse=_rule(True, MEDIUM), holo=_rule(False))
        explanations.append('Normal variant added for modern Rare')
    elif rarity == 'Rare Holo':
        flags.update(holo=_rule(True, MEDIUM), reverse=_rule(True, MEDIUM), normal=_rule(False))
        explanations.append('Holo variant added for modern Holo Rare')
    elif rarity in ('Common', 'Uncommon'):
        flags.update(normal=_rule(True, MEDIUM), reverse=_rule(True, MEDIUM), holo=_rule(False))
        explanations.append(f'Normal variant added for modern {rarity}')
    elif is_ultra_rare(rarity):
        flags.update(holo=_rule(True, MEDIUM), normal=_rule(False), reverse=_rule(False, MEDIUM))
        explanations.append(f'Holo variant added for modern {rarity}')

    if flags.get('reverse') and flags['reverse'].exists:
        explanations.append(f'Reverse holo added by default for {era} era {rarity}')
    return flags


def apply_era_rules(card, era, explanations=None):
    """按时代套用规则表"""
    if explanations is None:
        explanations = []
    if era == SCARLET_VIOLET:
        return _scarlet_violet_rules(card, explanations)
    if era == WOTC:
        return _wotc_rules(card, explanations)
    return _modern_rules(card, era, explanations)


def merge_rules(hard_rules, era_rules):
    """时代规则先写入，硬规则覆盖；未设置的版本为不存在"""
    merged = {key: VariantFlag() for key in INTERNAL_VARIANTS}
    for key in INTERNAL_VARIANTS:
        if key in era_rules:
            merged[key] = era_rules[key]
    for key in INTERNAL_VARIANTS:
        if key in hard_rules:
            merged[key] = hard_rules[key]
    return merged


# ===== 自定义版本 =====

def _active(custom_variants):
    return [cv for cv in custom_variants or [] if cv.get('is_active', True)]


def apply_custom_variants(flags, custom_variants):
    """
    自定义版本替换标准版本

    Returns:
        (新的版本标记, 已应用的例外说明)
    """
    result = dict(flags)
    applied = []

    for cv in _active(custom_variants):
        replaces = cv.get('replaces_standard_variant')
        if not replaces:
            continue

        replaced = False
        for key, ui_type in INTERNAL_TO_UI_VARIANT.items():
            if ui_type == replaces and result.get(key) and result[key].exists:
                result[key] = VariantFlag(exists=False, source=SOURCE_OVERRIDE, confidence=HIGH)
                replaced = True

        if replaced:
            applied.append(f"Replaced {replaces} with custom variant: {cv.get('display_name')}")

    return result, applied


def to_ui_variants(flags, user_quantities=None):
    """内部版本标记 -> 界面版本 (去重)"""
    quantities = user_quantities or {}
    seen = set()
    variants = []
    for key in INTERNAL_VARIANTS:
        flag = flags.get(key)
        if not flag or not flag.exists:
            continue
        ui_type = INTERNAL_TO_UI_VARIANT[key]
        if ui_type in seen:
            continue
        seen.add(ui_type)
        variants.append(UIVariant(type=ui_type, userQuantity=int(quantities.get(ui_type) or 0)))
    return variants


# ===== 入口 =====

def generate_variants_for_card(card, custom_variants=(), disabled=(), user_quantities=None):
    """
    生成单张卡牌的版本列表

    Args:
        card: 引擎输入 (见 Card.to_engine_input)
        custom_variants: 自定义版本 dict 列表
        disabled: 被禁用的界面版本类型
        user_quantities: {界面版本类型: 数量}

    Returns:
        VariantEngineOutput
    """
    try:
        explanations = []
        era = detect_era(card)

        hard_rules = apply_hard_rules(card, explanations)
        era_rules = apply_era_rules(card, era, explanations)
        flags = merge_rules(hard_rules, era_rules)

        active_custom = _active(custom_variants)
        flags, applied = apply_custom_variants(flags, active_custom)

        variants = to_ui_variants(flags, user_quantities)

        disabled = set(disabled or ())
        if disabled:
            for v in variants:
                if v.type in disabled:
                    applied.append(f'Disabled standard variant: {v.type}')
            variants = [v for v in variants if v.type not in disabled]

        return VariantEngineOutput(
            variants=sort_variants_by_order(variants),
            source='tcgplayer' if hard_rules else 'policy',
            era=era,
            applied_exceptions=applied,
            explanations=explanations,
            custom_variant_count=len(active_custom),
        )

    except Exception as e:
        logger.exception(f"版本推断失败 {card.get('id')}: {e}")
        quantities = user_quantities or {}
        return VariantEngineOutput(
            variants=[UIVariant(type='normal', userQuantity=int(quantities.get('normal') or 0))],
            source='policy',
        )


def generate_variants_for_set(cards, custom_by_card=None, disabled_by_card=None, quantities_by_card=None):
    """
    批量生成版本

    Returns:
        {'results': {card_id: VariantEngineOutput}, 'errors': [{'cardId', 'error'}]}
    """
    custom_by_card = custom_by_card or {}
    disabled_by_card = disabled_by_card or {}
    quantities_by_card = quantities_by_card or {}

    results = {}
    errors = []

    for card in cards:
        card_id = card.get('id') if isinstance(card, dict) else None
        if not card_id:
            errors.append({'cardId': None, 'error': 'Card id is required'})
            continue
        results[card_id] = generate_variants_for_card(
            card,
            custom_variants=custom_by_card.get(card_id, ()),
            disabled=disabled_by_card.get(card_id, ()),
            user_quantities=quantities_by_card.get(card_id),
        )

    return {'results': results, 'errors': errors}
